from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from ..schemas import ServerMessage
from ..world.engine import Envelope, WorldEngine


@dataclass(frozen=True)
class CommandInput:
    action: str
    args: List[str] = field(default_factory=list)
    verb: Optional[str] = None

    @property
    def text(self) -> str:
        return " ".join(self.args)


@dataclass
class CommandResult:
    replies: List[ServerMessage] = field(default_factory=list)
    broadcasts: List[Envelope] = field(default_factory=list)
    refresh_room: bool = False
    refresh_inventory: bool = False


class CommandHandler(Protocol):
    async def __call__(
        self,
        world: WorldEngine,
        session_id: str,
        command: CommandInput,
    ) -> CommandResult: ...
