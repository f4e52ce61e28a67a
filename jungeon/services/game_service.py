from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Tuple

from fastapi import WebSocket

from ..commands.base import CommandInput, CommandResult
from ..commands.router import CommandRouter
from ..config import TimerSettings
from ..errors import ValidationError
from ..models import CharacterTemplate, PlayerStatus
from ..sessions import Session, SessionManager
from ..world.engine import Outcome, WorldEngine
from .connection_manager import ConnectionManager
from .persistence import PersistenceWorker
from .timers import TimerRegistry


logger = logging.getLogger(__name__)

GHOST_TIMER = "ghosts"
AUTOSAVE_TIMER = "autosave"


def idle_key(session_id: str) -> str:
    return f"idle:{session_id}"


def release_key(session_id: str) -> str:
    return f"release:{session_id}"


def respawn_key(room_id: str) -> str:
    return f"respawn:{room_id}"


class GameService:
    """High-level facade exposing operations used by HTTP and websocket layers.

    Owns the background schedules (ghost movement, coin respawn, autosave,
    idle detection and character release); every tick calls back into the
    engine, so it goes through the same lock as player commands.
    """

    def __init__(
        self,
        world: WorldEngine,
        sessions: SessionManager,
        connections: ConnectionManager,
        timers: TimerRegistry,
        persistence: Optional[PersistenceWorker] = None,
        timer_settings: Optional[TimerSettings] = None,
    ) -> None:
        self.world = world
        self.sessions = sessions
        self.connections = connections
        self.timers = timers
        self.persistence = persistence
        self.timer_settings = timer_settings or TimerSettings()
        self.router = CommandRouter(world)
        world.on_respawn_armed = self._arm_respawn

    # lifecycle

    async def start(self) -> None:
        for room_id, delay in (await self.world.pending_respawns()).items():
            self._arm_respawn(room_id, delay)

        # restored players have no socket yet; give them the usual grace period
        for player in list(self.world.state.players.values()):
            if not self.sessions.get_session(player.session_id):
                self.sessions.create_session(player.session_id, player.username, player.character_id)
            await self.world.set_status(player.session_id, PlayerStatus.AFK)
            self._arm_release(player.session_id)

        self.timers.call_every(GHOST_TIMER, self.world.settings.ghosts.movement_interval, self.tick_ghosts)
        self.timers.call_every(AUTOSAVE_TIMER, self.timer_settings.autosave_interval, self.autosave)
        logger.info("Game service started (%d restored players)", len(self.world.state.players))

    async def stop(self) -> None:
        await self.timers.shutdown()
        await self.autosave()
        if self.persistence:
            await self.persistence.flush()
        logger.info("Game service stopped")

    # transport contract

    async def list_available_characters(self) -> List[CharacterTemplate]:
        return await self.world.available_characters()

    async def login(self, username: str) -> Tuple[str, List[CharacterTemplate]]:
        name = (username or "").strip()
        if not name:
            raise ValidationError("Invalid username")
        session_id = str(uuid.uuid4())
        self.sessions.create_session(session_id, name)
        # expires unless a character is selected in time
        self._arm_release(session_id)
        logger.info("User %s logged in (session %s)", name, session_id)
        return session_id, await self.world.available_characters()

    async def select_character(self, session_id: str, character_id: str) -> Outcome:
        session = self.sessions.get_session(session_id)
        if not session:
            raise ValidationError("Not logged in")
        outcome = await self.world.add_player(session_id, session.username, character_id)
        session.character_id = character_id
        self.timers.cancel(release_key(session_id))
        self._arm_idle(session_id)
        await self.connections.deliver(self.world, outcome.messages)
        return outcome

    async def connect(self, session_id: str, ws: WebSocket) -> bool:
        session = self.sessions.get_session(session_id)
        if not session or not self.world.has_player(session_id):
            return False
        self.connections.attach(session_id, ws)
        if self.timers.cancel(release_key(session_id)):
            logger.info("Session %s reconnected before release", session_id)
        await self.world.set_status(session_id, PlayerStatus.ACTIVE)
        self._arm_idle(session_id)
        return True

    async def command(self, session_id: str, command: CommandInput) -> CommandResult:
        if not await self.world.touch(session_id):
            raise ValidationError("Select a character first.")
        self._arm_idle(session_id)
        result = await self.router.dispatch(session_id, command)
        await self.connections.deliver(self.world, result.broadcasts)
        return result

    async def disconnect(self, session_id: str, ws: Optional[WebSocket] = None) -> None:
        self.connections.detach(session_id, ws)
        if self.connections.is_connected(session_id):
            return
        self.timers.cancel(idle_key(session_id))
        if not self.world.has_player(session_id):
            self.sessions.remove_session(session_id)
            return
        outcome = await self.world.set_status(session_id, PlayerStatus.AFK)
        await self.connections.deliver(self.world, outcome.messages)
        self._arm_release(session_id)
        logger.info(
            "Session %s disconnected; character release in %.0fs",
            session_id,
            self.timer_settings.character_release_timeout,
        )

    async def release(self, session_id: str) -> None:
        self.timers.cancel(idle_key(session_id))
        self.timers.cancel(release_key(session_id))
        outcome = await self.world.remove_player(session_id)
        self.sessions.remove_session(session_id)
        await self.connections.deliver(self.world, outcome.messages)

    # views

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.sessions.get_session(session_id)

    async def describe_room(self, session_id: str):
        return await self.world.describe_room(session_id)

    async def get_inventory(self, session_id: str):
        return await self.world.inventory(session_id)

    # timer callbacks

    def _arm_idle(self, session_id: str) -> None:
        self.timers.call_later(
            idle_key(session_id), self.timer_settings.idle_timeout, self.mark_idle, session_id
        )

    def _arm_release(self, session_id: str) -> None:
        self.timers.call_later(
            release_key(session_id),
            self.timer_settings.character_release_timeout,
            self.release,
            session_id,
        )

    def _arm_respawn(self, room_id: str, delay: float) -> None:
        self.timers.call_later(respawn_key(room_id), delay, self.respawn, room_id)

    async def mark_idle(self, session_id: str) -> None:
        outcome = await self.world.set_status(session_id, PlayerStatus.IDLE)
        await self.connections.deliver(self.world, outcome.messages)

    async def respawn(self, room_id: str) -> None:
        outcome = await self.world.respawn_coins(room_id)
        await self.connections.deliver(self.world, outcome.messages)

    async def tick_ghosts(self) -> None:
        outcome = await self.world.move_ghosts()
        await self.connections.deliver(self.world, outcome.messages)

    async def autosave(self) -> None:
        payload = await self.world.snapshot()
        if self.persistence:
            self.persistence.schedule_save(payload)
