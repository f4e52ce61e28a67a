from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple


DIRECTION_OFFSETS: Dict[str, Tuple[int, int]] = {
    "north": (0, -1),
    "south": (0, 1),
    "east": (1, 0),
    "west": (-1, 0),
}

OPPOSITE_DIRECTIONS: Dict[str, str] = {
    "north": "south",
    "south": "north",
    "east": "west",
    "west": "east",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExitType(str, Enum):
    OPEN = "open"
    LOCKED = "locked"


class SpawnType(str, Enum):
    INITIAL_ONLY = "initial-only"
    RESPAWN_TIMER = "respawn-timer"


class PlayerStatus(str, Enum):
    ACTIVE = "active"
    IDLE = "idle"
    AFK = "afk"


@dataclass(frozen=True)
class Position:
    x: int
    y: int

    def distance_to(self, other: "Position") -> int:
        return abs(self.x - other.x) + abs(self.y - other.y)


@dataclass
class Exit:
    destination: str
    type: ExitType = ExitType.OPEN
    required_key: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self.type is ExitType.LOCKED


@dataclass
class CoinConfig:
    spawn_type: SpawnType = SpawnType.INITIAL_ONLY
    amount: int = 0
    respawn_interval: Optional[float] = None


@dataclass
class Interaction:
    message: str
    valid_states: List[str] = field(default_factory=list)
    new_state: Optional[str] = None
    give_item: Optional[str] = None
    spawn_coins: int = 0


@dataclass
class RoomObject:
    id: str
    name: str
    description: str
    state: str = "normal"
    interactions: Dict[str, Interaction] = field(default_factory=dict)


@dataclass
class ItemDefinition:
    id: str
    name: str
    description: str
    category: str = "misc"
    key_id: Optional[str] = None
    unlocks: Optional[str] = None

    @property
    def is_key(self) -> bool:
        return self.key_id is not None


@dataclass
class Room:
    id: str
    name: str
    description: str
    exits: Dict[str, Exit] = field(default_factory=dict)
    position: Optional[Position] = None
    objects: List[RoomObject] = field(default_factory=list)
    items: List[str] = field(default_factory=list)
    coins: CoinConfig = field(default_factory=CoinConfig)

    def has_locked_exit(self) -> bool:
        return any(exit_def.locked for exit_def in self.exits.values())

    def find_object(self, query: str) -> Optional[RoomObject]:
        lowered = query.strip().lower()
        for obj in self.objects:
            if obj.name.lower() == lowered or obj.id.lower() == lowered:
                return obj
        return None


@dataclass
class WorldDefinition:
    rooms: Dict[str, Room]
    starting_room_id: str
    items: Dict[str, ItemDefinition] = field(default_factory=dict)
    name: str = "The Jungeon"


@dataclass(frozen=True)
class CharacterTemplate:
    id: str
    name: str
    short_description: str = ""


@dataclass(frozen=True)
class ActionVerb:
    verb: str
    template: str


@dataclass
class Catalog:
    """Static definitions that sit beside the world map."""

    characters: Dict[str, CharacterTemplate]
    action_verbs: Dict[str, ActionVerb] = field(default_factory=dict)
    object_verbs: List[str] = field(default_factory=list)


@dataclass
class RoomRuntimeState:
    coins: int = 0
    object_states: Dict[str, str] = field(default_factory=dict)
    last_coin_spawn: Optional[datetime] = None
    items: List[str] = field(default_factory=list)

    @classmethod
    def initial(cls, room: Room) -> "RoomRuntimeState":
        return cls(
            coins=room.coins.amount,
            object_states={obj.id: obj.state for obj in room.objects},
            items=list(room.items),
        )


@dataclass
class Inventory:
    gold: int = 0
    items: List[str] = field(default_factory=list)


@dataclass
class PlayerSession:
    session_id: str
    username: str
    character_id: str
    character_name: str
    current_room_id: str
    inventory: Inventory = field(default_factory=Inventory)
    status: PlayerStatus = PlayerStatus.ACTIVE
    connected_at: datetime = field(default_factory=utcnow)
    last_action: datetime = field(default_factory=utcnow)


@dataclass
class CharacterLock:
    session_id: str
    username: str
    locked_at: datetime = field(default_factory=utcnow)


@dataclass
class Ghost:
    id: str
    name: str
    description: str
    current_room_id: str
    move_count: int = 0


@dataclass
class GameState:
    players: Dict[str, PlayerSession] = field(default_factory=dict)
    character_locks: Dict[str, CharacterLock] = field(default_factory=dict)
    room_states: Dict[str, RoomRuntimeState] = field(default_factory=dict)
    ghost_locations: Dict[str, str] = field(default_factory=dict)
    unlocked_keys: List[str] = field(default_factory=list)

    @classmethod
    def initial(cls, world: WorldDefinition) -> "GameState":
        return cls(
            room_states={
                room_id: RoomRuntimeState.initial(room)
                for room_id, room in world.rooms.items()
            }
        )

    def reconcile(self, world: WorldDefinition) -> None:
        """Make room_states match the world's rooms one to one."""
        for room_id in list(self.room_states):
            if room_id not in world.rooms:
                del self.room_states[room_id]
        for room_id, room in world.rooms.items():
            if room_id not in self.room_states:
                self.room_states[room_id] = RoomRuntimeState.initial(room)

    def players_in_room(self, room_id: str) -> List[PlayerSession]:
        return [p for p in self.players.values() if p.current_room_id == room_id]


def plural_coins(count: int) -> str:
    return f"{count} gold coin{'s' if count != 1 else ''}"


def compose_room_description(
    room: Room,
    room_state: RoomRuntimeState,
    others: List[PlayerSession],
    world: WorldDefinition,
    ghosts: List[Ghost],
) -> Dict[str, object]:
    """Build the look payload for a room, including coins, items and occupants."""
    objects: List[str] = []
    for obj in room.objects:
        current = room_state.object_states.get(obj.id, obj.state)
        if current not in ("normal", obj.state):
            objects.append(f"{obj.name} ({current})")
        else:
            objects.append(obj.name)

    players: List[str] = []
    for p in others:
        label = p.character_name
        if p.status is PlayerStatus.IDLE:
            label += " (idle)"
        elif p.status is PlayerStatus.AFK:
            label += " (AFK)"
        players.append(label)

    items = [
        world.items[item_id].name
        for item_id in room_state.items
        if item_id in world.items
    ]

    return {
        "roomId": room.id,
        "name": room.name,
        "description": room.description,
        "exits": {
            direction: {"to": exit_def.destination, "type": exit_def.type.value}
            for direction, exit_def in room.exits.items()
        },
        "coins": room_state.coins,
        "objects": objects,
        "items": items,
        "players": players,
        "ghosts": [ghost.description for ghost in ghosts],
    }
