from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config import GameSettings
from ..errors import LockedPathError, ValidationError
from ..generation.locks import LockManager
from ..models import (
    Catalog,
    CharacterLock,
    CharacterTemplate,
    GameState,
    Inventory,
    PlayerSession,
    PlayerStatus,
    WorldDefinition,
    compose_room_description,
    plural_coins,
    utcnow,
)
from .coins import CoinSpawner
from .ghosts import ENCOUNTER, GhostManager
from .minimap import MinimapGenerator
from .repository import serialize_state


logger = logging.getLogger(__name__)

HELP_COMMANDS = [
    "Movement:",
    "  go [direction] - Move in a direction (north, south, east, west)",
    "  n/s/e/w - Quick directional shortcuts",
    "",
    "Exploration:",
    "  look - Look around the current room",
    "  map - Display 5x5 ASCII minimap",
    "",
    "Items & Gold:",
    "  collect - Collect all coins in the room",
    "  drop - Drop all your coins in the room",
    "  take [item] - Pick up an item lying in the room",
    "  inventory - View your inventory",
    "",
    "Interaction:",
    "  [verb] [object] - Interact with an object (touch, open, press)",
    "",
    "Communication:",
    "  say [message] - Say something to players in the room",
    "  emote [action] - Describe what your character does",
    "  /[action] - Perform an action (/dance, /wave, /bow, etc.)",
    "",
    "System:",
    "  help - Show this help message",
]


@dataclass
class Envelope:
    """An outbound message whose recipients are resolved when it is delivered."""

    text: str
    type: str = "event"
    room_id: Optional[str] = None
    session_id: Optional[str] = None
    exclude_session_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> Dict[str, Any]:
        return {"type": self.type, "data": {"text": self.text, **self.data}}


def to_room(room_id: str, text: str, exclude: Optional[str] = None, type: str = "event") -> Envelope:
    return Envelope(text=text, type=type, room_id=room_id, exclude_session_id=exclude)


def to_session(session_id: str, text: str, type: str = "event", **data: Any) -> Envelope:
    return Envelope(text=text, type=type, session_id=session_id, data=data)


@dataclass
class Outcome:
    payload: Dict[str, Any] = field(default_factory=dict)
    messages: List[Envelope] = field(default_factory=list)


class WorldEngine:
    """Gameplay logic built on top of loaded world data.

    Every public coroutine takes ``self.lock`` and never awaits while holding
    it, so each operation is applied as a whole before the next one starts.
    Operations validate first and raise ``ValidationError`` before touching any
    state.
    """

    def __init__(
        self,
        world: WorldDefinition,
        catalog: Catalog,
        state: GameState,
        settings: Optional[GameSettings] = None,
        rng: Optional[random.Random] = None,
        clock: Callable = utcnow,
    ) -> None:
        self.lock = asyncio.Lock()
        self.world = world
        self.catalog = catalog
        self.state = state
        self.settings = settings or GameSettings()
        self.rng = rng or random.Random()
        self.clock = clock
        # Called with (room_id, delay) when a respawning room is emptied.
        self.on_respawn_armed: Optional[Callable[[str, float], None]] = None

        self.state.reconcile(world)
        self._reapply_unlocks()
        self.coins = CoinSpawner(world, state, clock)
        self.ghosts = GhostManager(world, state, self.settings.ghosts, self.rng)
        self.ghosts.restore()
        self.minimap_generator = MinimapGenerator(world)

    def _reapply_unlocks(self) -> None:
        wanted = set(self.state.unlocked_keys)
        if not wanted:
            return
        for room in self.world.rooms.values():
            for direction, exit_def in list(room.exits.items()):
                if exit_def.locked and exit_def.required_key in wanted:
                    LockManager.unlock(self.world, room.id, direction)

    # lookups (callers hold the lock)

    def _player(self, session_id: str) -> PlayerSession:
        player = self.state.players.get(session_id)
        if player is None:
            raise ValidationError("Player not found.")
        return player

    def _item_name(self, item_id: str) -> str:
        item = self.world.items.get(item_id)
        return item.name if item else item_id

    def _describe(self, player: PlayerSession) -> Dict[str, Any]:
        room = self.world.rooms[player.current_room_id]
        others = [
            p
            for p in self.state.players_in_room(room.id)
            if p.session_id != player.session_id
        ]
        return compose_room_description(
            room,
            self.state.room_states[room.id],
            others,
            self.world,
            self.ghosts.ghosts_in(room.id),
        )

    def _inventory(self, player: PlayerSession) -> Dict[str, Any]:
        return {
            "gold": player.inventory.gold,
            "items": [
                {"id": item_id, "name": self._item_name(item_id)}
                for item_id in player.inventory.items
            ],
        }

    def _acted(self, player: PlayerSession) -> None:
        player.last_action = self.clock()
        player.status = PlayerStatus.ACTIVE

    def session_ids_in_room(self, room_id: str) -> List[str]:
        return [p.session_id for p in self.state.players_in_room(room_id)]

    def recipients(self, envelope: Envelope) -> List[str]:
        if envelope.session_id is not None:
            return [envelope.session_id]
        if envelope.room_id is None:
            return []
        return [
            sid
            for sid in self.session_ids_in_room(envelope.room_id)
            if sid != envelope.exclude_session_id
        ]

    def has_player(self, session_id: str) -> bool:
        return session_id in self.state.players

    # characters

    async def available_characters(self) -> List[CharacterTemplate]:
        async with self.lock:
            return [
                c
                for c in self.catalog.characters.values()
                if c.id not in self.state.character_locks
            ]

    async def get_player(self, session_id: str) -> Optional[PlayerSession]:
        async with self.lock:
            return self.state.players.get(session_id)

    async def add_player(self, session_id: str, username: str, character_id: str) -> Outcome:
        async with self.lock:
            template = self.catalog.characters.get(character_id)
            if template is None:
                raise ValidationError("Character not found.")
            if character_id in self.state.character_locks:
                raise ValidationError("Character is already in use.")
            if session_id in self.state.players:
                raise ValidationError("This session already controls a character.")

            now = self.clock()
            player = PlayerSession(
                session_id=session_id,
                username=username,
                character_id=template.id,
                character_name=template.name,
                current_room_id=self.world.starting_room_id,
                inventory=Inventory(),
                connected_at=now,
                last_action=now,
            )
            self.state.players[session_id] = player
            self.state.character_locks[template.id] = CharacterLock(
                session_id=session_id, username=username, locked_at=now
            )
            logger.info("Player %s selected character %s", username, template.id)
            return Outcome(
                payload={
                    "player": {
                        "sessionId": session_id,
                        "characterId": template.id,
                        "characterName": template.name,
                    },
                    "room": self._describe(player),
                    "inventory": self._inventory(player),
                },
                messages=[
                    to_room(
                        player.current_room_id,
                        f"{player.character_name} enters the game.",
                        exclude=session_id,
                    )
                ],
            )

    async def remove_player(self, session_id: str) -> Outcome:
        async with self.lock:
            player = self.state.players.pop(session_id, None)
            if player is None:
                return Outcome()

            lock = self.state.character_locks.get(player.character_id)
            if lock is not None and lock.session_id == session_id:
                del self.state.character_locks[player.character_id]

            room_state = self.state.room_states[player.current_room_id]
            room_state.items.extend(player.inventory.items)
            player.inventory.items = []

            logger.info("Released character %s (session %s)", player.character_id, session_id)
            return Outcome(
                payload={"released": player.character_id},
                messages=[
                    to_room(
                        player.current_room_id,
                        f"{player.character_name} fades from the dungeon.",
                    )
                ],
            )

    # movement

    async def move(self, session_id: str, direction: str) -> Outcome:
        async with self.lock:
            player = self._player(session_id)
            direction = direction.strip().lower()
            room = self.world.rooms[player.current_room_id]
            exit_def = room.exits.get(direction)
            if exit_def is None:
                raise ValidationError(f"You can't go {direction} from here.")

            messages: List[Envelope] = []
            unlocked = False
            if exit_def.locked:
                key_id = exit_def.required_key
                if key_id is None or key_id not in player.inventory.items:
                    key_label = self._item_name(key_id) if key_id else "key"
                    raise LockedPathError(
                        key_id,
                        f"This exit is locked. You need a {key_label} to unlock it.",
                    )
                LockManager.unlock(self.world, room.id, direction)
                if key_id not in self.state.unlocked_keys:
                    self.state.unlocked_keys.append(key_id)
                unlocked = True
                logger.info("%s unlocked %s:%s with %s", player.character_name, room.id, direction, key_id)
                key_label = self._item_name(key_id)
                messages.append(
                    to_session(session_id, f"You unlock the way {direction} with the {key_label}.")
                )
                messages.append(
                    to_room(
                        room.id,
                        f"{player.character_name} unlocks the way {direction} with the {key_label}.",
                        exclude=session_id,
                    )
                )

            destination = exit_def.destination
            messages.append(
                to_room(room.id, f"{player.character_name} leaves {direction}.", exclude=session_id)
            )
            player.current_room_id = destination
            self._acted(player)
            messages.append(
                to_room(destination, f"{player.character_name} arrives.", exclude=session_id)
            )

            payload: Dict[str, Any] = {"unlocked": unlocked}
            encounter = self.ghosts.check_encounter(player, destination)
            if encounter is not None:
                data: Dict[str, Any] = {"ghost": encounter.ghost.name, "kind": encounter.kind}
                if encounter.kind == ENCOUNTER:
                    data["goldLost"] = encounter.gold_lost
                    data["goldRemaining"] = encounter.gold_remaining
                    text = (
                        f"{encounter.message} You lost {plural_coins(encounter.gold_lost)} "
                        f"and have {encounter.gold_remaining} left."
                    )
                else:
                    text = encounter.message
                messages.append(to_session(session_id, text, type="ghost", **data))
                payload["encounter"] = data

            payload["room"] = self._describe(player)
            return Outcome(payload=payload, messages=messages)

    # objects and items

    async def interact(self, session_id: str, verb: str, object_name: str) -> Outcome:
        async with self.lock:
            player = self._player(session_id)
            verb = verb.strip().lower()
            room = self.world.rooms[player.current_room_id]
            room_state = self.state.room_states[room.id]
            obj = room.find_object(object_name)
            if obj is None:
                raise ValidationError(f"There is no {object_name} here.")
            interaction = obj.interactions.get(verb)
            if interaction is None:
                raise ValidationError(f"You can't {verb} the {obj.name}.")
            current = room_state.object_states.get(obj.id, obj.state)
            if interaction.valid_states and current not in interaction.valid_states:
                raise ValidationError(f"You can't {verb} the {obj.name} right now.")

            if interaction.new_state:
                room_state.object_states[obj.id] = interaction.new_state
            if interaction.give_item:
                player.inventory.items.append(interaction.give_item)
            if interaction.spawn_coins:
                room_state.coins += interaction.spawn_coins
            self._acted(player)

            return Outcome(
                payload={
                    "message": interaction.message,
                    "objectState": room_state.object_states.get(obj.id, current),
                    "inventory": self._inventory(player),
                },
                messages=[to_room(room.id, interaction.message)],
            )

    async def take_item(self, session_id: str, query: str) -> Outcome:
        async with self.lock:
            player = self._player(session_id)
            room_state = self.state.room_states[player.current_room_id]
            wanted = (query or "").strip().lower()
            if not wanted:
                raise ValidationError("Take what?")
            target: Optional[str] = None
            for item_id in room_state.items:
                name = self._item_name(item_id).lower()
                if wanted in (item_id.lower(), name) or wanted in name:
                    target = item_id
                    break
            if target is None:
                raise ValidationError(f"There is no {query.strip()} here.")

            room_state.items.remove(target)
            player.inventory.items.append(target)
            self._acted(player)
            name = self._item_name(target)
            return Outcome(
                payload={"taken": {"id": target, "name": name}, "inventory": self._inventory(player)},
                messages=[
                    to_session(session_id, f"You take the {name}."),
                    to_room(
                        player.current_room_id,
                        f"{player.character_name} picks up the {name}.",
                        exclude=session_id,
                    ),
                ],
            )

    # gold

    async def collect_coins(self, session_id: str) -> Outcome:
        async with self.lock:
            player = self._player(session_id)
            room_id = player.current_room_id
            room_state = self.state.room_states[room_id]
            amount = room_state.coins
            if amount <= 0:
                raise ValidationError("There are no coins to collect here.")

            room_state.coins = 0
            player.inventory.gold += amount
            self._acted(player)
            delay = self.coins.handle_collection(room_id)
            if delay is not None and self.on_respawn_armed is not None:
                self.on_respawn_armed(room_id, delay)

            return Outcome(
                payload={"collected": amount, "gold": player.inventory.gold},
                messages=[
                    to_session(session_id, f"You collected {plural_coins(amount)}."),
                    to_room(
                        room_id,
                        f"{player.character_name} collects {plural_coins(amount)}.",
                        exclude=session_id,
                    ),
                ],
            )

    async def drop_coins(self, session_id: str) -> Outcome:
        async with self.lock:
            player = self._player(session_id)
            amount = player.inventory.gold
            if amount <= 0:
                raise ValidationError("You have no coins to drop.")

            room_state = self.state.room_states[player.current_room_id]
            player.inventory.gold = 0
            room_state.coins += amount
            self._acted(player)
            return Outcome(
                payload={"dropped": amount, "roomCoins": room_state.coins},
                messages=[
                    to_session(session_id, f"You dropped {plural_coins(amount)}."),
                    to_room(
                        player.current_room_id,
                        f"{player.character_name} drops {plural_coins(amount)}.",
                        exclude=session_id,
                    ),
                ],
            )

    # communication

    async def say(self, session_id: str, text: str) -> Outcome:
        async with self.lock:
            player = self._player(session_id)
            text = (text or "").strip()
            if not text:
                raise ValidationError("Say what?")
            self._acted(player)
            return Outcome(
                messages=[to_room(player.current_room_id, f'{player.character_name} says: "{text}"')]
            )

    async def emote(self, session_id: str, text: str) -> Outcome:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Emote what?")
        return await self.say(session_id, f"*{text}*")

    async def perform_action(self, session_id: str, verb: str) -> Outcome:
        async with self.lock:
            player = self._player(session_id)
            action = self.catalog.action_verbs.get(verb.strip().lower())
            if action is None:
                raise ValidationError(f"Unknown action: {verb}")
            message = action.template.replace("{name}", player.character_name)
            self._acted(player)
            return Outcome(
                payload={"message": message},
                messages=[to_room(player.current_room_id, message)],
            )

    # read-only views

    async def describe_room(self, session_id: str) -> Dict[str, Any]:
        async with self.lock:
            return self._describe(self._player(session_id))

    async def inventory(self, session_id: str) -> Dict[str, Any]:
        async with self.lock:
            return self._inventory(self._player(session_id))

    async def minimap(self, session_id: str) -> str:
        async with self.lock:
            player = self._player(session_id)
            return self.minimap_generator.render(
                self.world.rooms.get(player.current_room_id), self.state
            )

    def help_text(self) -> Dict[str, List[str]]:
        return {
            "commands": list(HELP_COMMANDS),
            "verbs": sorted(self.catalog.action_verbs),
        }

    # activity and status

    async def touch(self, session_id: str) -> bool:
        """Record activity. Returns False when the session has no character."""
        async with self.lock:
            player = self.state.players.get(session_id)
            if player is None:
                return False
            self._acted(player)
            return True

    async def set_status(self, session_id: str, status: PlayerStatus) -> Outcome:
        async with self.lock:
            player = self.state.players.get(session_id)
            if player is None or player.status is status:
                return Outcome()
            player.status = status
            messages: List[Envelope] = []
            if status is PlayerStatus.AFK:
                messages.append(
                    to_room(
                        player.current_room_id,
                        f"{player.character_name} has disconnected.",
                        exclude=session_id,
                    )
                )
            return Outcome(payload={"status": status.value}, messages=messages)

    # background ticks

    async def move_ghosts(self) -> Outcome:
        async with self.lock:
            messages: List[Envelope] = []
            for move in self.ghosts.move_all():
                messages.append(to_room(move.from_room_id, move.departure_text, type="ghost"))
                messages.append(to_room(move.to_room_id, move.arrival_text, type="ghost"))
            return Outcome(payload={"moved": len(messages) // 2}, messages=messages)

    async def respawn_coins(self, room_id: str) -> Outcome:
        async with self.lock:
            amount = self.coins.respawn(room_id)
            if amount <= 0:
                return Outcome(payload={"respawned": 0})
            return Outcome(
                payload={"respawned": amount, "roomCoins": self.state.room_states[room_id].coins},
                messages=[to_room(room_id, f"You notice {plural_coins(amount)} glinting on the floor.")],
            )

    async def pending_respawns(self) -> Dict[str, float]:
        async with self.lock:
            return self.coins.catch_up()

    async def snapshot(self) -> Dict[str, Any]:
        async with self.lock:
            return serialize_state(self.state, self.clock())
