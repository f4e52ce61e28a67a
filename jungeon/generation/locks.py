from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..config import LockSettings
from ..models import (
    OPPOSITE_DIRECTIONS,
    Exit,
    ExitType,
    ItemDefinition,
    Room,
    WorldDefinition,
)


logger = logging.getLogger(__name__)

KEY_MATERIALS = [
    "Iron",
    "Brass",
    "Silver",
    "Bronze",
    "Steel",
    "Copper",
    "Gold",
    "Rusted",
    "Ornate",
    "Ancient",
]
KEY_TYPES = ["Key", "Skeleton Key", "Master Key", "Old Key"]


def key_name(index: int) -> str:
    material = KEY_MATERIALS[index % len(KEY_MATERIALS)]
    kind = KEY_TYPES[(index // len(KEY_MATERIALS)) % len(KEY_TYPES)]
    return f"{material} {kind}"


def unlock_tag(room_id: str, direction: str) -> str:
    return f"{room_id}:{direction}"


@dataclass
class LockedDoor:
    room_id: str
    room_name: str
    direction: str
    key_id: Optional[str]


@dataclass
class KeyLocation:
    key_id: str
    key_name: str
    room_id: str
    room_name: str


class LockManager:
    """Lock a handful of passages and hide the matching keys far away."""

    def __init__(self, settings: Optional[LockSettings] = None, rng: Optional[random.Random] = None) -> None:
        self.settings = settings or LockSettings()
        self.rng = rng or random.Random()

    def add_locks_and_keys(self, world: WorldDefinition) -> WorldDefinition:
        room_ids = list(world.rooms)
        wanted = self.rng.randint(self.settings.min_locks, self.settings.max_locks)

        created: List[Tuple[str, str]] = []
        for _ in range(wanted):
            choice = self._pick_open_exit(world, room_ids)
            if choice is None:
                continue
            room_id, direction = choice
            key_id = f"key_{len(created)}"
            self._apply_lock(world, room_id, direction, key_id)
            key = ItemDefinition(
                id=key_id,
                name=key_name(len(created)),
                description="A key that might unlock a door somewhere in the dungeon.",
                category="keys",
                key_id=key_id,
                unlocks=unlock_tag(room_id, direction),
            )
            world.items[key.id] = key
            key_room = self._place_key(world, room_ids, room_id)
            if key_room is not None:
                key_room.items.append(key.id)
            created.append((room_id, direction))

        by_direction = Counter(direction for _, direction in created)
        logger.info(
            "Created %d locked doors with matching keys (%s)",
            len(created),
            ", ".join(f"{d}: {n}" for d, n in by_direction.items()),
        )
        return world

    def _pick_open_exit(self, world: WorldDefinition, room_ids: List[str]) -> Optional[Tuple[str, str]]:
        if not room_ids:
            return None
        for _ in range(self.settings.max_attempts):
            room = world.rooms[self.rng.choice(room_ids)]
            if not room.exits:
                continue
            direction = self.rng.choice(list(room.exits))
            if room.exits[direction].type is ExitType.OPEN:
                return room.id, direction
        return None

    def _apply_lock(self, world: WorldDefinition, room_id: str, direction: str, key_id: str) -> None:
        room = world.rooms[room_id]
        exit_def = room.exits[direction]
        room.exits[direction] = Exit(
            destination=exit_def.destination, type=ExitType.LOCKED, required_key=key_id
        )
        mirror = mirror_exit(world, room_id, direction)
        if mirror is not None:
            target, back = mirror
            target.exits[back] = Exit(
                destination=room_id, type=ExitType.LOCKED, required_key=key_id
            )

    def _place_key(self, world: WorldDefinition, room_ids: List[str], lock_room_id: str) -> Optional[Room]:
        lock_room = world.rooms[lock_room_id]
        candidates: List[str] = []
        if lock_room.position is not None:
            for candidate_id in room_ids:
                candidate = world.rooms[candidate_id]
                if candidate.position is None:
                    continue
                if candidate.position.distance_to(lock_room.position) >= self.settings.min_key_distance:
                    candidates.append(candidate_id)

        if not candidates:
            candidates = [rid for rid in room_ids if rid != lock_room_id]
        if not candidates:
            return None
        return world.rooms[self.rng.choice(candidates)]

    @staticmethod
    def unlock(world: WorldDefinition, room_id: str, direction: str) -> bool:
        """Open a locked passage on both sides. Returns False when nothing was locked."""
        room = world.rooms.get(room_id)
        if room is None or direction not in room.exits:
            return False
        exit_def = room.exits[direction]
        if not exit_def.locked:
            return False

        mirror = mirror_exit(world, room_id, direction)
        room.exits[direction] = Exit(destination=exit_def.destination)
        if mirror is not None:
            target, back = mirror
            target.exits[back] = Exit(destination=room_id)
        return True

    @staticmethod
    def locked_doors(world: WorldDefinition) -> List[LockedDoor]:
        return [
            LockedDoor(
                room_id=room.id,
                room_name=room.name,
                direction=direction,
                key_id=exit_def.required_key,
            )
            for room in world.rooms.values()
            for direction, exit_def in room.exits.items()
            if exit_def.locked
        ]

    @staticmethod
    def keys(world: WorldDefinition) -> List[KeyLocation]:
        found: List[KeyLocation] = []
        for room in world.rooms.values():
            for item_id in room.items:
                item = world.items.get(item_id)
                if item is not None and item.is_key:
                    found.append(
                        KeyLocation(
                            key_id=item.id,
                            key_name=item.name,
                            room_id=room.id,
                            room_name=room.name,
                        )
                    )
        return found


def mirror_exit(world: WorldDefinition, room_id: str, direction: str) -> Optional[Tuple[Room, str]]:
    """Find the exit in the destination room that leads back through the same passage."""
    exit_def = world.rooms[room_id].exits[direction]
    target = world.rooms.get(exit_def.destination)
    if target is None:
        return None
    back = OPPOSITE_DIRECTIONS.get(direction)
    if back in target.exits and target.exits[back].destination == room_id:
        return target, back
    for other_direction, other in target.exits.items():
        if other.destination == room_id and other.required_key == exit_def.required_key:
            return target, other_direction
    return None
