from __future__ import annotations

import logging
import math
import random
from collections import deque
from typing import Dict, List, Optional, Set, Tuple

from ..config import MapSettings
from ..models import (
    DIRECTION_OFFSETS,
    OPPOSITE_DIRECTIONS,
    Exit,
    Position,
    Room,
    WorldDefinition,
)


logger = logging.getLogger(__name__)

START_ROOM_ID = "room_0"

ROOM_PREFIXES = [
    "Dark",
    "Ancient",
    "Forgotten",
    "Hidden",
    "Dusty",
    "Damp",
    "Cold",
    "Musty",
    "Shadowy",
    "Crumbling",
    "Narrow",
    "Wide",
    "Deep",
    "Shallow",
    "Twisted",
]
ROOM_TYPES = [
    "Chamber",
    "Corridor",
    "Hall",
    "Passage",
    "Room",
    "Vault",
    "Cavern",
    "Alcove",
    "Gallery",
    "Tunnel",
    "Crypt",
    "Cell",
    "Den",
]
ROOM_DESCRIPTIONS = [
    "The walls are covered in ancient moss and mysterious symbols.",
    "Water drips steadily from cracks in the ceiling.",
    "Cobwebs hang thick in the corners of this abandoned space.",
    "The air is thick with dust and the smell of age.",
    "Faint scratch marks cover the stone floor.",
    "A cold draft whistles through unseen cracks.",
    "The flickering torchlight casts dancing shadows on the walls.",
    "Broken furniture lies scattered across the floor.",
    "Strange echoes suggest this room is larger than it appears.",
    "The darkness here feels almost alive.",
]


class MapGenerator:
    """Lay rooms on a square grid and connect them into one reachable graph."""

    def __init__(self, settings: Optional[MapSettings] = None, rng: Optional[random.Random] = None) -> None:
        self.settings = settings or MapSettings()
        self.rng = rng or random.Random()
        self.connectivity_targets: Dict[str, int] = {}
        self._grid: Dict[Tuple[int, int], str] = {}

    def generate(self, room_count: Optional[int] = None) -> WorldDefinition:
        count = room_count if room_count is not None else self.settings.room_count
        if count < 1:
            count = 1

        rooms = self._create_rooms(count)
        self.connectivity_targets = self.assign_connectivity(list(rooms))
        self._place_on_grid(rooms)
        self._connect_spanning(rooms)
        self._fill_remaining(rooms)
        self._ensure_reachability(rooms)

        logger.info("Generated %d rooms", len(rooms))
        return WorldDefinition(rooms=rooms, starting_room_id=START_ROOM_ID)

    def assign_connectivity(self, room_ids: List[str]) -> Dict[str, int]:
        """Give every room a target exit count drawn from the configured ratios."""
        count = len(room_ids)
        one = int(math.floor(count * self.settings.one_exit_ratio))
        many = int(math.floor(count * self.settings.many_exit_ratio))
        two = int(math.floor(count * self.settings.two_exit_ratio))
        two += count - (one + two + many)

        shuffled = list(room_ids)
        self.rng.shuffle(shuffled)

        targets: Dict[str, int] = {}
        for index, room_id in enumerate(shuffled):
            if index < one:
                targets[room_id] = 1
            elif index < one + two:
                targets[room_id] = 2
            else:
                targets[room_id] = 3 if self.rng.random() < 0.5 else 4

        logger.info(
            "Connectivity assigned: %d one-exit, %d two-exit, %d multi-exit rooms",
            one,
            two,
            many,
        )
        return targets

    def _create_rooms(self, count: int) -> Dict[str, Room]:
        rooms: Dict[str, Room] = {}
        for idx in range(count):
            room_id = f"room_{idx}"
            name = f"{self.rng.choice(ROOM_PREFIXES)} {self.rng.choice(ROOM_TYPES)}"
            rooms[room_id] = Room(
                id=room_id,
                name=name,
                description=self.rng.choice(ROOM_DESCRIPTIONS),
            )
        return rooms

    def _place_on_grid(self, rooms: Dict[str, Room]) -> None:
        side = int(math.ceil(math.sqrt(len(rooms))))
        self._grid = {}
        for idx, room in enumerate(rooms.values()):
            room.position = Position(x=idx % side, y=idx // side)
            self._grid[(room.position.x, room.position.y)] = room.id

    def _neighbour(self, room: Room, direction: str, rooms: Dict[str, Room]) -> Optional[Room]:
        dx, dy = DIRECTION_OFFSETS[direction]
        neighbour_id = self._grid.get((room.position.x + dx, room.position.y + dy))
        if neighbour_id is None:
            return None
        return rooms[neighbour_id]

    def _can_add(self, room: Room) -> bool:
        return len(room.exits) < self.connectivity_targets.get(room.id, 2)

    def _connect(self, room: Room, direction: str, other: Room) -> None:
        room.exits[direction] = Exit(destination=other.id)
        other.exits[OPPOSITE_DIRECTIONS[direction]] = Exit(destination=room.id)

    def _connect_spanning(self, rooms: Dict[str, Room]) -> None:
        visited: Set[str] = {START_ROOM_ID}
        queue = deque([START_ROOM_ID])
        while queue and len(visited) < len(rooms):
            current = rooms[queue.popleft()]
            for direction in DIRECTION_OFFSETS:
                if direction in current.exits:
                    continue
                neighbour = self._neighbour(current, direction, rooms)
                if neighbour is None or neighbour.id in visited:
                    continue
                if self._can_add(current) and self._can_add(neighbour):
                    self._connect(current, direction, neighbour)
                    visited.add(neighbour.id)
                    queue.append(neighbour.id)

    def _fill_remaining(self, rooms: Dict[str, Room]) -> None:
        for room in rooms.values():
            for direction in DIRECTION_OFFSETS:
                if not self._can_add(room):
                    break
                if direction in room.exits:
                    continue
                neighbour = self._neighbour(room, direction, rooms)
                if neighbour and self._can_add(neighbour):
                    self._connect(room, direction, neighbour)

    def _ensure_reachability(self, rooms: Dict[str, Room]) -> None:
        reachable = reachable_from(rooms, START_ROOM_ID)
        forced = 0
        while len(reachable) < len(rooms):
            bridge = self._find_bridge(rooms, reachable)
            if bridge is None:
                break
            room, direction, neighbour = bridge
            self._connect(room, direction, neighbour)
            forced += 1
            # one bridge can pull a whole component in
            reachable = reachable_from(rooms, START_ROOM_ID)
        if forced:
            logger.info("Connected %d unreachable rooms", forced)
        logger.info("%d of %d rooms reachable from %s", len(reachable), len(rooms), START_ROOM_ID)

    def _find_bridge(
        self, rooms: Dict[str, Room], reachable: Set[str]
    ) -> Optional[Tuple[Room, str, Room]]:
        for room in rooms.values():
            if room.id in reachable:
                continue
            for direction in DIRECTION_OFFSETS:
                neighbour = self._neighbour(room, direction, rooms)
                if neighbour and neighbour.id in reachable:
                    return room, direction, neighbour
        return None


def reachable_from(rooms: Dict[str, Room], start_id: str) -> Set[str]:
    """Breadth-first set of room ids reachable from ``start_id`` through any exit."""
    if start_id not in rooms:
        return set()
    seen: Set[str] = {start_id}
    queue = deque([start_id])
    while queue:
        room = rooms[queue.popleft()]
        for exit_def in room.exits.values():
            if exit_def.destination in rooms and exit_def.destination not in seen:
                seen.add(exit_def.destination)
                queue.append(exit_def.destination)
    return seen
