from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..models import GameState, Room, WorldDefinition

MAP_SIZE = 5
CENTER = MAP_SIZE // 2

TOP_BORDER = "┌─────────┐"
BOTTOM_BORDER = "└─────────┘"
LEGEND = [
    "",
    "Legend:",
    "  @ = You",
    "  . = Room (connected)",
    "  · = Room (distant)",
    "  # = Locked door",
    "  ? = Items",
    "  $ = Gold",
]
PLACEHOLDER = "\n".join(
    [
        TOP_BORDER,
        "│    ?    │",
        "│    ?    │",
        "│  ? @ ?  │",
        "│    ?    │",
        "│    ?    │",
        BOTTOM_BORDER,
        "",
        "Map data unavailable",
    ]
)


class MinimapGenerator:
    """Render the 5x5 neighbourhood around a room as boxed ASCII."""

    def __init__(self, world: WorldDefinition) -> None:
        self.world = world
        self._by_position: Dict[Tuple[int, int], Room] = {
            (room.position.x, room.position.y): room
            for room in world.rooms.values()
            if room.position is not None
        }

    def render(self, current: Optional[Room], state: GameState) -> str:
        if current is None or current.position is None:
            return PLACEHOLDER

        grid: List[List[str]] = [[" "] * MAP_SIZE for _ in range(MAP_SIZE)]
        for dy in range(-CENTER, CENTER + 1):
            for dx in range(-CENTER, CENTER + 1):
                room = self._by_position.get((current.position.x + dx, current.position.y + dy))
                if room is None:
                    continue
                if dx == 0 and dy == 0:
                    grid[CENTER][CENTER] = "@"
                else:
                    grid[CENTER + dy][CENTER + dx] = self.symbol(room, current, state)

        lines = [TOP_BORDER]
        lines.extend("│" + " ".join(row) + "│" for row in grid)
        lines.append(BOTTOM_BORDER)
        lines.extend(LEGEND)
        return "\n".join(lines)

    @staticmethod
    def symbol(room: Room, current: Room, state: GameState) -> str:
        room_state = state.room_states.get(room.id)
        if room.has_locked_exit():
            return "#"
        if room_state is not None and room_state.items:
            return "?"
        if room_state is not None and room_state.coins > 0:
            return "$"
        if is_connected(room, current):
            return "."
        return "·"


def is_connected(room: Room, current: Room) -> bool:
    return any(e.destination == room.id for e in current.exits.values()) or any(
        e.destination == current.id for e in room.exits.values()
    )
