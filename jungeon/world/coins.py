from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from ..models import GameState, SpawnType, WorldDefinition, utcnow


logger = logging.getLogger(__name__)


class CoinSpawner:
    """Respawn bookkeeping for rooms whose gold comes back on a timer.

    A respawning room is either available (coins on the floor) or pending
    (collected, ``last_coin_spawn`` set). Scheduling the actual wake-up is left
    to the caller; this class only answers how long to wait and applies the
    respawn when asked.
    """

    def __init__(
        self,
        world: WorldDefinition,
        state: GameState,
        clock: Callable = utcnow,
    ) -> None:
        self.world = world
        self.state = state
        self.clock = clock

    def respawns(self, room_id: str) -> bool:
        room = self.world.rooms.get(room_id)
        return room is not None and room.coins.spawn_type is SpawnType.RESPAWN_TIMER

    def interval(self, room_id: str) -> float:
        return float(self.world.rooms[room_id].coins.respawn_interval or 300.0)

    def handle_collection(self, room_id: str) -> Optional[float]:
        """Mark a room pending after collection. Returns the delay to arm, if any."""
        if not self.respawns(room_id):
            return None
        self.state.room_states[room_id].last_coin_spawn = self.clock()
        delay = self.interval(room_id)
        logger.info("Coin respawn armed for %s (%.0fs)", room_id, delay)
        return delay

    def respawn(self, room_id: str) -> int:
        """Reset a pending room to its configured amount. Returns the new coin count."""
        room_state = self.state.room_states.get(room_id)
        if room_state is None or room_state.last_coin_spawn is None:
            return 0
        if not self.respawns(room_id):
            room_state.last_coin_spawn = None
            return 0
        amount = self.world.rooms[room_id].coins.amount
        room_state.coins = amount
        room_state.last_coin_spawn = None
        logger.info("Respawned %d coins in %s", amount, room_id)
        return amount

    def catch_up(self) -> Dict[str, float]:
        """Settle rooms left pending by a previous run.

        Rooms whose interval already elapsed respawn now; the rest are returned
        with the remaining delay so the caller can arm them.
        """
        now = self.clock()
        remaining: Dict[str, float] = {}
        for room_id, room_state in self.state.room_states.items():
            if room_state.last_coin_spawn is None or not self.respawns(room_id):
                continue
            elapsed = (now - room_state.last_coin_spawn).total_seconds()
            interval = self.interval(room_id)
            if elapsed >= interval:
                self.respawn(room_id)
            else:
                remaining[room_id] = interval - elapsed
        if remaining:
            logger.info("%d rooms still waiting on coin respawn", len(remaining))
        return remaining
