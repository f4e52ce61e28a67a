from __future__ import annotations

import logging
import math
import random
from typing import Dict, Optional

from ..config import GoldSettings
from ..models import CoinConfig, Room, SpawnType


logger = logging.getLogger(__name__)


class GoldDistributor:
    """Assign per-room gold from a clamped normal distribution."""

    def __init__(self, settings: Optional[GoldSettings] = None, rng: Optional[random.Random] = None) -> None:
        self.settings = settings or GoldSettings()
        self.rng = rng or random.Random()

    def distribute(self, rooms: Dict[str, Room]) -> Dict[str, Room]:
        total = 0
        respawning = 0
        for room in rooms.values():
            amount = self.sample_amount()
            if self.rng.random() < self.settings.respawn_chance:
                room.coins = CoinConfig(
                    spawn_type=SpawnType.RESPAWN_TIMER,
                    amount=amount,
                    respawn_interval=self.settings.default_respawn_interval,
                )
                respawning += 1
            else:
                room.coins = CoinConfig(spawn_type=SpawnType.INITIAL_ONLY, amount=amount)
            total += amount

        if rooms:
            logger.info(
                "Distributed %d gold across %d rooms (avg %.1f, %d respawning)",
                total,
                len(rooms),
                total / len(rooms),
                respawning,
            )
        return rooms

    def sample_amount(self) -> int:
        # Box-Muller; 1 - random() keeps u1 in (0, 1] so log() is defined
        u1 = 1.0 - self.rng.random()
        u2 = self.rng.random()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

        gold = int(math.floor(z0 * self.settings.std_dev + self.settings.mean + 0.5))
        return max(self.settings.minimum, min(self.settings.maximum, gold))

    @staticmethod
    def stats(rooms: Dict[str, Room]) -> Dict[str, float]:
        amounts = [room.coins.amount for room in rooms.values()]
        if not amounts:
            return {"total": 0, "mean": 0.0, "stdDev": 0.0, "min": 0, "max": 0}
        total = sum(amounts)
        mean = total / len(amounts)
        variance = sum((a - mean) ** 2 for a in amounts) / len(amounts)
        return {
            "total": total,
            "mean": mean,
            "stdDev": math.sqrt(variance),
            "min": min(amounts),
            "max": max(amounts),
        }
