from __future__ import annotations

import logging
import random
from typing import Optional

from ..config import GameSettings
from ..models import WorldDefinition
from .gold import GoldDistributor
from .items import ItemGenerator
from .locks import LockManager
from .map_generator import MapGenerator, reachable_from


logger = logging.getLogger(__name__)


def build_world(settings: Optional[GameSettings] = None, rng: Optional[random.Random] = None) -> WorldDefinition:
    """Run the generators in order: map, gold, items, then locks and keys."""
    settings = settings or GameSettings()
    rng = rng or random.Random(settings.seed)

    world = MapGenerator(settings.map, rng).generate()
    GoldDistributor(settings.gold, rng).distribute(world.rooms)
    ItemGenerator(settings.items, rng).distribute(world.rooms, world.items)
    LockManager(settings.locks, rng).add_locks_and_keys(world)

    logger.info("World generation complete: %d rooms, %d items", len(world.rooms), len(world.items))
    return world


__all__ = [
    "GoldDistributor",
    "ItemGenerator",
    "LockManager",
    "MapGenerator",
    "build_world",
    "reachable_from",
]
