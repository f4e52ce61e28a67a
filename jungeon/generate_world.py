from __future__ import annotations

import argparse
import logging
import random
from pathlib import Path

from .config import GameSettings
from .generation import GoldDistributor, ItemGenerator, LockManager, build_world, reachable_from
from .world.loader import WorldLoader
from .world.repository import WorldRepository

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a new Jungeon world map.")
    parser.add_argument(
        "--room-count",
        type=int,
        default=None,
        help="Number of rooms to generate (default: from settings, 100)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for a repeatable world")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DATA_DIR,
        help="Directory holding world.json and savegame.json",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    settings = GameSettings.load(args.data_dir / "settings.yml")
    if args.room_count is not None:
        settings.map.room_count = max(1, args.room_count)
    if args.seed is not None:
        settings.seed = args.seed

    world = build_world(settings, random.Random(settings.seed))
    loader = WorldLoader(args.data_dir, settings)
    loader.write_world(world)

    # Reset dynamic state whenever a new world is generated.
    WorldRepository(loader.save_file).delete_save()

    gold = GoldDistributor.stats(world.rooms)
    items = ItemGenerator.stats(world.rooms, world.items)
    reachable = reachable_from(world.rooms, world.starting_room_id)
    print(f"Generated world with {len(world.rooms)} rooms at {args.data_dir / 'world.json'}")
    print(f"  reachable from start: {len(reachable)}/{len(world.rooms)}")
    print(f"  gold: total {gold['total']}, mean {gold['mean']:.2f}, range {gold['min']}-{gold['max']}")
    print(f"  items: {items['totalItems']} in {items['roomsWithItems']} rooms")
    print(f"  locked doors: {len(LockManager.locked_doors(world)) // 2}, keys: {len(LockManager.keys(world))}")


if __name__ == "__main__":
    main()
