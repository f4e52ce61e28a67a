from __future__ import annotations

import logging
import random
from collections import Counter
from typing import Dict, List, Optional, Tuple

from ..config import ItemSettings
from ..models import ItemDefinition, Room


logger = logging.getLogger(__name__)

# category -> (name, description); category order decides who gets the remainder
ITEM_TEMPLATES: Dict[str, List[Tuple[str, str]]] = {
    "weapons": [
        ("Rusty Sword", "An old iron sword covered in rust but still sharp enough to be useful."),
        ("Wooden Staff", "A gnarled oak staff worn smooth by years of use."),
        ("Silver Dagger", "A gleaming dagger with an ornate silver hilt."),
        ("Battle Axe", "A heavy double-bladed axe with dried blood on the edges."),
        ("Elvish Bow", "An elegantly curved bow made from white ash wood."),
        ("Iron Mace", "A brutish mace with a spiked iron head."),
    ],
    "armor": [
        ("Leather Vest", "A well-worn leather vest with bronze studs."),
        ("Chain Mail", "Interlocking metal rings forming a protective shirt."),
        ("Wooden Shield", "A round shield reinforced with iron bands."),
        ("Iron Helmet", "A dented but sturdy iron helmet with a nose guard."),
        ("Plate Gauntlets", "Heavy steel gauntlets etched with runes."),
        ("Dragon Scale Armor", "Shimmering scales from an ancient dragon, light but incredibly strong."),
    ],
    "potions": [
        ("Red Potion", "A vial filled with crimson liquid that glows faintly."),
        ("Blue Elixir", "A small bottle containing swirling blue liquid."),
        ("Green Tonic", "Murky green liquid in a cracked glass bottle."),
        ("Golden Philter", "A shimmering golden potion in an ornate crystal vial."),
        ("Black Draught", "An ominous black liquid that seems to absorb light."),
    ],
    "treasures": [
        ("Ruby Pendant", "A large ruby set in a gold pendant, worth a fortune."),
        ("Ancient Coins", "A handful of gold coins from a long-dead empire."),
        ("Pearl Necklace", "Perfectly matched pearls strung on silver thread."),
        ("Jeweled Crown", "A crown encrusted with sapphires and emeralds."),
        ("Diamond Ring", "A platinum ring with a flawless diamond."),
        ("Golden Chalice", "An ornate chalice studded with precious gems."),
    ],
    "tools": [
        ("Brass Compass", "A tarnished compass that still points true north."),
        ("Rope Coil", "Fifty feet of sturdy hemp rope."),
        ("Lantern", "A reliable oil lantern with a clear glass globe."),
        ("Lockpicks", "A set of fine steel tools for opening locks."),
        ("Grappling Hook", "A three-pronged iron hook attached to a rope."),
    ],
    "magical": [
        ("Crystal Orb", "A clear crystal sphere that pulses with inner light."),
        ("Spell Scroll", "An ancient scroll covered in glowing runes."),
        ("Magic Wand", "A slender wand made of crystallized starlight."),
        ("Enchanted Ring", "A silver ring that hums with magical energy."),
        ("Rune Stone", "A flat stone carved with powerful arcane symbols."),
        ("Amulet of Power", "A bronze amulet radiating waves of magical force."),
    ],
}


class ItemGenerator:
    """Build a categorised item pool and scatter it, one item per room."""

    def __init__(self, settings: Optional[ItemSettings] = None, rng: Optional[random.Random] = None) -> None:
        self.settings = settings or ItemSettings()
        self.rng = rng or random.Random()

    def generate_pool(self, count: int) -> List[ItemDefinition]:
        categories = list(ITEM_TEMPLATES)
        per_category, remainder = divmod(count, len(categories))

        pool: List[ItemDefinition] = []
        for index, category in enumerate(categories):
            templates = ITEM_TEMPLATES[category]
            wanted = per_category + (1 if index < remainder else 0)
            for j in range(wanted):
                name, description = templates[j % len(templates)]
                pool.append(
                    ItemDefinition(
                        id=f"item_{len(pool)}",
                        name=name,
                        description=description,
                        category=category,
                    )
                )
        return pool

    def distribute(
        self, rooms: Dict[str, Room], catalog: Optional[Dict[str, ItemDefinition]] = None
    ) -> Dict[str, ItemDefinition]:
        """Place the pool into a random subset of rooms; returns the new item definitions."""
        catalog = catalog if catalog is not None else {}
        pool = self.generate_pool(len(rooms) // self.settings.rooms_per_item)

        room_ids = list(rooms)
        self.rng.shuffle(room_ids)
        placed = 0
        for room_id, item in zip(room_ids, pool):
            rooms[room_id].items.append(item.id)
            catalog[item.id] = item
            placed += 1

        by_category = Counter(item.category for item in pool[:placed])
        logger.info(
            "Distributed %d items across %d rooms (%s)",
            placed,
            len(rooms),
            ", ".join(f"{cat}: {n}" for cat, n in by_category.items()),
        )
        return catalog

    @staticmethod
    def stats(rooms: Dict[str, Room], catalog: Dict[str, ItemDefinition]) -> Dict[str, object]:
        by_category: Counter = Counter()
        rooms_with_items = 0
        total = 0
        for room in rooms.values():
            if room.items:
                rooms_with_items += 1
                total += len(room.items)
                by_category.update(catalog[i].category for i in room.items if i in catalog)
        return {
            "totalItems": total,
            "roomsWithItems": rooms_with_items,
            "itemsByType": dict(by_category),
        }
