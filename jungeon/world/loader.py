from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..config import GameSettings
from ..errors import DefinitionLoadError
from ..generation import build_world
from ..models import (
    ActionVerb,
    Catalog,
    CharacterTemplate,
    CoinConfig,
    Exit,
    ExitType,
    Interaction,
    ItemDefinition,
    Position,
    Room,
    RoomObject,
    SpawnType,
    WorldDefinition,
)
from .repository import WorldRepository


logger = logging.getLogger(__name__)


def world_to_dict(world: WorldDefinition) -> Dict[str, Any]:
    return {
        "name": world.name,
        "startingRoomId": world.starting_room_id,
        "rooms": {room_id: _room_to_dict(room) for room_id, room in world.rooms.items()},
        "items": {
            item_id: {
                "name": item.name,
                "description": item.description,
                "category": item.category,
                "keyId": item.key_id,
                "unlocks": item.unlocks,
            }
            for item_id, item in world.items.items()
        },
    }


def _room_to_dict(room: Room) -> Dict[str, Any]:
    return {
        "id": room.id,
        "name": room.name,
        "description": room.description,
        "position": {"x": room.position.x, "y": room.position.y} if room.position else None,
        "exits": {
            direction: {
                "to": exit_def.destination,
                "type": exit_def.type.value,
                "requiredKey": exit_def.required_key,
            }
            for direction, exit_def in room.exits.items()
        },
        "objects": [
            {
                "id": obj.id,
                "name": obj.name,
                "description": obj.description,
                "state": obj.state,
                "interactions": {
                    verb: {
                        "message": i.message,
                        "validStates": list(i.valid_states),
                        "newState": i.new_state,
                        "giveItem": i.give_item,
                        "spawnCoins": i.spawn_coins,
                    }
                    for verb, i in obj.interactions.items()
                },
            }
            for obj in room.objects
        ],
        "items": list(room.items),
        "coins": {
            "spawnType": room.coins.spawn_type.value,
            "amount": room.coins.amount,
            "respawnInterval": room.coins.respawn_interval,
        },
    }


def world_from_dict(data: Dict[str, Any]) -> WorldDefinition:
    items = {
        item_id: ItemDefinition(
            id=item_id,
            name=raw.get("name", item_id),
            description=raw.get("description", ""),
            category=raw.get("category", "misc"),
            key_id=raw.get("keyId"),
            unlocks=raw.get("unlocks"),
        )
        for item_id, raw in data.get("items", {}).items()
    }

    rooms: Dict[str, Room] = {}
    for room_id, raw in data["rooms"].items():
        exits: Dict[str, Exit] = {}
        for direction, value in raw.get("exits", {}).items():
            if isinstance(value, str):
                exits[direction] = Exit(destination=value)
                continue
            exit_type = ExitType(value.get("type", ExitType.OPEN.value))
            exits[direction] = Exit(
                destination=value["to"],
                type=exit_type,
                required_key=value.get("requiredKey") if exit_type is ExitType.LOCKED else None,
            )

        objects: List[RoomObject] = []
        for o in raw.get("objects", []):
            interactions = {
                verb: Interaction(
                    message=i.get("message", ""),
                    valid_states=list(i.get("validStates", [])),
                    new_state=i.get("newState"),
                    give_item=i.get("giveItem"),
                    spawn_coins=int(i.get("spawnCoins", 0)),
                )
                for verb, i in o.get("interactions", {}).items()
            }
            objects.append(
                RoomObject(
                    id=o["id"],
                    name=o["name"],
                    description=o.get("description", ""),
                    state=o.get("state", "normal"),
                    interactions=interactions,
                )
            )

        position = raw.get("position")
        coins = raw.get("coins", {})
        rooms[room_id] = Room(
            id=room_id,
            name=raw["name"],
            description=raw.get("description", ""),
            exits=exits,
            position=Position(x=position["x"], y=position["y"]) if position else None,
            objects=objects,
            items=list(raw.get("items", [])),
            coins=CoinConfig(
                spawn_type=SpawnType(coins.get("spawnType", SpawnType.INITIAL_ONLY.value)),
                amount=int(coins.get("amount", 0)),
                respawn_interval=coins.get("respawnInterval"),
            ),
        )

    starting = data.get("startingRoomId") or next(iter(rooms))
    if starting not in rooms:
        raise ValueError(f"starting room {starting} is not defined")
    return WorldDefinition(
        rooms=rooms,
        starting_room_id=starting,
        items=items,
        name=data.get("name", "The Jungeon"),
    )


class WorldLoader:
    """Load world and catalog definitions from disk."""

    def __init__(self, data_dir: Path, settings: Optional[GameSettings] = None) -> None:
        self.data_dir = data_dir
        self.settings = settings or GameSettings()

    @property
    def world_file(self) -> Path:
        return self.data_dir / "world.json"

    @property
    def save_file(self) -> Path:
        return self.data_dir / "savegame.json"

    def load(self) -> Tuple[WorldDefinition, Catalog]:
        return self.load_world(), self.load_catalog()

    def load_world(self) -> WorldDefinition:
        """Read world.json, generating and writing a new world first if none exists.

        A save file left from an earlier world refers to rooms, items and keys
        that no longer exist, so it is deleted along with the generation.
        """
        if not self.world_file.exists():
            logger.info("No world definition at %s, generating one", self.world_file)
            world = build_world(self.settings, random.Random(self.settings.seed))
            self.write_world(world)
            if WorldRepository(self.save_file).delete_save():
                logger.warning("Discarded %s saved against a previous world", self.save_file)
            return world

        data = self._read_json(self.world_file)
        try:
            world = world_from_dict(data)
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise DefinitionLoadError(f"Malformed world definition {self.world_file}: {exc}") from exc
        logger.info("World data loaded: %d rooms", len(world.rooms))
        return world

    def write_world(self, world: WorldDefinition) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.world_file, "w", encoding="utf-8") as f:
            json.dump(world_to_dict(world), f, indent=2, ensure_ascii=False)
        logger.info("Wrote world definition to %s", self.world_file)

    def load_catalog(self) -> Catalog:
        chars_data = self._read_json(self.data_dir / "characters.json")
        verbs_data = self._read_json(self.data_dir / "verbs.json")
        try:
            characters = {
                c["id"]: CharacterTemplate(
                    id=c["id"],
                    name=c["name"],
                    short_description=c.get("shortDescription", ""),
                )
                for c in chars_data.get("characters", [])
            }
            action_verbs = {
                v["verb"].lower(): ActionVerb(verb=v["verb"].lower(), template=v["template"])
                for v in verbs_data.get("actionVerbs", [])
            }
            object_verbs = [v.lower() for v in verbs_data.get("objectVerbs", [])]
        except (KeyError, TypeError, AttributeError) as exc:
            raise DefinitionLoadError(f"Malformed character or verb data: {exc}") from exc
        if not characters:
            raise DefinitionLoadError("No characters defined")
        return Catalog(characters=characters, action_verbs=action_verbs, object_verbs=object_verbs)

    def _read_json(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise DefinitionLoadError(f"Cannot read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise DefinitionLoadError(f"{path} must contain a JSON object")
        return data
