from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import PersistenceWriteError
from ..models import (
    CharacterLock,
    GameState,
    Inventory,
    PlayerSession,
    PlayerStatus,
    RoomRuntimeState,
    WorldDefinition,
    utcnow,
)


logger = logging.getLogger(__name__)

SAVE_VERSION = "1.0.0"


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def serialize_state(state: GameState, saved_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the JSON-ready save payload for a game state."""
    return {
        "version": SAVE_VERSION,
        "lastSaved": _ts(saved_at or utcnow()),
        "players": {
            session_id: {
                "sessionId": p.session_id,
                "username": p.username,
                "characterId": p.character_id,
                "characterName": p.character_name,
                "currentRoomId": p.current_room_id,
                "inventory": {"gold": p.inventory.gold, "items": list(p.inventory.items)},
                "status": p.status.value,
                "connectedAt": _ts(p.connected_at),
                "lastAction": _ts(p.last_action),
            }
            for session_id, p in state.players.items()
        },
        "characterLocks": {
            character_id: {
                "sessionId": lock.session_id,
                "username": lock.username,
                "lockedAt": _ts(lock.locked_at),
            }
            for character_id, lock in state.character_locks.items()
        },
        "roomStates": {
            room_id: {
                "coins": rs.coins,
                "objectStates": dict(rs.object_states),
                "lastCoinSpawn": _ts(rs.last_coin_spawn),
                "items": list(rs.items),
            }
            for room_id, rs in state.room_states.items()
        },
        "ghostLocations": dict(state.ghost_locations),
        "unlockedKeys": list(state.unlocked_keys),
    }


def deserialize_state(data: Dict[str, Any]) -> GameState:
    """Rebuild a game state from a save payload. Raises KeyError/ValueError/TypeError on bad data."""
    players: Dict[str, PlayerSession] = {}
    for session_id, raw in data.get("players", {}).items():
        inventory = raw.get("inventory", {})
        players[session_id] = PlayerSession(
            session_id=raw.get("sessionId", session_id),
            username=raw["username"],
            character_id=raw["characterId"],
            character_name=raw["characterName"],
            current_room_id=raw["currentRoomId"],
            inventory=Inventory(
                gold=int(inventory.get("gold", 0)),
                items=list(inventory.get("items", [])),
            ),
            status=PlayerStatus(raw.get("status", PlayerStatus.ACTIVE.value)),
            connected_at=_parse_ts(raw.get("connectedAt")) or utcnow(),
            last_action=_parse_ts(raw.get("lastAction")) or utcnow(),
        )

    locks = {
        character_id: CharacterLock(
            session_id=raw["sessionId"],
            username=raw["username"],
            locked_at=_parse_ts(raw.get("lockedAt")) or utcnow(),
        )
        for character_id, raw in data.get("characterLocks", {}).items()
    }

    room_states = {
        room_id: RoomRuntimeState(
            coins=max(0, int(raw.get("coins", 0))),
            object_states=dict(raw.get("objectStates", {})),
            last_coin_spawn=_parse_ts(raw.get("lastCoinSpawn")),
            items=list(raw.get("items", [])),
        )
        for room_id, raw in data.get("roomStates", {}).items()
    }

    return GameState(
        players=players,
        character_locks=locks,
        room_states=room_states,
        ghost_locations=dict(data.get("ghostLocations", {})),
        unlocked_keys=list(data.get("unlockedKeys", [])),
    )


class WorldRepository:
    """Persist and restore dynamic world state."""

    def __init__(self, save_file: Path) -> None:
        self.save_file = save_file

    def load(self, world: WorldDefinition) -> GameState:
        """Read the save file, falling back to a fresh state when it is missing or unreadable."""
        if not self.save_file.exists():
            logger.info("No existing game state found, creating new state")
            return GameState.initial(world)
        try:
            with open(self.save_file, "r", encoding="utf-8") as f:
                state = deserialize_state(json.load(f))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Error loading game state from %s: %s; creating fresh state", self.save_file, exc)
            return GameState.initial(world)

        self.reconcile(state, world)
        logger.info("Game state loaded: %d players, %d rooms", len(state.players), len(state.room_states))
        return state

    @staticmethod
    def reconcile(state: GameState, world: WorldDefinition) -> None:
        """Align a loaded state with the current world definition."""
        state.reconcile(world)
        for player in state.players.values():
            if player.current_room_id not in world.rooms:
                player.current_room_id = world.starting_room_id
        for character_id in list(state.character_locks):
            if state.character_locks[character_id].session_id not in state.players:
                del state.character_locks[character_id]

    def build_save_payload(self, state: GameState) -> Dict[str, Any]:
        return serialize_state(state)

    def write_save(self, payload: Dict[str, Any]) -> None:
        tmp = self.save_file.with_suffix(self.save_file.suffix + ".tmp")
        try:
            self.save_file.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            tmp.replace(self.save_file)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceWriteError(f"Cannot write {self.save_file}: {exc}") from exc

    def delete_save(self) -> bool:
        if self.save_file.exists():
            self.save_file.unlink()
            return True
        return False
