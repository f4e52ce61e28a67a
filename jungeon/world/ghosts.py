from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..config import GhostSettings
from ..models import GameState, Ghost, PlayerSession, WorldDefinition


logger = logging.getLogger(__name__)

GHOST_NAMES = [
    "Ethereal Wraith",
    "Phantom Spirit",
    "Shadowy Specter",
    "Ancient Ghost",
    "Cursed Apparition",
    "Restless Soul",
    "Wandering Shade",
    "Spectral Entity",
]
GHOST_DESCRIPTIONS = [
    "A translucent figure drifts silently through the chamber.",
    "An eerie presence fills the air with a bone-chilling cold.",
    "A ghostly form materializes, its eyes glowing with otherworldly light.",
    "Whispers of the dead echo from a spectral manifestation.",
    "A wraith-like entity floats aimlessly, moaning softly.",
]

OBSERVATION = "observation"
ENCOUNTER_NO_GOLD = "encounter_no_gold"
ENCOUNTER = "encounter"


@dataclass
class GhostMove:
    ghost: Ghost
    from_room_id: str
    to_room_id: str

    @property
    def departure_text(self) -> str:
        return f"{self.ghost.name} fades away and drifts through a wall."

    @property
    def arrival_text(self) -> str:
        return f"{self.ghost.name} materializes from the shadows!"


@dataclass
class Encounter:
    kind: str
    ghost: Ghost
    message: str
    gold_lost: int = 0
    gold_remaining: int = 0


class GhostManager:
    """Wandering ghosts that drain gold from players they catch."""

    def __init__(
        self,
        world: WorldDefinition,
        state: GameState,
        settings: Optional[GhostSettings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.world = world
        self.state = state
        self.settings = settings or GhostSettings()
        self.rng = rng or random.Random()
        self.ghosts: Dict[str, Ghost] = {}

    def spawn(self) -> List[Ghost]:
        room_ids = list(self.world.rooms)
        self.ghosts = {}
        if not room_ids:
            return []
        count = self.rng.randint(self.settings.min_ghosts, self.settings.max_ghosts)
        for index in range(count):
            ghost = self._create(index, self.rng.choice(room_ids))
            self.ghosts[ghost.id] = ghost
        self._sync_locations()
        logger.info("Spawned %d ghosts in the dungeon", len(self.ghosts))
        return list(self.ghosts.values())

    def restore(self) -> List[Ghost]:
        """Recreate ghosts at their saved rooms, or spawn fresh ones if none were saved."""
        if not self.state.ghost_locations:
            return self.spawn()

        room_ids = list(self.world.rooms)
        self.ghosts = {}
        for index, (ghost_id, room_id) in enumerate(sorted(self.state.ghost_locations.items())):
            if room_id not in self.world.rooms:
                room_id = self.rng.choice(room_ids)
            ghost = self._create(index, room_id)
            ghost.id = ghost_id
            self.ghosts[ghost_id] = ghost
        self._sync_locations()
        logger.info("Loaded %d ghosts from saved state", len(self.ghosts))
        return list(self.ghosts.values())

    def _create(self, index: int, room_id: str) -> Ghost:
        return Ghost(
            id=f"ghost_{index}",
            name=GHOST_NAMES[index % len(GHOST_NAMES)],
            description=self.rng.choice(GHOST_DESCRIPTIONS),
            current_room_id=room_id,
        )

    def _sync_locations(self) -> None:
        self.state.ghost_locations = {
            ghost.id: ghost.current_room_id for ghost in self.ghosts.values()
        }

    def move_all(self) -> List[GhostMove]:
        moves: List[GhostMove] = []
        for ghost in self.ghosts.values():
            room = self.world.rooms.get(ghost.current_room_id)
            if room is None:
                continue
            open_exits = [e for e in room.exits.values() if not e.locked]
            if not open_exits:
                continue
            target = self.rng.choice(open_exits).destination
            move = GhostMove(ghost=ghost, from_room_id=ghost.current_room_id, to_room_id=target)
            ghost.current_room_id = target
            ghost.move_count += 1
            self.state.ghost_locations[ghost.id] = target
            logger.debug("%s moved from %s to %s", ghost.name, move.from_room_id, target)
            moves.append(move)
        return moves

    def ghosts_in(self, room_id: str) -> List[Ghost]:
        return [g for g in self.ghosts.values() if g.current_room_id == room_id]

    def check_encounter(self, player: PlayerSession, room_id: str) -> Optional[Encounter]:
        present = self.ghosts_in(room_id)
        if not present:
            return None
        ghost = present[0]

        if self.rng.random() >= self.settings.encounter_probability:
            return Encounter(
                kind=OBSERVATION,
                ghost=ghost,
                message=f"You sense a supernatural presence. {ghost.description}",
                gold_remaining=player.inventory.gold,
            )

        gold = player.inventory.gold
        if gold <= 0:
            return Encounter(
                kind=ENCOUNTER_NO_GOLD,
                ghost=ghost,
                message=f"{ghost.name} reaches for you with icy fingers, but you have no gold to lose!",
            )

        fraction = self.rng.uniform(self.settings.min_gold_loss, self.settings.max_gold_loss)
        lost = min(gold, max(1, int(math.floor(gold * fraction))))
        player.inventory.gold = gold - lost
        return Encounter(
            kind=ENCOUNTER,
            ghost=ghost,
            message=f"{ghost.name} touches you with icy spectral hands! You feel your gold pouch lighten.",
            gold_lost=lost,
            gold_remaining=player.inventory.gold,
        )
