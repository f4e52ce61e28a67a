from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import DefinitionLoadError


class MapSettings(BaseModel):
    room_count: int = Field(default=100, ge=1)
    one_exit_ratio: float = Field(default=0.10, ge=0.0, le=1.0)
    two_exit_ratio: float = Field(default=0.80, ge=0.0, le=1.0)
    many_exit_ratio: float = Field(default=0.10, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _ratios_sum_to_one(self) -> "MapSettings":
        total = self.one_exit_ratio + self.two_exit_ratio + self.many_exit_ratio
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"connectivity ratios must sum to 1, got {total:.3f}")
        return self


class GoldSettings(BaseModel):
    minimum: int = Field(default=0, ge=0)
    mean: float = 5.0
    std_dev: float = Field(default=2.5, ge=0.0)
    maximum: int = 10
    respawn_chance: float = Field(default=0.2, ge=0.0, le=1.0)
    default_respawn_interval: float = Field(default=300.0, gt=0.0)

    @model_validator(mode="after")
    def _bounds(self) -> "GoldSettings":
        if self.minimum > self.maximum:
            raise ValueError("gold minimum exceeds maximum")
        return self


class ItemSettings(BaseModel):
    rooms_per_item: int = Field(default=3, ge=1)


class LockSettings(BaseModel):
    min_locks: int = Field(default=5, ge=0)
    max_locks: int = Field(default=10, ge=0)
    min_key_distance: int = Field(default=10, ge=0)
    max_attempts: int = Field(default=50, ge=1)

    @model_validator(mode="after")
    def _bounds(self) -> "LockSettings":
        if self.min_locks > self.max_locks:
            raise ValueError("min_locks exceeds max_locks")
        return self


class GhostSettings(BaseModel):
    min_ghosts: int = Field(default=3, ge=0)
    max_ghosts: int = Field(default=5, ge=0)
    movement_interval: float = Field(default=60.0, gt=0.0)
    encounter_probability: float = Field(default=0.5, ge=0.0, le=1.0)
    min_gold_loss: float = Field(default=0.10, ge=0.0, le=1.0)
    max_gold_loss: float = Field(default=0.30, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _bounds(self) -> "GhostSettings":
        if self.min_ghosts > self.max_ghosts:
            raise ValueError("min_ghosts exceeds max_ghosts")
        if self.min_gold_loss > self.max_gold_loss:
            raise ValueError("min_gold_loss exceeds max_gold_loss")
        return self


class TimerSettings(BaseModel):
    autosave_interval: float = Field(default=30.0, gt=0.0)
    idle_timeout: float = Field(default=300.0, gt=0.0)
    character_release_timeout: float = Field(default=300.0, gt=0.0)


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"


class GameSettings(BaseModel):
    seed: Optional[int] = None
    map: MapSettings = Field(default_factory=MapSettings)
    gold: GoldSettings = Field(default_factory=GoldSettings)
    items: ItemSettings = Field(default_factory=ItemSettings)
    locks: LockSettings = Field(default_factory=LockSettings)
    ghosts: GhostSettings = Field(default_factory=GhostSettings)
    timers: TimerSettings = Field(default_factory=TimerSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "GameSettings":
        """Read settings from a YAML file; a missing file yields the defaults."""
        if path is None or not path.exists():
            return cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise DefinitionLoadError(f"Cannot read settings {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise DefinitionLoadError(f"Settings file {path} must contain a mapping")
        try:
            return cls(**raw)
        except ValidationError as exc:
            raise DefinitionLoadError(f"Invalid settings in {path}: {exc}") from exc
