from __future__ import annotations

from typing import Optional


class JungeonError(Exception):
    """Base class for game errors."""


class ValidationError(JungeonError, ValueError):
    """A player request that cannot be applied to the current state.

    Raised before anything is mutated; the command router turns it into an
    ``error`` reply for the requesting session.
    """


class LockedPathError(ValidationError):
    def __init__(self, required_key: Optional[str], message: Optional[str] = None) -> None:
        self.required_key = required_key
        if message is None:
            message = f"The way is locked. You need {required_key or 'a key'} to open it."
        super().__init__(message)


class DefinitionLoadError(JungeonError):
    """World, character, verb or settings data could not be loaded."""


class PersistenceWriteError(JungeonError):
    """A save file could not be written."""
