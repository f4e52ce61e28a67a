from __future__ import annotations

from typing import List

from .base import CommandInput

DIRECTION_ALIASES = {"n": "north", "s": "south", "e": "east", "w": "west"}
DIRECTIONS = {"north", "south", "east", "west"}
SIMPLE_COMMANDS = {
    "collect": "collect",
    "drop": "drop",
    "inventory": "inventory",
    "inv": "inventory",
    "i": "inventory",
    "look": "look",
    "l": "look",
    "map": "map",
    "help": "help",
}
TEXT_COMMANDS = {"say", "emote"}


def parse_command_input(text: str) -> CommandInput:
    cleaned = (text or "").strip()
    if not cleaned:
        return CommandInput(action="noop")
    if cleaned.startswith("/"):
        verb = cleaned[1:].strip().split(None, 1)
        return CommandInput(action="action", verb=verb[0].lower() if verb else "")

    head, _, rest = cleaned.partition(" ")
    verb = head.lower()
    rest = rest.strip()

    # say and emote keep the player's casing
    if verb in TEXT_COMMANDS:
        return CommandInput(action=verb, args=[rest] if rest else [])

    parts: List[str] = rest.lower().split()
    if verb in DIRECTION_ALIASES and not parts:
        return CommandInput(action="go", args=[DIRECTION_ALIASES[verb]])
    if verb in DIRECTIONS and not parts:
        return CommandInput(action="go", args=[verb])
    if verb == "go":
        if parts and parts[0] in DIRECTION_ALIASES:
            parts[0] = DIRECTION_ALIASES[parts[0]]
        return CommandInput(action="go", args=parts[:1])
    if verb in SIMPLE_COMMANDS:
        return CommandInput(action=SIMPLE_COMMANDS[verb], args=parts)
    if verb in ("take", "get"):
        return CommandInput(action="take", args=parts)
    if parts:
        return CommandInput(action="interact", args=parts, verb=verb)
    return CommandInput(action=verb)
