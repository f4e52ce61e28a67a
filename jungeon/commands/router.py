from __future__ import annotations

from typing import Any, Dict

from ..errors import LockedPathError, ValidationError
from ..schemas import ServerMessage
from ..world.engine import WorldEngine
from .base import CommandHandler, CommandInput, CommandResult


class CommandRouter:
    """Map parsed commands to handler callables."""

    def __init__(self, world: WorldEngine) -> None:
        self.world = world
        self._handlers: Dict[str, CommandHandler] = {
            "noop": noop_handler,
            "go": go_handler,
            "interact": interact_handler,
            "collect": collect_handler,
            "drop": drop_handler,
            "take": take_handler,
            "inventory": inventory_handler,
            "look": look_handler,
            "map": map_handler,
            "help": help_handler,
            "say": say_handler,
            "emote": emote_handler,
            "action": action_handler,
        }

    async def dispatch(
        self,
        session_id: str,
        command: CommandInput,
    ) -> CommandResult:
        handler = self._handlers.get(command.action)
        if not handler:
            return CommandResult(
                replies=[
                    error_message(
                        f'Unknown command: {command.action}. Type "help" for available commands.'
                    )
                ]
            )
        try:
            return await handler(self.world, session_id, command)
        except LockedPathError as exc:
            return CommandResult(replies=[error_message(str(exc), requiredKey=exc.required_key)])
        except ValidationError as exc:
            return CommandResult(replies=[error_message(str(exc))])


def error_message(text: str, **extra: Any) -> ServerMessage:
    return ServerMessage(type="error", data={"message": text, **extra})


async def noop_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    return CommandResult()


async def go_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    if not command.args:
        raise ValidationError("Go where? Please specify a direction (north, south, east, west).")
    outcome = await world.move(session_id, command.args[0])
    return CommandResult(
        replies=[ServerMessage(type="roomState", data=outcome.payload["room"])],
        broadcasts=outcome.messages,
        refresh_inventory="encounter" in outcome.payload or outcome.payload.get("unlocked", False),
    )


async def interact_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    verb = command.verb or ""
    if not command.args:
        raise ValidationError(f"{verb.capitalize()} what? Please specify an object.")
    allowed = world.catalog.object_verbs
    if allowed and verb not in allowed:
        raise ValidationError('Invalid command. Type "help" for available commands.')
    outcome = await world.interact(session_id, verb, command.text)
    return CommandResult(
        broadcasts=outcome.messages,
        refresh_room=True,
        refresh_inventory=True,
    )


async def collect_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    outcome = await world.collect_coins(session_id)
    return CommandResult(
        broadcasts=outcome.messages,
        refresh_room=True,
        refresh_inventory=True,
    )


async def drop_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    outcome = await world.drop_coins(session_id)
    return CommandResult(
        broadcasts=outcome.messages,
        refresh_room=True,
        refresh_inventory=True,
    )


async def take_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    outcome = await world.take_item(session_id, command.text)
    return CommandResult(
        broadcasts=outcome.messages,
        refresh_room=True,
        refresh_inventory=True,
    )


async def inventory_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    return CommandResult(refresh_inventory=True)


async def look_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    return CommandResult(refresh_room=True)


async def map_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    minimap = await world.minimap(session_id)
    return CommandResult(replies=[ServerMessage(type="map", data={"minimap": minimap})])


async def help_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    return CommandResult(replies=[ServerMessage(type="help", data=world.help_text())])


async def say_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    if not command.text:
        raise ValidationError("Say what? Please provide a message.")
    outcome = await world.say(session_id, command.text)
    return CommandResult(broadcasts=outcome.messages)


async def emote_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    if not command.text:
        raise ValidationError("Emote what? Please provide an action.")
    outcome = await world.emote(session_id, command.text)
    return CommandResult(broadcasts=outcome.messages)


async def action_handler(
    world: WorldEngine,
    session_id: str,
    command: CommandInput,
) -> CommandResult:
    if not command.verb:
        raise ValidationError("Please specify an action verb (e.g., /dance, /wave, /bow).")
    outcome = await world.perform_action(session_id, command.verb)
    return CommandResult(broadcasts=outcome.messages)
