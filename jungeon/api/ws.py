from __future__ import annotations

import logging

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError as MessageValidationError

from ..commands.parser import parse_command_input
from ..errors import ValidationError
from ..schemas import CommandMessage, ServerMessage
from ..services.game_service import GameService


logger = logging.getLogger(__name__)


async def send_room_state(ws: WebSocket, game: GameService, session_id: str) -> None:
    room_info = await game.describe_room(session_id)
    await ws.send_json(ServerMessage(type="roomState", data=room_info).model_dump())


async def send_inventory(ws: WebSocket, game: GameService, session_id: str) -> None:
    inventory = await game.get_inventory(session_id)
    await ws.send_json(ServerMessage(type="inventory", data=inventory).model_dump())


async def send_error(ws: WebSocket, text: str) -> None:
    await ws.send_json(ServerMessage(type="error", data={"message": text}).model_dump())


def create_websocket_endpoint(game: GameService):
    async def websocket_endpoint(ws: WebSocket) -> None:
        await ws.accept()
        session_id = ws.query_params.get("sessionId")
        if not session_id or not await game.connect(session_id, ws):
            await send_error(ws, "Unknown session or no character selected.")
            await ws.close()
            return

        await send_room_state(ws, game, session_id)
        await send_inventory(ws, game, session_id)

        try:
            while True:
                raw = await ws.receive_json()
                try:
                    msg = CommandMessage.model_validate(raw)
                except MessageValidationError:
                    await send_error(ws, "Malformed message.")
                    continue
                if msg.type != "command" or msg.input is None:
                    continue
                parsed = parse_command_input(msg.input)
                try:
                    result = await game.command(session_id, parsed)
                except ValidationError as exc:
                    await send_error(ws, str(exc))
                    continue
                for reply in result.replies:
                    await ws.send_json(reply.model_dump())
                if result.refresh_room:
                    await send_room_state(ws, game, session_id)
                if result.refresh_inventory:
                    await send_inventory(ws, game, session_id)
        except WebSocketDisconnect:
            logger.info("Websocket closed for session %s", session_id)
        finally:
            await game.disconnect(session_id, ws)

    return websocket_endpoint
