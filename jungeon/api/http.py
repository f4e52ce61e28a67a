from __future__ import annotations

from typing import Iterable

from fastapi import APIRouter, HTTPException

from ..errors import ValidationError
from ..models import CharacterTemplate
from ..schemas import (
    AvailableCharactersResponse,
    CharacterInfo,
    DebugSnapshot,
    LoginRequest,
    LoginResponse,
    SelectCharacterRequest,
    SelectCharacterResponse,
)
from ..services.game_service import GameService


def _character_infos(characters: Iterable[CharacterTemplate]) -> list[CharacterInfo]:
    return [
        CharacterInfo(id=c.id, name=c.name, shortDescription=c.short_description)
        for c in characters
    ]


def create_http_router(game: GameService) -> APIRouter:
    router = APIRouter()

    @router.get(
        "/api/characters/available", response_model=AvailableCharactersResponse
    )
    async def get_available_characters() -> AvailableCharactersResponse:
        characters = await game.list_available_characters()
        return AvailableCharactersResponse(characters=_character_infos(characters))

    @router.post("/api/login", response_model=LoginResponse)
    async def login(req: LoginRequest) -> LoginResponse:
        try:
            session_id, characters = await game.login(req.username)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return LoginResponse(sessionId=session_id, characters=_character_infos(characters))

    @router.post("/api/characters/select", response_model=SelectCharacterResponse)
    async def select_character(req: SelectCharacterRequest) -> SelectCharacterResponse:
        if not game.get_session(req.sessionId):
            raise HTTPException(status_code=404, detail="Session not found")
        try:
            outcome = await game.select_character(req.sessionId, req.characterId)
        except ValidationError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        player = outcome.payload["player"]
        return SelectCharacterResponse(
            characterId=player["characterId"],
            characterName=player["characterName"],
            roomState=outcome.payload["room"],
            inventory=outcome.payload["inventory"],
        )

    @router.get("/api/debug/session/{session_id}", response_model=DebugSnapshot)
    async def debug_session(session_id: str) -> DebugSnapshot:
        session = game.get_session(session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        snapshot = DebugSnapshot(
            username=session.username,
            characterId=session.character_id,
            connected=game.connections.is_connected(session_id),
            timers=[key for key in game.timers.keys() if key.endswith(session_id)],
        )
        player = await game.world.get_player(session_id)
        if player:
            snapshot.status = player.status.value
            snapshot.roomState = await game.describe_room(session_id)
            snapshot.inventory = await game.get_inventory(session_id)
        return snapshot

    return router
