from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class CharacterInfo(BaseModel):
    id: str
    name: str
    shortDescription: str


class AvailableCharactersResponse(BaseModel):
    characters: List[CharacterInfo]


class LoginRequest(BaseModel):
    username: str


class LoginResponse(BaseModel):
    sessionId: str
    characters: List[CharacterInfo]


class SelectCharacterRequest(BaseModel):
    sessionId: str
    characterId: str


class SelectCharacterResponse(BaseModel):
    characterId: str
    characterName: str
    roomState: Dict[str, Any]
    inventory: Dict[str, Any]


class CommandMessage(BaseModel):
    type: str
    input: Optional[str] = None


class ServerMessage(BaseModel):
    type: str
    data: Dict[str, Any]


class DebugSnapshot(BaseModel):
    username: str
    characterId: Optional[str] = None
    status: Optional[str] = None
    connected: bool = False
    roomState: Optional[Dict[str, Any]] = None
    inventory: Optional[Dict[str, Any]] = None
    timers: List[str] = []
