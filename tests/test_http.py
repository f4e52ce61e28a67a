import json

import pytest
from fastapi.testclient import TestClient

from jungeon.main import create_app
from jungeon.world.loader import world_to_dict

from conftest import build_scenario_world, quiet_settings


@pytest.fixture()
def data_dir(tmp_path):
    (tmp_path / "characters.json").write_text(
        json.dumps(
            {
                "characters": [
                    {"id": "char_1", "name": "Aldric", "shortDescription": "A warrior."},
                    {"id": "char_2", "name": "Mira", "shortDescription": "A rogue."},
                ]
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / "verbs.json").write_text(
        json.dumps(
            {
                "objectVerbs": ["touch", "pull"],
                "actionVerbs": [{"verb": "dance", "template": "{name} dances a little jig."}],
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / "world.json").write_text(json.dumps(world_to_dict(build_scenario_world())), encoding="utf-8")
    return tmp_path


@pytest.fixture()
def client(data_dir):
    with TestClient(create_app(data_dir, quiet_settings())) as test_client:
        yield test_client


def login_and_select(client, username="alice", character_id="char_1"):
    session_id = client.post("/api/login", json={"username": username}).json()["sessionId"]
    response = client.post(
        "/api/characters/select", json={"sessionId": session_id, "characterId": character_id}
    )
    return session_id, response


def test_login_lists_characters(client):
    response = client.post("/api/login", json={"username": "alice"})

    assert response.status_code == 200
    body = response.json()
    assert body["sessionId"]
    assert [c["id"] for c in body["characters"]] == ["char_1", "char_2"]
    assert body["characters"][0]["shortDescription"] == "A warrior."


def test_blank_username_is_rejected(client):
    response = client.post("/api/login", json={"username": "  "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid username"


def test_select_character_and_conflict(client):
    _, response = login_and_select(client)

    assert response.status_code == 200
    body = response.json()
    assert body["characterName"] == "Aldric"
    assert body["roomState"]["roomId"] == "room_0"
    assert body["inventory"] == {"gold": 0, "items": []}

    _, conflict = login_and_select(client, "bob", "char_1")
    assert conflict.status_code == 409
    assert conflict.json()["detail"] == "Character is already in use."

    available = client.get("/api/characters/available").json()
    assert [c["id"] for c in available["characters"]] == ["char_2"]


def test_select_with_unknown_session(client):
    response = client.post("/api/characters/select", json={"sessionId": "nope", "characterId": "char_1"})

    assert response.status_code == 404


def test_debug_session(client):
    session_id, _ = login_and_select(client)

    body = client.get(f"/api/debug/session/{session_id}").json()

    assert body["username"] == "alice"
    assert body["characterId"] == "char_1"
    assert body["status"] == "active"
    assert body["connected"] is False
    assert body["timers"] == [f"idle:{session_id}"]
    assert client.get("/api/debug/session/nope").status_code == 404


def test_websocket_command_flow(client):
    session_id, _ = login_and_select(client)

    with client.websocket_connect(f"/ws?sessionId={session_id}") as ws:
        assert ws.receive_json()["type"] == "roomState"
        assert ws.receive_json()["type"] == "inventory"

        ws.send_json({"type": "command", "input": "w"})
        room = ws.receive_json()
        assert room["type"] == "roomState"
        assert room["data"]["roomId"] == "room_2"

        ws.send_json({"type": "command", "input": "collect"})
        assert ws.receive_json() == {"type": "event", "data": {"text": "You collected 5 gold coins."}}
        assert ws.receive_json()["data"]["coins"] == 0
        assert ws.receive_json() == {"type": "inventory", "data": {"gold": 5, "items": []}}

        ws.send_json({"type": "command", "input": "e"})
        assert ws.receive_json()["data"]["roomId"] == "room_0"
        ws.send_json({"type": "command", "input": "east"})
        locked = ws.receive_json()
        assert locked["type"] == "error"
        assert locked["data"]["requiredKey"] == "brass_key"

        ws.send_json({"input": "look"})
        assert ws.receive_json()["data"] == {"message": "Malformed message."}

        debug = client.get(f"/api/debug/session/{session_id}").json()
        assert debug["connected"] is True
        assert debug["inventory"]["gold"] == 5


def test_websocket_rejects_unknown_session(client):
    with client.websocket_connect("/ws?sessionId=nope") as ws:
        message = ws.receive_json()

    assert message["type"] == "error"
    assert message["data"]["message"] == "Unknown session or no character selected."


def test_state_is_saved_on_shutdown(data_dir):
    with TestClient(create_app(data_dir, quiet_settings())) as client:
        login_and_select(client)

    with open(data_dir / "savegame.json", encoding="utf-8") as f:
        saved = json.load(f)
    assert [p["characterId"] for p in saved["players"].values()] == ["char_1"]
