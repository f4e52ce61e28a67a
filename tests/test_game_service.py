import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from jungeon.commands.base import CommandInput
from jungeon.config import TimerSettings
from jungeon.errors import ValidationError
from jungeon.models import PlayerStatus
from jungeon.services.connection_manager import ConnectionManager
from jungeon.services.game_service import GameService, idle_key, release_key, respawn_key
from jungeon.services.timers import TimerRegistry
from jungeon.sessions import SessionManager


def make_service(engine, **timer_values):
    return GameService(
        engine,
        SessionManager(),
        ConnectionManager(),
        TimerRegistry(),
        timer_settings=TimerSettings(**timer_values),
    )


def make_socket():
    ws = MagicMock()
    ws.send_json = AsyncMock()
    return ws


def sent_texts(ws):
    return [call.args[0]["data"].get("text") for call in ws.send_json.call_args_list]


async def join(service, username="alice", character_id="char_1"):
    session_id, _ = await service.login(username)
    await service.select_character(session_id, character_id)
    ws = make_socket()
    assert await service.connect(session_id, ws) is True
    return session_id, ws


@pytest.mark.asyncio()
async def test_login_validates_username(engine):
    service = make_service(engine)

    with pytest.raises(ValidationError, match="Invalid username"):
        await service.login("   ")
    session_id, characters = await service.login(" alice ")

    assert service.get_session(session_id).username == "alice"
    assert [c.id for c in characters] == ["char_1", "char_2"]
    await service.timers.shutdown()


@pytest.mark.asyncio()
async def test_select_requires_login(engine):
    service = make_service(engine)

    with pytest.raises(ValidationError, match="Not logged in"):
        await service.select_character("nobody", "char_1")


@pytest.mark.asyncio()
async def test_connect_requires_selected_character(engine):
    service = make_service(engine)
    session_id, _ = await service.login("alice")

    assert await service.connect(session_id, make_socket()) is False
    with pytest.raises(ValidationError, match="Select a character first"):
        await service.command(session_id, CommandInput(action="look"))
    await service.timers.shutdown()


@pytest.mark.asyncio()
async def test_player_goes_idle_after_timeout(engine):
    service = make_service(engine, idle_timeout=0.03)
    session_id, _ = await join(service)

    await asyncio.sleep(0.08)

    assert (await engine.get_player(session_id)).status is PlayerStatus.IDLE
    await service.command(session_id, CommandInput(action="look"))
    assert (await engine.get_player(session_id)).status is PlayerStatus.ACTIVE
    await service.timers.shutdown()


@pytest.mark.asyncio()
async def test_disconnect_marks_afk_and_reconnect_cancels_release(engine):
    service = make_service(engine)
    session_id, ws = await join(service)

    await service.disconnect(session_id, ws)

    assert (await engine.get_player(session_id)).status is PlayerStatus.AFK
    assert service.timers.is_active(release_key(session_id))
    assert not service.timers.is_active(idle_key(session_id))

    assert await service.connect(session_id, make_socket()) is True
    assert not service.timers.is_active(release_key(session_id))
    assert (await engine.get_player(session_id)).status is PlayerStatus.ACTIVE
    await service.timers.shutdown()


@pytest.mark.asyncio()
async def test_stale_socket_disconnect_is_ignored(engine):
    service = make_service(engine)
    session_id, old_ws = await join(service)
    new_ws = make_socket()
    await service.connect(session_id, new_ws)

    await service.disconnect(session_id, old_ws)

    assert service.connections.get(session_id) is new_ws
    assert (await engine.get_player(session_id)).status is PlayerStatus.ACTIVE
    await service.timers.shutdown()


@pytest.mark.asyncio()
async def test_release_frees_character_after_timeout(engine):
    service = make_service(engine, character_release_timeout=0.03)
    session_id, ws = await join(service)
    other_id, other_ws = await join(service, "bob", "char_2")

    await service.disconnect(session_id, ws)
    await asyncio.sleep(0.08)

    assert not engine.has_player(session_id)
    assert service.get_session(session_id) is None
    assert [c.id for c in await service.list_available_characters()] == ["char_1"]
    assert "Aldric has disconnected." in sent_texts(other_ws)
    assert "Aldric fades from the dungeon." in sent_texts(other_ws)
    await service.timers.shutdown()


@pytest.mark.asyncio()
async def test_commands_broadcast_to_the_room(engine):
    service = make_service(engine)
    session_id, ws = await join(service)
    _, other_ws = await join(service, "bob", "char_2")

    result = await service.command(session_id, CommandInput(action="say", args=["hi"]))

    assert result.replies == []
    assert 'Aldric says: "hi"' in sent_texts(ws)
    assert 'Aldric says: "hi"' in sent_texts(other_ws)
    await service.timers.shutdown()


@pytest.mark.asyncio()
async def test_collected_coins_respawn_on_timer(engine, world):
    world.rooms["room_2"].coins.respawn_interval = 0.03
    service = make_service(engine)
    session_id, ws = await join(service)
    await service.command(session_id, CommandInput(action="go", args=["west"]))

    await service.command(session_id, CommandInput(action="collect"))
    assert service.timers.is_active(respawn_key("room_2"))
    assert engine.state.room_states["room_2"].coins == 0

    await asyncio.sleep(0.08)

    assert engine.state.room_states["room_2"].coins == 5
    assert "You notice 5 gold coins glinting on the floor." in sent_texts(ws)
    await service.timers.shutdown()


@pytest.mark.asyncio()
async def test_start_restores_players_and_pending_respawns(engine, clock):
    await engine.add_player("saved", "alice", "char_1")
    engine.state.room_states["room_2"].coins = 0
    engine.state.room_states["room_2"].last_coin_spawn = clock.now
    service = make_service(engine)

    await service.start()

    assert service.get_session("saved").character_id == "char_1"
    assert (await engine.get_player("saved")).status is PlayerStatus.AFK
    assert service.timers.is_active(release_key("saved"))
    assert service.timers.is_active(respawn_key("room_2"))
    assert service.timers.is_active("ghosts")
    assert service.timers.is_active("autosave")
    await service.stop()
    assert service.timers.keys() == []


@pytest.mark.asyncio()
async def test_session_without_character_expires(engine):
    service = make_service(engine, character_release_timeout=0.03)
    session_id, _ = await service.login("alice")
    assert service.timers.is_active(release_key(session_id))

    await asyncio.sleep(0.08)

    assert service.get_session(session_id) is None
    assert service.timers.keys() == []


@pytest.mark.asyncio()
async def test_selecting_a_character_keeps_the_session(engine):
    service = make_service(engine, character_release_timeout=0.03)
    session_id, _ = await service.login("alice")
    await service.select_character(session_id, "char_1")

    await asyncio.sleep(0.08)

    assert service.get_session(session_id).character_id == "char_1"
    assert engine.has_player(session_id)
    assert not service.timers.is_active(release_key(session_id))
    await service.timers.shutdown()
