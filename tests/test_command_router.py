import pytest

from jungeon.commands.base import CommandInput
from jungeon.commands.router import CommandRouter


@pytest.fixture()
def router(engine):
    return CommandRouter(engine)


async def dispatch(router, action, args=None, verb=None, session_id="s1"):
    return await router.dispatch(session_id, CommandInput(action=action, args=args or [], verb=verb))


@pytest.mark.asyncio()
async def test_go_command_returns_room_state(router, engine):
    await engine.add_player("s1", "alice", "char_1")

    result = await dispatch(router, "go", ["north"])

    assert result.replies[0].type == "roomState"
    assert result.replies[0].data["roomId"] == "room_1"
    assert result.broadcasts[0].text == "Aldric leaves north."


@pytest.mark.asyncio()
async def test_locked_exit_reports_required_key(router, engine):
    await engine.add_player("s1", "alice", "char_1")

    result = await dispatch(router, "go", ["east"])

    assert result.replies[0].type == "error"
    assert result.replies[0].data["requiredKey"] == "brass_key"


@pytest.mark.asyncio()
async def test_go_without_direction(router, engine):
    await engine.add_player("s1", "alice", "char_1")

    result = await dispatch(router, "go")

    assert result.replies[0].data["message"].startswith("Go where?")


@pytest.mark.asyncio()
async def test_collect_command_sets_refresh_flags(router, engine):
    await engine.add_player("s1", "alice", "char_1")
    await engine.move("s1", "north")

    result = await dispatch(router, "collect")

    assert result.refresh_room is True
    assert result.refresh_inventory is True
    assert result.broadcasts[0].text == "You collected 5 gold coins."


@pytest.mark.asyncio()
async def test_interact_checks_known_verbs(router, engine):
    await engine.add_player("s1", "alice", "char_1")

    result = await dispatch(router, "interact", ["lever"], verb="pull")
    assert result.broadcasts[0].text.startswith("The lever grinds down")

    result = await dispatch(router, "interact", ["lever"], verb="lick")
    assert result.replies[0].data["message"] == 'Invalid command. Type "help" for available commands.'


@pytest.mark.asyncio()
async def test_action_command(router, engine):
    await engine.add_player("s1", "alice", "char_1")

    result = await dispatch(router, "action", verb="dance")

    assert result.replies == []
    assert result.broadcasts[0].text == "Aldric dances a little jig."


@pytest.mark.asyncio()
async def test_say_and_emote_commands(router, engine):
    await engine.add_player("s1", "alice", "char_1")

    said = await dispatch(router, "say", ["Hi all"])
    empty = await dispatch(router, "emote")

    assert said.broadcasts[0].text == 'Aldric says: "Hi all"'
    assert empty.replies[0].data["message"].startswith("Emote what?")


@pytest.mark.asyncio()
async def test_map_and_help_replies(router, engine):
    await engine.add_player("s1", "alice", "char_1")

    minimap = await dispatch(router, "map")
    help_reply = await dispatch(router, "help")

    assert minimap.replies[0].type == "map"
    assert "@" in minimap.replies[0].data["minimap"]
    assert help_reply.replies[0].type == "help"
    assert help_reply.replies[0].data["verbs"] == ["dance"]


@pytest.mark.asyncio()
async def test_unknown_command(router):
    result = await dispatch(router, "unknown")
    assert result.replies[0].type == "error"
    assert result.replies[0].data["message"] == 'Unknown command: unknown. Type "help" for available commands.'
