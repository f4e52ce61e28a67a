from jungeon.models import GameState, Position, Room
from jungeon.world.minimap import LEGEND, PLACEHOLDER, MinimapGenerator


def test_render_marks_neighbours_by_priority(world):
    state = GameState.initial(world)
    lines = MinimapGenerator(world).render(world.rooms["room_0"], state).split("\n")

    assert lines[0] == "┌─────────┐"
    assert lines[1] == "│         │"
    assert lines[2] == "│    $    │"
    assert lines[3] == "│  ? @ #  │"
    assert lines[4] == "│         │"
    assert lines[6] == "└─────────┘"
    assert lines[7:] == LEGEND


def test_symbols_follow_runtime_state(world):
    state = GameState.initial(world)
    state.room_states["room_1"].coins = 0
    state.room_states["room_2"].items = []
    state.room_states["room_2"].coins = 0

    lines = MinimapGenerator(world).render(world.rooms["room_0"], state).split("\n")

    assert lines[2] == "│    .    │"
    assert lines[3] == "│  . @ #  │"


def test_unconnected_rooms_are_distant(world):
    world.rooms["room_4"] = Room(id="room_4", name="Closet", description="", position=Position(-1, -1))
    state = GameState.initial(world)
    state.room_states["room_1"].coins = 0

    lines = MinimapGenerator(world).render(world.rooms["room_0"], state).split("\n")

    assert lines[2] == "│  · .    │"


def test_room_without_position_gets_placeholder(world):
    state = GameState.initial(world)
    room = Room(id="nowhere", name="Nowhere", description="")

    assert MinimapGenerator(world).render(room, state) == PLACEHOLDER
    assert MinimapGenerator(world).render(None, state) == PLACEHOLDER
