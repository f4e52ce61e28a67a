from jungeon.models import GameState
from jungeon.world.coins import CoinSpawner


def test_initial_only_room_records_nothing(world, clock):
    state = GameState.initial(world)
    spawner = CoinSpawner(world, state, clock)

    state.room_states["room_1"].coins = 0
    assert spawner.handle_collection("room_1") is None
    assert state.room_states["room_1"].last_coin_spawn is None
    assert spawner.respawn("room_1") == 0


def test_respawn_timer_room_arms_and_refills(world, clock):
    state = GameState.initial(world)
    spawner = CoinSpawner(world, state, clock)

    state.room_states["room_2"].coins = 0
    assert spawner.handle_collection("room_2") == 300.0
    assert state.room_states["room_2"].last_coin_spawn == clock.now

    assert spawner.respawn("room_2") == 5
    assert state.room_states["room_2"].coins == 5
    assert state.room_states["room_2"].last_coin_spawn is None
    # a second wake-up without a new collection is a no-op
    assert spawner.respawn("room_2") == 0


def test_respawn_resets_to_configured_amount(world, clock):
    state = GameState.initial(world)
    spawner = CoinSpawner(world, state, clock)

    spawner.handle_collection("room_2")
    state.room_states["room_2"].coins = 2
    spawner.respawn("room_2")

    assert state.room_states["room_2"].coins == 5


def test_catch_up_splits_overdue_and_pending(world, clock):
    state = GameState.initial(world)
    spawner = CoinSpawner(world, state, clock)
    state.room_states["room_2"].coins = 0
    spawner.handle_collection("room_2")

    clock.advance(100)
    assert spawner.catch_up() == {"room_2": 200.0}
    assert state.room_states["room_2"].coins == 0

    clock.advance(250)
    assert spawner.catch_up() == {}
    assert state.room_states["room_2"].coins == 5
