import asyncio
import inspect
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from jungeon.config import GameSettings, GhostSettings  # noqa: E402
from jungeon.models import (  # noqa: E402
    ActionVerb,
    Catalog,
    CharacterTemplate,
    CoinConfig,
    Exit,
    ExitType,
    GameState,
    Interaction,
    ItemDefinition,
    Position,
    Room,
    RoomObject,
    SpawnType,
    WorldDefinition,
)
from jungeon.world.engine import WorldEngine  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "asyncio: run test inside a dedicated asyncio event loop without pytest-asyncio.",
    )


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        loop = asyncio.new_event_loop()
        try:
            argnames = pyfuncitem._fixtureinfo.argnames
            kwargs = {name: pyfuncitem.funcargs[name] for name in argnames}
            loop.run_until_complete(pyfuncitem.obj(**kwargs))
        finally:
            loop.close()
        return True
    return None


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def build_scenario_world() -> WorldDefinition:
    """Four rooms around an entrance.

    north: a treasury with 5 gold that never comes back
    west: a fountain whose 5 gold respawns every 300s, holding the brass key
    east: a vault behind a door that needs the brass key
    """
    entrance = Room(
        id="room_0",
        name="Entrance Hall",
        description="A draughty hall.",
        position=Position(0, 0),
        exits={
            "north": Exit(destination="room_1"),
            "west": Exit(destination="room_2"),
            "east": Exit(destination="room_3", type=ExitType.LOCKED, required_key="brass_key"),
        },
        objects=[
            RoomObject(
                id="lever",
                name="Stone Lever",
                description="A heavy lever set into the wall.",
                interactions={
                    "pull": Interaction(
                        message="The lever grinds down and coins spill from a crack!",
                        valid_states=["normal"],
                        new_state="pulled",
                        spawn_coins=3,
                    ),
                    "touch": Interaction(message="The lever is cold."),
                },
            )
        ],
    )
    treasury = Room(
        id="room_1",
        name="Treasury",
        description="Shelves of dust.",
        position=Position(0, -1),
        exits={"south": Exit(destination="room_0")},
        coins=CoinConfig(spawn_type=SpawnType.INITIAL_ONLY, amount=5),
    )
    fountain = Room(
        id="room_2",
        name="Fountain Court",
        description="Water trickles into a basin.",
        position=Position(-1, 0),
        exits={"east": Exit(destination="room_0")},
        items=["brass_key"],
        coins=CoinConfig(spawn_type=SpawnType.RESPAWN_TIMER, amount=5, respawn_interval=300),
    )
    vault = Room(
        id="room_3",
        name="Vault",
        description="A small stone vault.",
        position=Position(1, 0),
        exits={"west": Exit(destination="room_0", type=ExitType.LOCKED, required_key="brass_key")},
    )
    brass_key = ItemDefinition(
        id="brass_key",
        name="Brass Key",
        description="A dull brass key.",
        category="keys",
        key_id="brass_key",
        unlocks="room_0:east",
    )
    return WorldDefinition(
        rooms={r.id: r for r in (entrance, treasury, fountain, vault)},
        starting_room_id="room_0",
        items={brass_key.id: brass_key},
    )


def build_catalog() -> Catalog:
    return Catalog(
        characters={
            "char_1": CharacterTemplate(id="char_1", name="Aldric", short_description="A warrior."),
            "char_2": CharacterTemplate(id="char_2", name="Mira", short_description="A rogue."),
        },
        action_verbs={"dance": ActionVerb(verb="dance", template="{name} dances a little jig.")},
        object_verbs=["touch", "pull"],
    )


def quiet_settings() -> GameSettings:
    return GameSettings(ghosts=GhostSettings(min_ghosts=0, max_ghosts=0))


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def world():
    return build_scenario_world()


@pytest.fixture()
def catalog():
    return build_catalog()


@pytest.fixture()
def settings():
    return quiet_settings()


@pytest.fixture()
def engine(world, catalog, settings, clock):
    return WorldEngine(world, catalog, GameState.initial(world), settings, random.Random(7), clock)
