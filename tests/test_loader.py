import json

import pytest

from jungeon.config import GameSettings, MapSettings
from jungeon.errors import DefinitionLoadError
from jungeon.generation import LockManager
from jungeon.models import ExitType, GameState, SpawnType
from jungeon.world.loader import WorldLoader, world_from_dict, world_to_dict
from jungeon.world.repository import WorldRepository, serialize_state

from conftest import build_scenario_world


def write_catalog(data_dir):
    (data_dir / "characters.json").write_text(
        json.dumps({"characters": [{"id": "char_1", "name": "Aldric", "shortDescription": "A warrior."}]}),
        encoding="utf-8",
    )
    (data_dir / "verbs.json").write_text(
        json.dumps(
            {
                "objectVerbs": ["Touch", "pull"],
                "actionVerbs": [{"verb": "Wave", "template": "{name} waves."}],
            }
        ),
        encoding="utf-8",
    )


def test_world_dict_round_trip():
    world = build_scenario_world()

    restored = world_from_dict(json.loads(json.dumps(world_to_dict(world))))

    assert restored == world
    assert restored.rooms["room_0"].exits["east"].type is ExitType.LOCKED
    assert restored.rooms["room_2"].coins.spawn_type is SpawnType.RESPAWN_TIMER


def test_missing_world_is_generated_and_written(tmp_path):
    write_catalog(tmp_path)
    loader = WorldLoader(tmp_path, GameSettings(seed=3, map=MapSettings(room_count=16)))

    world, catalog = loader.load()

    assert len(world.rooms) == 16
    assert (tmp_path / "world.json").exists()
    assert WorldLoader(tmp_path).load_world() == world
    assert catalog.object_verbs == ["touch", "pull"]
    assert catalog.action_verbs["wave"].template == "{name} waves."
    assert catalog.characters["char_1"].short_description == "A warrior."


def test_malformed_world_raises(tmp_path):
    (tmp_path / "world.json").write_text(json.dumps({"rooms": {"room_0": {}}}), encoding="utf-8")

    with pytest.raises(DefinitionLoadError, match="Malformed world"):
        WorldLoader(tmp_path).load_world()


def test_unreadable_catalog_raises(tmp_path):
    (tmp_path / "characters.json").write_text("[oops", encoding="utf-8")

    with pytest.raises(DefinitionLoadError):
        WorldLoader(tmp_path).load_catalog()


def test_empty_character_list_raises(tmp_path):
    write_catalog(tmp_path)
    (tmp_path / "characters.json").write_text(json.dumps({"characters": []}), encoding="utf-8")

    with pytest.raises(DefinitionLoadError, match="No characters"):
        WorldLoader(tmp_path).load_catalog()


def test_settings_load(tmp_path):
    assert GameSettings.load(tmp_path / "missing.yml") == GameSettings()

    path = tmp_path / "settings.yml"
    path.write_text("seed: 9\nghosts:\n  min_ghosts: 1\n  max_ghosts: 2\n", encoding="utf-8")
    settings = GameSettings.load(path)
    assert settings.seed == 9
    assert settings.ghosts.max_ghosts == 2
    assert settings.map.room_count == 100

    path.write_text("locks:\n  min_locks: 4\n  max_locks: 2\n", encoding="utf-8")
    with pytest.raises(DefinitionLoadError, match="Invalid settings"):
        GameSettings.load(path)


def test_generating_a_world_discards_the_old_save(tmp_path):
    write_catalog(tmp_path)
    settings = GameSettings(seed=1, map=MapSettings(room_count=25))
    loader = WorldLoader(tmp_path, settings)
    old_world = loader.load_world()
    state = GameState.initial(old_world)
    state.unlocked_keys = ["key_0"]
    repository = WorldRepository(loader.save_file)
    repository.write_save(serialize_state(state))

    (tmp_path / "world.json").unlink()
    settings.seed = 2
    new_world = loader.load_world()

    assert not loader.save_file.exists()
    restored = repository.load(new_world)
    assert restored.unlocked_keys == []
    placed = {location.key_id for location in LockManager.keys(new_world)}
    held = {item for rs in restored.room_states.values() for item in rs.items if item.startswith("key_")}
    assert held == placed
