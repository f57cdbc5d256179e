import json

import pytest

from idle_miner.rng import SeededRandomSource
from idle_miner.simulation import Simulation
from idle_miner.snapshot import GameSnapshot, SnapshotError
from idle_miner.storage import GAME_KEY, SaveStore


@pytest.fixture
def snap():
    sim = Simulation.new_game(rng=SeededRandomSource(21))
    sim.upgrade_rig()
    for _ in range(90):
        sim.tick()
    return sim.snapshot(now=123.0)


def test_snapshot_dict_round_trip(snap):
    again = GameSnapshot.from_dict(snap.to_dict())
    assert again.to_dict() == snap.to_dict()
    assert again.rig.level == 2
    assert again.real_time == 123.0


def test_snapshot_rejects_garbage():
    with pytest.raises(SnapshotError):
        GameSnapshot.from_dict([1, 2, 3])
    with pytest.raises(SnapshotError):
        GameSnapshot.from_dict({"clock": {}})
    with pytest.raises(SnapshotError):
        GameSnapshot.from_json("{not json")


def test_missing_save_loads_nothing(tmp_path):
    store = SaveStore(str(tmp_path / "save.json"))
    assert store.load_game() is None
    assert store.seen_welcome() is False


def test_save_and_load(tmp_path, snap):
    store = SaveStore(str(tmp_path / "save.json"))
    store.save_game(snap)
    loaded = store.load_game()
    assert loaded is not None
    assert loaded.to_dict() == snap.to_dict()


def test_welcome_flag_survives_game_save(tmp_path, snap):
    store = SaveStore(str(tmp_path / "save.json"))
    store.mark_welcome_seen()
    store.save_game(snap)
    store.delete_game()
    assert store.seen_welcome() is True
    assert store.load_game() is None


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "save.json"
    path.write_text("{{{", encoding="utf-8")
    assert SaveStore(str(path)).load_game() is None


def test_malformed_game_blob_is_ignored(tmp_path):
    path = tmp_path / "save.json"
    path.write_text(json.dumps({GAME_KEY: {"market": "oops"}}), encoding="utf-8")
    assert SaveStore(str(path)).load_game() is None
