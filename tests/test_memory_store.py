"""Tests for persisting the opponent's learned memory."""

import json

import pytest

from core.exceptions import PersistenceError
from core.opponent.decision_engine import DecisionEngine
from core.opponent.memory_store import LearnedMemory, MemoryStore


def test_save_and_load_round_trip(tmp_path):
    store = MemoryStore(tmp_path / "memory.json")
    memory = LearnedMemory(
        q_table={"chaser_target_up_far": {"up": 0.1, "jump": -0.35}},
        episodes=4,
        epsilon=0.2985,
        learning_rate=0.1,
        discount_factor=0.9,
    )

    assert store.save(memory) is True
    assert store.load() == memory


def test_save_creates_parent_directories(tmp_path):
    store = MemoryStore(tmp_path / "data" / "nested" / "memory.json")
    assert store.save(LearnedMemory()) is True
    assert store.exists()


def test_saved_file_uses_documented_keys(tmp_path):
    path = tmp_path / "memory.json"
    MemoryStore(path).save(LearnedMemory(episodes=2))

    data = json.loads(path.read_text())
    assert set(data) == {"q_table", "episodes", "epsilon", "learning_rate", "discount_factor"}
    assert data["episodes"] == 2


def test_save_failure_returns_false(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    store = MemoryStore(blocker / "memory.json")
    assert store.save(LearnedMemory()) is False


def test_missing_fields_take_defaults():
    memory = LearnedMemory.from_dict({"q_table": {"s": {"up": 1.5}}})
    assert memory.q_table == {"s": {"up": 1.5}}
    assert memory.episodes == 0
    assert memory.epsilon == 0.3
    assert memory.learning_rate == 0.1
    assert memory.discount_factor == 0.9


@pytest.mark.parametrize(
    "record",
    [
        [],
        {"q_table": []},
        {"q_table": 0},
        {"q_table": ""},
        {"q_table": False},
        {"q_table": {"s": 3}},
        {"q_table": {"s": {"up": "high"}}},
        {"episodes": -1},
        {"episodes": 1.5},
        {"epsilon": float("nan")},
        {"learning_rate": "fast"},
    ],
)
def test_malformed_records_are_rejected(record):
    with pytest.raises(PersistenceError):
        LearnedMemory.from_dict(record)


def test_load_unparseable_file_raises(tmp_path):
    path = tmp_path / "memory.json"
    path.write_text("{not json")
    with pytest.raises(PersistenceError):
        MemoryStore(path).load()


def test_copy_is_independent():
    memory = LearnedMemory(q_table={"s": {"up": 1.0}})
    clone = memory.copy()
    clone.q_table["s"]["up"] = 5.0
    assert memory.q_table["s"]["up"] == 1.0


class TestDecisionEngineStartup:
    """Restoring memory when the engine is constructed."""

    def test_absent_file_is_created_with_defaults(self, tmp_path):
        path = tmp_path / "ai_memory.json"
        engine = DecisionEngine(store=MemoryStore(path))

        assert engine.epsilon == 0.3
        assert engine.q_table == {}
        assert json.loads(path.read_text())["q_table"] == {}

    def test_existing_file_is_restored(self, tmp_path):
        path = tmp_path / "ai_memory.json"
        path.write_text(json.dumps({"q_table": {"s": {"left": 2.0}}, "episodes": 7, "epsilon": 0.12}))

        engine = DecisionEngine(store=MemoryStore(path))
        assert engine.episodes == 7
        assert engine.epsilon == 0.12
        assert engine.q_table == {"s": {"left": 2.0}}

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path, caplog):
        path = tmp_path / "ai_memory.json"
        path.write_text("garbage")

        engine = DecisionEngine(store=MemoryStore(path))

        assert engine.q_table == {}
        assert engine.epsilon == 0.3
        assert path.read_text() == "garbage"
        assert any("Error loading opponent memory" in r.message for r in caplog.records)

    def test_save_memory_without_store(self):
        assert DecisionEngine().save_memory() is False

    def test_save_memory_writes_current_values(self, tmp_path):
        path = tmp_path / "ai_memory.json"
        engine = DecisionEngine(store=MemoryStore(path))
        engine.update_q_value("s", engine.select_action("s"), 1.0, "s2")

        assert engine.save_memory() is True
        assert MemoryStore(path).load().q_table == engine.q_table
