import json

import pytest

from pylitedoc.errors import InvalidPathError, InvalidUpdateError, TypeMismatchError


def test_set_get_has_all(db, kv):
    assert kv.set("name", "ada") == "ada"
    assert kv.get("name") == "ada"
    assert kv.get("missing") is None
    assert kv.get("missing", "fallback") == "fallback"
    assert kv.has("name")
    assert not kv.has("missing")
    assert kv.all() == {"name": "ada"}
    assert json.loads((db.root / "kv" / "kv.json").read_text()) == {"name": "ada"}


def test_dotted_keys_address_nested_values(kv):
    kv.set("a.b", 1)
    assert kv.all() == {"a": {"b": 1}}
    assert kv.get("a.b") == 1
    assert kv.has("a")


def test_set_null_is_present(kv):
    kv.set("n", None)
    assert kv.has("n")
    assert kv.get("n", "default") is None


def test_push_and_pull(kv):
    assert kv.push("tags", "a") == ["a"]
    assert kv.push("tags", ["b", "a"]) == ["a", "b", "a"]
    assert kv.pull("tags", "a") == ["b"]
    assert kv.pull("nothing", "a") is None


def test_push_pull_type_mismatch(kv):
    kv.set("scalar", 5)
    with pytest.raises(TypeMismatchError):
        kv.push("scalar", 1)
    with pytest.raises(TypeMismatchError):
        kv.pull("scalar", 5)
    assert kv.get("scalar") == 5


def test_add_and_take(kv):
    assert kv.add("visits", 3) == 3
    assert kv.add("visits", 2.5) == 5.5
    assert kv.take("visits", 1.5) == 4.0
    assert kv.get("visits") == 4.0


def test_take_saturates_at_floor(kv):
    kv.add("stock", 2)
    assert kv.take("stock", 5) == 0
    assert kv.get("stock") == 0


def test_take_allow_negative(kv):
    kv.add("balance", 1)
    assert kv.take("balance", 3, allow_negative=True) == -2


def test_configured_floor_and_negative_default(tmp_path, settings, locks):
    from pylitedoc.database import Database
    db = Database(tmp_path / "floor", settings=settings.model_copy(update={"counter_floor": 10}), locks=locks)
    store = db.model("store", kind="map")
    assert store.take("x", 1) == 10
    db = Database(tmp_path / "neg", settings=settings.model_copy(update={"allow_negative": True}), locks=locks)
    assert db.model("store", kind="map").take("x", 1) == -1


def test_add_non_numeric_current_counts_as_zero(kv):
    kv.set("n", "abc")
    assert kv.add("n", 2) == 2


def test_add_requires_numeric_delta(kv):
    with pytest.raises(InvalidUpdateError):
        kv.add("n", "2")
    with pytest.raises(InvalidUpdateError):
        kv.take("n", True)


def test_delete(kv):
    kv.set("a", 1)
    kv.set("b.c", 2)
    assert kv.delete("a") is True
    assert kv.delete("a") is False
    assert kv.delete("b.c") is True
    assert kv.all() == {"b": {}}


def test_map_keys_may_be_id(kv):
    kv.set("_id", "value")
    assert kv.get("_id") == "value"


def test_invalid_key(kv):
    with pytest.raises(InvalidPathError):
        kv.set("", 1)
    with pytest.raises(InvalidPathError):
        kv.get("a..b")


def test_map_dry_run(kv):
    kv.set("a", 1)
    assert kv.set("a", 2, dry_run=True) == 2
    assert kv.add("a", 10, dryRun=True) == 11
    assert kv.get("a") == 1


def test_clustered_map_partitions(db):
    counters = db.model("counters", kind="map", cluster=True)
    counters.add("hits", 1, partition="A")
    counters.add("hits", 5, partition="B")
    assert counters.get("hits", partition="A") == 1
    assert counters.get("hits", partition="B") == 5
    stats = counters.stats()
    assert (stats.documents, stats.files) == (2, 2)
