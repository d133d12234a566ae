import pytest

from pylitedoc.errors import InvalidPathError
from pylitedoc.paths import (
    MISSING,
    deep_copy,
    deep_get,
    deep_set,
    deep_unset,
    has_path,
    split_path,
    values_equal,
)


def test_split_path_rejects_empty_segments():
    assert split_path("a.b.c") == ["a", "b", "c"]
    with pytest.raises(InvalidPathError):
        split_path("")
    with pytest.raises(InvalidPathError):
        split_path("a..b")
    with pytest.raises(InvalidPathError):
        split_path("a.")


def test_deep_get_nested_and_missing():
    doc = {"a": {"b": {"c": 1}}, "tags": ["x", "y"], "n": 5}
    assert deep_get(doc, "a.b.c") == 1
    assert deep_get(doc, "tags.1") == "y"
    assert deep_get(doc, "tags.7") is MISSING
    assert deep_get(doc, "a.z.c") is MISSING
    # scalar intermediate resolves to absent, not an error
    assert deep_get(doc, "n.x") is MISSING
    assert deep_get(doc, "a.z", default=None) is None
    assert has_path(doc, "a.b")
    assert not has_path(doc, "a.q")


def test_missing_is_falsy_and_distinct_from_none():
    assert not MISSING
    assert MISSING is not None
    assert deep_get({"a": None}, "a") is None


def test_deep_set_creates_and_overwrites_intermediates():
    doc = {"a": 1}
    deep_set(doc, "b.c.d", 2)
    assert doc == {"a": 1, "b": {"c": {"d": 2}}}
    deep_set(doc, "a.x", 3)
    assert doc["a"] == {"x": 3}


def test_deep_set_into_array_index():
    doc = {"items": [{"n": 1}, {"n": 2}]}
    deep_set(doc, "items.1.n", 5)
    assert doc["items"][1] == {"n": 5}


def test_deep_unset_terminal_only():
    doc = {"a": {"b": 1, "c": 2}}
    deep_unset(doc, "a.b")
    assert doc == {"a": {"c": 2}}
    # missing intermediate is a no-op
    deep_unset(doc, "x.y.z")
    assert doc == {"a": {"c": 2}}


def test_deep_unset_array_element_is_nulled():
    doc = {"tags": ["a", "b", "c"]}
    deep_unset(doc, "tags.1")
    assert doc["tags"] == ["a", None, "c"]


def test_values_equal_keeps_booleans_apart():
    assert values_equal(1, 1.0)
    assert not values_equal(1, True)
    assert not values_equal(0, False)
    assert values_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]})
    assert not values_equal({"a": 1}, {"a": 1, "b": 2})
    assert not values_equal("1", 1)


def test_deep_copy_is_independent():
    doc = {"a": {"b": [1, 2]}}
    copy = deep_copy(doc)
    copy["a"]["b"].append(3)
    assert doc == {"a": {"b": [1, 2]}}
