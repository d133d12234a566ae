import pytest

from pylitedoc.errors import (
    FieldMissingError,
    InvalidPathError,
    InvalidUpdateError,
    TypeMismatchError,
    ValidationError,
)
from pylitedoc.update import Update, UpdateOp, apply_update, compile_update


def test_set_is_idempotent():
    doc = {"a": 1, "nested": {"x": 1}}
    update = {"$set": {"a": 2, "nested.y": [1, 2]}}
    once = apply_update(doc, update)
    twice = apply_update(once, update)
    assert once == twice == {"a": 2, "nested": {"x": 1, "y": [1, 2]}}


def test_apply_returns_copy():
    doc = {"tags": ["a"]}
    new_doc = apply_update(doc, {"$push": {"tags": "b"}})
    assert doc == {"tags": ["a"]}
    assert new_doc == {"tags": ["a", "b"]}


@pytest.mark.parametrize("fields", [["a"], {"a": True}, {"a": ""}, "a"])
def test_unset_accepts_sequence_or_map(fields):
    assert apply_update({"a": 1, "b": 2}, {"$unset": fields}) == {"b": 2}


def test_unset_missing_is_noop():
    assert apply_update({"b": 2}, {"$unset": ["x.y"]}) == {"b": 2}


def test_inc_missing_and_non_numeric_start_at_zero():
    assert apply_update({}, {"$inc": {"n": 2}}) == {"n": 2}
    assert apply_update({"n": "abc"}, {"$inc": {"n": 3}}) == {"n": 3}
    assert apply_update({"n": 1.5}, {"$inc": {"n": -0.5}}) == {"n": 1.0}
    assert apply_update({"n": True}, {"$inc": {"n": 1}}) == {"n": 1}


def test_inc_requires_numeric_delta():
    with pytest.raises(InvalidUpdateError):
        compile_update({"$inc": {"n": "1"}})
    with pytest.raises(InvalidUpdateError):
        compile_update({"$inc": {"n": True}})


def test_push_initialises_and_spreads():
    assert apply_update({}, {"$push": {"tags": "a"}}) == {"tags": ["a"]}
    assert apply_update({"tags": ["a"]}, {"$push": {"tags": ["b", "c"]}}) == {"tags": ["a", "b", "c"]}


def test_push_on_non_array_fails():
    with pytest.raises(TypeMismatchError) as exc:
        apply_update({"tags": "a"}, {"$push": {"tags": "b"}})
    assert exc.value.operator == "$push"
    assert exc.value.path == "tags"
    assert isinstance(exc.value, ValidationError)


def test_pull_removes_all_equal_values():
    doc = {"tags": ["a", "b", "a", {"k": 1}, 1, True]}
    assert apply_update(doc, {"$pull": {"tags": "a"}})["tags"] == ["b", {"k": 1}, 1, True]
    assert apply_update(doc, {"$pull": {"tags": ["b", {"k": 1}]}})["tags"] == ["a", "a", 1, True]
    assert apply_update(doc, {"$pull": {"tags": True}})["tags"] == ["a", "b", "a", {"k": 1}, 1]


def test_pull_on_non_array_fails():
    with pytest.raises(TypeMismatchError):
        apply_update({"tags": 3}, {"$pull": {"tags": 3}})


def test_pull_on_missing_path_is_noop():
    assert apply_update({"a": 1}, {"$pull": {"tags": "x"}}) == {"a": 1}


def test_exists_guard():
    assert apply_update({"a": 1}, {"$exists": ["a"], "$set": {"b": 2}}) == {"a": 1, "b": 2}
    with pytest.raises(FieldMissingError) as exc:
        apply_update({"a": 1}, {"$set": {"b": 2}, "$exists": {"c": True}})
    assert exc.value.path == "c"


def test_operators_apply_in_order():
    doc = apply_update({}, {"$set": {"n": 5}, "$inc": {"n": 1}, "$push": {"log": "x"}, "$unset": ["n"]})
    assert doc == {"log": ["x"]}


@pytest.mark.parametrize("bad", [
    {},
    [],
    {"$rename": {"a": "b"}},
    {"$set": ["a"]},
    {"$set": {"_id": 1}},
    {"$unset": ["_id"]},
    {"$inc": {"_id.x": 1}},
    {"$set": {"a": object()}},
    {"$unset": 5},
])
def test_invalid_updates_raise(bad):
    with pytest.raises(InvalidUpdateError):
        compile_update(bad)


def test_bad_path_in_update():
    with pytest.raises(InvalidPathError):
        compile_update({"$set": {"a.": 1}})


def test_unknown_operator_aborts_before_any_change():
    doc = {"a": 1}
    with pytest.raises(InvalidUpdateError):
        apply_update(doc, {"$set": {"a": 2}, "$mul": {"a": 3}})
    assert doc == {"a": 1}


def test_failure_midway_leaves_source_untouched():
    doc = {"a": 1, "tags": "x"}
    upd = Update({"$set": {"a": 2}, "$push": {"tags": "y"}})
    with pytest.raises(TypeMismatchError):
        upd.apply(doc)
    assert doc == {"a": 1, "tags": "x"}


def test_unprotected_update_may_touch_id():
    upd = Update({"$set": {"_id": 1}}, protected=())
    assert upd.apply({}) == {"_id": 1}


def test_operator_enum_values():
    assert {op.value for op in UpdateOp} == {"$set", "$unset", "$inc", "$push", "$pull", "$exists"}
