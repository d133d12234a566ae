# pylitedoc/update.py
"""Update expressions.

An update maps operator names to per-field arguments and is applied in the
order its operators appear, each one seeing the effects of the previous::

    {"$set": {"profile.name": "Ada"}, "$inc": {"visits": 1}, "$push": {"tags": ["a", "b"]}}

The whole expression is validated by :func:`compile_update` before any
document is touched, and :meth:`Update.apply` works on a copy, so a failing
operator never leaves a half-applied document behind.
"""
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from .errors import FieldMissingError, InvalidUpdateError, TypeMismatchError
from .paths import (
    MISSING,
    contains_value,
    deep_copy,
    deep_get,
    deep_set,
    deep_unset,
    is_array,
    is_number,
    split_path,
)


class UpdateOp(str, Enum):
    SET = "$set"
    UNSET = "$unset"
    INC = "$inc"
    PUSH = "$push"
    PULL = "$pull"
    EXISTS = "$exists"


# operators whose argument names paths only; values are ignored
_PATH_ONLY = {UpdateOp.UNSET, UpdateOp.EXISTS}


def _check_json(path: str, value):
    try:
        json.dumps(value)
    except (TypeError, ValueError) as e:
        raise InvalidUpdateError(f"Value for field {path!r} is not JSON serializable: {e}") from e


def _as_list(value) -> list:
    return list(value) if isinstance(value, (list, tuple)) else [value]


# =========================
# Operator implementations
# =========================
def _op_set(doc: dict, path: str, value):
    deep_set(doc, path, deep_copy(value))


def _op_unset(doc: dict, path: str, _value):
    deep_unset(doc, path)


def _op_inc(doc: dict, path: str, delta):
    cur = deep_get(doc, path)
    if not is_number(cur):
        cur = 0
    deep_set(doc, path, cur + delta)


def _op_push(doc: dict, path: str, value):
    arr = deep_get(doc, path)
    if arr is MISSING:
        arr = []
    elif not is_array(arr):
        raise TypeMismatchError(UpdateOp.PUSH.value, path, arr)
    arr.extend(deep_copy(_as_list(value)))
    deep_set(doc, path, arr)


def _op_pull(doc: dict, path: str, value):
    arr = deep_get(doc, path)
    if arr is MISSING:
        return
    if not is_array(arr):
        raise TypeMismatchError(UpdateOp.PULL.value, path, arr)
    targets = _as_list(value)
    deep_set(doc, path, [x for x in arr if not contains_value(targets, x)])


def _op_exists(doc: dict, path: str, _value):
    if deep_get(doc, path) is MISSING:
        raise FieldMissingError(path)


_HANDLERS: Dict[UpdateOp, Callable[[dict, str, Any], None]] = {
    UpdateOp.SET: _op_set,
    UpdateOp.UNSET: _op_unset,
    UpdateOp.INC: _op_inc,
    UpdateOp.PUSH: _op_push,
    UpdateOp.PULL: _op_pull,
    UpdateOp.EXISTS: _op_exists,
}


# =========================
# Compiled update
# =========================
def _field_items(op: UpdateOp, changes) -> List[Tuple[str, Any]]:
    if op in _PATH_ONLY:
        if isinstance(changes, str):
            return [(changes, True)]
        if isinstance(changes, Mapping):
            return list(changes.items())
        if isinstance(changes, (list, tuple, set)):
            return [(path, True) for path in changes]
        raise InvalidUpdateError(f"{op.value} requires a list or dict of field paths.")
    if not isinstance(changes, Mapping):
        raise InvalidUpdateError(f"{op.value} requires a dict of field: value pairs.")
    return list(changes.items())


class Update:
    """A validated update expression."""

    def __init__(self, expression: Mapping, protected: Sequence[str] = ("_id",)):
        if not isinstance(expression, Mapping):
            raise InvalidUpdateError("Update must be a dict of operators.")
        if not expression:
            raise InvalidUpdateError("Update must contain at least one operator.")
        self.expression = expression
        self.steps: List[Tuple[UpdateOp, List[Tuple[str, Any]]]] = []
        for name, changes in expression.items():
            try:
                op = UpdateOp(name)
            except ValueError:
                raise InvalidUpdateError(f"Unsupported update operator: {name}") from None
            items = _field_items(op, changes)
            for path, value in items:
                split_path(path)
                if op is UpdateOp.INC and not is_number(value):
                    raise InvalidUpdateError(f"$inc requires a numeric value for field: {path}")
                if op not in _PATH_ONLY:
                    _check_json(path, value)
                if op is not UpdateOp.EXISTS:
                    for guarded in protected:
                        if path == guarded or path.startswith(guarded + "."):
                            raise InvalidUpdateError(f"Field '{guarded}' is immutable.")
            self.steps.append((op, items))

    def apply(self, doc: dict) -> dict:
        """Return an updated copy of ``doc``; ``doc`` itself is left untouched."""
        new_doc = deep_copy(doc)
        for op, items in self.steps:
            handler = _HANDLERS[op]
            for path, value in items:
                handler(new_doc, path, value)
        return new_doc

    def __repr__(self):
        return f"Update({self.expression!r})"


def compile_update(update, protected: Sequence[str] = ("_id",)) -> Update:
    if isinstance(update, Update):
        return update
    return Update(update, protected=protected)


def apply_update(doc: dict, update) -> dict:
    return compile_update(update).apply(doc)
