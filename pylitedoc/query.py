# pylitedoc/query.py
"""Filter expressions.

A filter is a mapping whose entries must all hold. Keys are either logical
combinators (``$and``, ``$or``, ``$nor``) whose value is a list of sub-filters
evaluated against the whole document, or dotted field paths whose value is an
operator map (``{"$gte": 20}``) or a literal that is compared for equality.

Filters are compiled once per call so an unknown operator is rejected before
any document is read, even when the collection is empty.
"""
import re
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Tuple

from .errors import InvalidQueryError
from .paths import MISSING, contains_value, deep_get, split_path, values_equal


class LogicalOp(str, Enum):
    AND = "$and"
    OR = "$or"
    NOR = "$nor"


class QueryOp(str, Enum):
    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    REGEX = "$regex"
    EXISTS = "$exists"


# =========================
# Leaf operators
# =========================
def _compare(val, arg, test: Callable[[Any, Any], bool]) -> bool:
    if val is MISSING or val is None or isinstance(val, bool) != isinstance(arg, bool):
        return False
    try:
        return test(val, arg)
    except TypeError:
        # mismatched types never order against each other
        return False


@lru_cache(maxsize=256)
def _compile_regex(pattern: str):
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise InvalidQueryError(f"Invalid $regex pattern {pattern!r}: {e}") from e


def _op_regex(val, arg) -> bool:
    # case-insensitive everywhere
    if not isinstance(val, str):
        return False
    return _compile_regex(arg).search(val) is not None


_OPERATORS: Dict[QueryOp, Callable[[Any, Any], bool]] = {
    QueryOp.EQ: lambda val, arg: val is not MISSING and values_equal(val, arg),
    QueryOp.NE: lambda val, arg: val is MISSING or not values_equal(val, arg),
    QueryOp.GT: lambda val, arg: _compare(val, arg, lambda a, b: a > b),
    QueryOp.GTE: lambda val, arg: _compare(val, arg, lambda a, b: a >= b),
    QueryOp.LT: lambda val, arg: _compare(val, arg, lambda a, b: a < b),
    QueryOp.LTE: lambda val, arg: _compare(val, arg, lambda a, b: a <= b),
    QueryOp.IN: lambda val, arg: val is not MISSING and contains_value(arg, val),
    QueryOp.NIN: lambda val, arg: val is MISSING or not contains_value(arg, val),
    QueryOp.REGEX: _op_regex,
    QueryOp.EXISTS: lambda val, arg: (val is not MISSING) == bool(arg),
}

_LOGICAL: Dict[LogicalOp, Callable[[List[bool]], bool]] = {
    LogicalOp.AND: all,
    LogicalOp.OR: any,
    LogicalOp.NOR: lambda results: not any(results),
}


def _check_operand(op: QueryOp, arg):
    if op in (QueryOp.IN, QueryOp.NIN) and not isinstance(arg, (list, tuple)):
        raise InvalidQueryError(f"{op.value} requires a list of values.")
    if op is QueryOp.REGEX:
        if not isinstance(arg, str):
            raise InvalidQueryError("$regex requires a string pattern.")
        _compile_regex(arg)


def _is_operator_map(cond) -> bool:
    if not isinstance(cond, dict) or not cond:
        return False
    dollar = [k.startswith("$") for k in cond]
    if any(dollar) and not all(dollar):
        raise InvalidQueryError(f"Cannot mix operators and fields in one condition: {sorted(cond)}")
    return all(dollar)


# =========================
# Compiled filter
# =========================
class Filter:
    """A validated filter expression that can be evaluated against documents."""

    def __init__(self, expression: Mapping = None):
        if expression is None:
            expression = {}
        if not isinstance(expression, Mapping):
            raise InvalidQueryError("Query must be a dict.")
        self.expression = expression
        self._clauses = [self._compile_entry(k, v) for k, v in expression.items()]

    def _compile_entry(self, key, cond):
        if not isinstance(key, str):
            raise InvalidQueryError(f"Query keys must be strings, got {key!r}")
        if key.startswith("$"):
            try:
                op = LogicalOp(key)
            except ValueError:
                raise InvalidQueryError(f"Unsupported logical operator: {key}") from None
            if not isinstance(cond, (list, tuple)) or not cond:
                raise InvalidQueryError(f"{key} requires a non-empty list of clauses.")
            subs = [Filter(clause) for clause in cond]
            return ("logical", op, subs)

        split_path(key)
        if _is_operator_map(cond):
            tests: List[Tuple[QueryOp, Any]] = []
            for name, arg in cond.items():
                try:
                    op = QueryOp(name)
                except ValueError:
                    raise InvalidQueryError(f"Unsupported operator: {name}") from None
                _check_operand(op, arg)
                tests.append((op, arg))
            return ("field", key, tests)
        return ("field", key, [(QueryOp.EQ, cond)])

    def matches(self, doc: dict) -> bool:
        for clause in self._clauses:
            if clause[0] == "logical":
                _, op, subs = clause
                if not _LOGICAL[op]([sub.matches(doc) for sub in subs]):
                    return False
            else:
                _, path, tests = clause
                val = deep_get(doc, path)
                for op, arg in tests:
                    if not _OPERATORS[op](val, arg):
                        return False
        return True

    __call__ = matches

    def __repr__(self):
        return f"Filter({self.expression!r})"


def compile_filter(query) -> Filter:
    if isinstance(query, Filter):
        return query
    return Filter(query)


def match_query(doc: dict, query) -> bool:
    return compile_filter(query).matches(doc)


def equality_terms(query) -> Dict[str, Any]:
    """Collect the ``field == value`` terms an upsert can seed a document from.

    Plain literals and ``$eq`` operands count, recursively through ``$and``.
    """
    if isinstance(query, Filter):
        query = query.expression
    terms: Dict[str, Any] = {}
    for key, cond in (query or {}).items():
        if key == LogicalOp.AND.value:
            for clause in cond:
                terms.update(equality_terms(clause))
        elif key.startswith("$"):
            continue
        elif _is_operator_map(cond):
            if QueryOp.EQ.value in cond:
                terms[key] = cond[QueryOp.EQ.value]
        else:
            terms[key] = cond
    return terms
