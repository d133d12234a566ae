# pylitedoc/options.py
import json
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import InvalidQueryError, ValidationError
from .paths import MISSING, deep_get, is_number

SortSpec = Union[str, Tuple[str, int], List[Tuple[str, int]]]


class Options(BaseModel):
    """Per-call options. Unrecognized keys are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    sort: Optional[Any] = None
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=0, ge=0)
    upsert: bool = False
    dry_run: bool = Field(default=False, alias="dryRun")
    partition: Optional[Union[str, int]] = None
    lock_timeout: Optional[float] = Field(default=None, alias="lockTimeout")

    @field_validator("sort")
    @classmethod
    def check_sort(cls, v):
        return parse_sort(v) if v is not None else None

    @classmethod
    def coerce(cls, options: Optional[Mapping] = None, **overrides) -> "Options":
        if isinstance(options, Options) and not overrides:
            return options
        merged = {}
        if isinstance(options, Options):
            merged.update(options.model_dump(exclude_unset=True))
        elif options:
            merged.update(options)
        merged.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid options: {e}") from e


def parse_sort(sort: SortSpec) -> List[Tuple[str, int]]:
    """Normalise ``"field"``, ``"-field"``, ``("field", -1)`` or a list of pairs."""
    if isinstance(sort, str):
        if sort.startswith("-"):
            return [(sort[1:], -1)]
        return [(sort, 1)]
    if isinstance(sort, (list, tuple)) and len(sort) == 2 and isinstance(sort[0], str) and isinstance(sort[1], int):
        sort = [tuple(sort)]
    if isinstance(sort, Mapping):
        sort = list(sort.items())
    elif isinstance(sort, tuple):
        sort = list(sort)
    if not isinstance(sort, list):
        raise InvalidQueryError(f"Unsupported sort specification: {sort!r}")
    out = []
    for item in sort:
        if isinstance(item, str):
            out.extend(parse_sort(item))
            continue
        key, direction = item
        if direction not in (1, -1):
            raise InvalidQueryError(f"Sort direction for {key!r} must be 1 or -1")
        out.append((key, direction))
    return out


def _rank(value) -> Tuple:
    if value is MISSING or value is None:
        return (0,)
    if isinstance(value, bool):
        return (1, value)
    if is_number(value):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, json.dumps(value, sort_keys=True))


def sort_docs(docs: List[dict], sort: Optional[List[Tuple[str, int]]]) -> List[dict]:
    if not sort:
        return docs
    # list.sort is stable, so sorting by the last key first gives a compound order
    for key, direction in reversed(sort):
        docs.sort(key=lambda d: _rank(deep_get(d, key)), reverse=direction < 0)
    return docs


def window(docs: List[dict], opts: Options) -> List[dict]:
    docs = sort_docs(docs, opts.sort)
    if opts.skip:
        docs = docs[opts.skip:]
    if opts.limit:
        docs = docs[:opts.limit]
    return docs
