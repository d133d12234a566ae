# pylitedoc/schema.py
"""Collection declarations: kind, schema and identifier generation."""
import binascii
import os
import time
import uuid
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError, InvalidDocumentError
from .paths import MISSING, deep_copy, deep_get, deep_set, is_number


class Kind(str, Enum):
    LIST = "list"
    MAP = "map"


# =========================
# Identifiers
# =========================
def generate_object_id() -> str:
    """Generate a 24-char hex string similar to Mongo ObjectId."""
    ts = int(time.time())
    rand = binascii.b2a_hex(os.urandom(8)).decode("ascii")
    return f"{ts:08x}{rand}"[:24]


def generate_timestamp_id() -> str:
    """Millisecond timestamp plus a short random suffix, sortable by creation time."""
    return f"{time.time_ns() // 1_000_000}-{binascii.b2a_hex(os.urandom(3)).decode('ascii')}"


ID_GENERATORS = {
    "objectid": generate_object_id,
    "uuid": lambda: str(uuid.uuid4()),
    "timestamp": generate_timestamp_id,
}


# =========================
# Schema
# =========================
_PYTHON_TYPES = {str: "string", int: "number", float: "number", bool: "boolean", dict: "object", list: "array"}

_ZERO_VALUES = {
    "string": lambda: "",
    "number": lambda: 0,
    "boolean": lambda: False,
    "object": dict,
    "array": list,
}

_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": is_number,
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
}


class FieldSpec(BaseModel):
    """One declared field: a primitive type name and an optional default."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Optional[str] = None
    default: Any = None

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, v):
        if isinstance(v, type):
            return _PYTHON_TYPES.get(v, v.__name__)
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set

    def default_value(self):
        if self.has_default:
            return deep_copy(self.default)
        factory = _ZERO_VALUES.get(self.type)
        return factory() if factory else None

    def accepts(self, value) -> bool:
        check = _TYPE_CHECKS.get(self.type)
        return value is None or check is None or check(value)


class Schema(BaseModel):
    """Field table consumed when documents are created.

    Accepts ``{"age": "number"}``, ``{"age": int}`` or
    ``{"age": {"type": "number", "default": 18}}`` per field.
    """

    model_config = ConfigDict(frozen=True)

    field_specs: Dict[str, FieldSpec] = Field(default_factory=dict)
    strict: bool = False

    @classmethod
    def from_declaration(cls, declaration: Optional[Mapping] = None, strict: bool = False) -> "Schema":
        if isinstance(declaration, Schema):
            return declaration
        fields = {}
        for name, spec in (declaration or {}).items():
            try:
                if isinstance(spec, FieldSpec):
                    fields[name] = spec
                elif isinstance(spec, Mapping):
                    fields[name] = FieldSpec(**spec)
                else:
                    fields[name] = FieldSpec(type=spec)
            except PydanticValidationError as e:
                raise ConfigurationError(f"Invalid schema entry for field '{name}': {e}") from e
        return cls(field_specs=fields, strict=strict)

    def apply_defaults(self, doc: dict) -> dict:
        for name, spec in self.field_specs.items():
            if deep_get(doc, name) is MISSING:
                deep_set(doc, name, spec.default_value())
        return doc

    def validate_document(self, doc: dict, id_field: str = "_id"):
        for name, spec in self.field_specs.items():
            value = deep_get(doc, name)
            if value is not MISSING and not spec.accepts(value):
                raise InvalidDocumentError(f"Field '{name}' must be {spec.type}.")
        if self.strict:
            declared = {name.split(".")[0] for name in self.field_specs}
            unknown = [k for k in doc if k != id_field and k not in declared]
            if unknown:
                raise InvalidDocumentError(f"Fields not declared in schema: {', '.join(sorted(unknown))}")

    def to_declaration(self) -> Dict[str, Any]:
        out = {}
        for name, spec in self.field_specs.items():
            entry: Dict[str, Any] = {"type": spec.type}
            if spec.has_default:
                entry["default"] = spec.default
            out[name] = entry
        return out


class CollectionSpec(BaseModel):
    """Everything fixed about a collection at registration time."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: Kind = Kind.LIST
    cluster: bool = False
    document_schema: Schema = Field(default_factory=Schema)

    @field_validator("kind", mode="before")
    @classmethod
    def parse_kind(cls, v):
        if isinstance(v, str):
            try:
                return Kind(v.lower())
            except ValueError:
                raise ConfigurationError(f"Unknown collection kind: {v!r}") from None
        return v

    def to_declaration(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "cluster": self.cluster,
            "strict": self.document_schema.strict,
            "schema": self.document_schema.to_declaration(),
        }

    @classmethod
    def from_declaration(cls, data: Mapping) -> "CollectionSpec":
        return cls(
            name=data["name"],
            kind=data.get("kind", Kind.LIST),
            cluster=data.get("cluster", False),
            document_schema=Schema.from_declaration(data.get("schema"), strict=data.get("strict", False)),
        )
