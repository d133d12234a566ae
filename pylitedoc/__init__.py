"""pylitedoc: a file-backed document store with a Mongo-style query and update language."""
from .aio import AsyncCollection, AsyncDatabase
from .collection import Collection, CollectionStats, DeleteResult, UpdateResult
from .config import Settings, get_settings
from .database import Database
from .errors import (
    ConfigurationError,
    DuplicateKeyError,
    FieldMissingError,
    InvalidDocumentError,
    InvalidPathError,
    InvalidQueryError,
    InvalidUpdateError,
    LiteDocError,
    LockTimeoutError,
    NotFoundError,
    StorageError,
    TypeMismatchError,
    ValidationError,
)
from .logging import configure_logging, get_logger
from .options import Options, parse_sort
from .partition import Partitioner, validate_name
from .paths import MISSING, deep_copy, deep_get, deep_set, deep_unset, split_path, values_equal
from .query import Filter, LogicalOp, QueryOp, compile_filter, equality_terms, match_query
from .schema import CollectionSpec, FieldSpec, Kind, Schema, generate_object_id
from .storage import DEFAULT_LOCKS, LockTable, atomic_write_json, ensure_directory, read_json
from .update import Update, UpdateOp, apply_update, compile_update

__version__ = "0.1.0"

__all__ = [
    "AsyncCollection", "AsyncDatabase",
    "Collection", "CollectionStats", "DeleteResult", "UpdateResult",
    "Settings", "get_settings",
    "Database",
    "ConfigurationError", "DuplicateKeyError", "FieldMissingError", "InvalidDocumentError",
    "InvalidPathError", "InvalidQueryError", "InvalidUpdateError", "LiteDocError",
    "LockTimeoutError", "NotFoundError", "StorageError", "TypeMismatchError", "ValidationError",
    "configure_logging", "get_logger",
    "Options", "parse_sort",
    "Partitioner", "validate_name",
    "MISSING", "deep_copy", "deep_get", "deep_set", "deep_unset", "split_path", "values_equal",
    "Filter", "LogicalOp", "QueryOp", "compile_filter", "equality_terms", "match_query",
    "CollectionSpec", "FieldSpec", "Kind", "Schema", "generate_object_id",
    "DEFAULT_LOCKS", "LockTable", "atomic_write_json", "ensure_directory", "read_json",
    "Update", "UpdateOp", "apply_update", "compile_update",
]
