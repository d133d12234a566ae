# pylitedoc/collection.py
"""Collection handles.

A :class:`Collection` is returned by :meth:`pylitedoc.database.Database.model`.
List collections hold an ordered array of documents and expose the
``create``/``find``/``update``/``delete`` family; map collections hold one
JSON object per partition and expose ``get``/``set``/``push``/``pull``/
``add``/``take``/``delete``. Calling an operation of the other kind raises
:class:`~pylitedoc.errors.ConfigurationError`.

Every operation runs one locked cycle on one file: resolve the partition
file, take its lock, load it, compute, persist if anything changed, release.
"""
import contextlib
import os
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from .config import Settings
from .errors import (
    ConfigurationError,
    DuplicateKeyError,
    InvalidDocumentError,
    InvalidUpdateError,
    NotFoundError,
)
from .logging import get_logger
from .options import Options, window
from .partition import Partitioner
from .paths import MISSING, contains_value, deep_copy, deep_get, deep_set, deep_unset, has_path, is_array, is_number, values_equal
from .query import compile_filter, equality_terms
from .schema import ID_GENERATORS, CollectionSpec, Kind
from .storage import LockTable, atomic_write_json, file_size, read_json, remove_file
from .update import Update, compile_update

logger = get_logger(__name__)

ID_FIELD = "_id"


# =========================
# Results (pymongo-like)
# =========================
class UpdateResult:
    def __init__(self, matched_count, modified_count, upserted_id=None, documents=None):
        self.matched_count = matched_count
        self.modified_count = modified_count
        self.upserted_id = upserted_id
        self.documents = documents or []

    def __repr__(self):
        return (f"UpdateResult(matched_count={self.matched_count}, "
                f"modified_count={self.modified_count}, upserted_id={self.upserted_id!r})")


class DeleteResult:
    def __init__(self, deleted_count, documents=None):
        self.deleted_count = deleted_count
        self.documents = documents or []

    def __repr__(self):
        return f"DeleteResult(deleted_count={self.deleted_count})"


class CollectionStats:
    def __init__(self, bytes, documents, files):
        self.bytes = bytes
        self.documents = documents
        self.files = files

    @property
    def human_size(self) -> str:
        kb = self.bytes / 1024
        mb = kb / 1024
        if mb >= 1:
            return f"{mb:.2f} MB"
        if kb >= 1:
            return f"{kb:.2f} KB"
        return f"{self.bytes} B"

    def __repr__(self):
        return f"CollectionStats(size={self.human_size!r}, documents={self.documents}, files={self.files})"


class _State:
    """Loaded file content for one cycle; ``dirty`` marks it for persisting."""

    def __init__(self, data):
        self.data = data
        self.dirty = False

    def replace(self, data):
        self.data = data
        self.dirty = True


# =========================
# Collection
# =========================
class Collection:
    def __init__(self, spec: CollectionSpec, partitioner: Partitioner, settings: Settings, locks: LockTable):
        self.spec = spec
        self.partitioner = partitioner
        self.settings = settings
        self._locks = locks
        self._new_id: Callable[[], str] = ID_GENERATORS[settings.id_strategy]

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def kind(self) -> Kind:
        return self.spec.kind

    def __repr__(self):
        return f"Collection(name={self.name!r}, kind={self.kind.value!r}, cluster={self.spec.cluster})"

    # ----- Cycle -----
    def _expect(self, kind: Kind, operation: str):
        if self.spec.kind is not kind:
            raise ConfigurationError(
                f"'{operation}' is a {kind.value} operation but collection "
                f"'{self.name}' is a {self.spec.kind.value} collection."
            )

    def _empty(self):
        return [] if self.spec.kind is Kind.LIST else {}

    def _expected_type(self) -> type:
        return list if self.spec.kind is Kind.LIST else dict

    def _timeout(self, opts: Options) -> Optional[float]:
        if opts.lock_timeout is not None:
            return opts.lock_timeout if opts.lock_timeout >= 0 else None
        return self.settings.lock_timeout

    @contextmanager
    def _cycle(self, opts: Options, path=None) -> Iterator[_State]:
        path = path or self.partitioner.resolve(self.spec, opts.partition)
        with self._locks.hold(path, self._timeout(opts)):
            state = _State(read_json(path, self._empty, self._expected_type()))
            logger.debug("collection_loaded", collection=self.name, path=str(path), entries=len(state.data))
            yield state
            if state.dirty and not opts.dry_run:
                atomic_write_json(path, state.data, indent=self.settings.json_indent, fsync=self.settings.fsync)
                logger.debug("collection_persisted", collection=self.name, path=str(path), entries=len(state.data))

    # ----- Documents -----
    def _prepare(self, document) -> dict:
        if not isinstance(document, Mapping):
            raise InvalidDocumentError(f"Documents must be dicts, got {type(document).__name__}")
        try:
            doc = deep_copy(dict(document))
        except (TypeError, ValueError) as e:
            raise InvalidDocumentError(f"Document is not JSON serializable: {e}") from e
        schema = self.spec.document_schema
        schema.validate_document(doc, ID_FIELD)
        schema.apply_defaults(doc)
        return doc

    def _assign_id(self, doc: dict, docs: List[dict]) -> dict:
        taken = [d.get(ID_FIELD) for d in docs if isinstance(d, dict)]
        if ID_FIELD in doc:
            if contains_value(taken, doc[ID_FIELD]):
                raise DuplicateKeyError(f"Duplicate _id detected: {doc[ID_FIELD]!r}")
            return doc
        new_id = self._new_id()
        while contains_value(taken, new_id):
            new_id = self._new_id()
        return {ID_FIELD: new_id, **doc}

    # ----- Insert -----
    def create(self, data: Union[Mapping, List[Mapping]], options: Optional[Mapping] = None, **kwargs):
        """Insert one document (a dict) or several (a list of dicts).

        Schema defaults fill any declared field the data leaves out. Returns
        the stored document, or the list of stored documents.
        """
        self._expect(Kind.LIST, "create")
        opts = Options.coerce(options, **kwargs)
        many = isinstance(data, (list, tuple))
        prepared = [self._prepare(d) for d in (data if many else [data])]
        with self._cycle(opts) as state:
            docs = list(state.data)
            stored = []
            for doc in prepared:
                doc = self._assign_id(doc, docs)
                docs.append(doc)
                stored.append(doc)
            state.replace(docs)
        stored = deep_copy(stored)
        return stored if many else stored[0]

    # ----- Find -----
    def find(self, filter: Optional[Mapping] = None, options: Optional[Mapping] = None, **kwargs) -> List[dict]:
        """Return matching documents after ``sort``, then ``skip``, then ``limit``."""
        self._expect(Kind.LIST, "find")
        opts = Options.coerce(options, **kwargs)
        predicate = compile_filter(filter)
        with self._cycle(opts) as state:
            matched = [d for d in state.data if predicate.matches(d)]
        return window(matched, opts)

    def find_one(self, filter: Optional[Mapping] = None, options: Optional[Mapping] = None, **kwargs) -> Optional[dict]:
        """First match after ``sort`` and ``skip``, or None.

        With ``upsert=True`` and no match, a document built from the filter's
        equality terms and the schema defaults is inserted and returned.
        """
        self._expect(Kind.LIST, "find_one")
        opts = Options.coerce(options, **kwargs)
        predicate = compile_filter(filter)
        with self._cycle(opts) as state:
            if opts.sort or opts.skip:
                found = window([d for d in state.data if predicate.matches(d)], opts)
                doc = found[0] if found else None
            else:
                doc = next((d for d in state.data if predicate.matches(d)), None)
            if doc is None and opts.upsert:
                doc = self._assign_id(self._prepare(self._upsert_seed(predicate)), state.data)
                state.replace(list(state.data) + [doc])
            return doc

    def count_documents(self, filter: Optional[Mapping] = None, options: Optional[Mapping] = None, **kwargs) -> int:
        self._expect(Kind.LIST, "count_documents")
        opts = Options.coerce(options, **kwargs)
        predicate = compile_filter(filter)
        with self._cycle(opts) as state:
            return sum(1 for d in state.data if predicate.matches(d))

    def distinct(self, key: str, filter: Optional[Mapping] = None, options: Optional[Mapping] = None, **kwargs) -> List[Any]:
        """Distinct values at ``key``; array values contribute their elements."""
        self._expect(Kind.LIST, "distinct")
        values: List[Any] = []
        for doc in self.find(filter, options, **kwargs):
            val = deep_get(doc, key)
            if val is MISSING:
                continue
            for item in (val if is_array(val) else [val]):
                if not contains_value(values, item):
                    values.append(item)
        return values

    # ----- Update -----
    def _upsert_seed(self, filter: Optional[Mapping]) -> dict:
        seed: Dict[str, Any] = {}
        for path, value in equality_terms(filter).items():
            deep_set(seed, path, deep_copy(value))
        return seed

    def _update(self, filter, update, opts: Options, multi: bool):
        predicate = compile_filter(filter)
        upd = compile_update(update)
        with self._cycle(opts) as state:
            docs = list(state.data)
            matched = modified = 0
            changed, originals = [], []
            for i, doc in enumerate(docs):
                if not predicate.matches(doc):
                    continue
                matched += 1
                new_doc = upd.apply(doc)
                if not values_equal(new_doc, doc):
                    modified += 1
                    docs[i] = new_doc
                changed.append(new_doc)
                originals.append(doc)
                if not multi:
                    break

            if matched:
                if modified:
                    state.replace(docs)
                return UpdateResult(matched, modified, documents=changed), originals

            if opts.upsert:
                new_doc = self._prepare(upd.apply(self._upsert_seed(filter)))
                new_doc = self._assign_id(new_doc, docs)
                docs.append(new_doc)
                state.replace(docs)
                return UpdateResult(0, 0, upserted_id=new_doc[ID_FIELD], documents=[new_doc]), []

        if multi:
            raise NotFoundError(f"No documents in '{self.name}' match {filter!r}")
        return UpdateResult(0, 0), []

    def update_one(self, filter: Optional[Mapping], update: Mapping, options: Optional[Mapping] = None, **kwargs) -> UpdateResult:
        """Apply ``update`` to the first matching document.

        With ``upsert=True`` and no match, a document is built from the
        filter's equality terms, the update is applied to it, and it is
        inserted. No match without upsert gives ``matched_count == 0``.
        """
        self._expect(Kind.LIST, "update_one")
        result, _ = self._update(filter, update, Options.coerce(options, **kwargs), multi=False)
        return result

    def update_many(self, filter: Optional[Mapping], update: Mapping, options: Optional[Mapping] = None, **kwargs) -> UpdateResult:
        """Apply ``update`` to every matching document; raises NotFoundError on no match without upsert."""
        self._expect(Kind.LIST, "update_many")
        result, _ = self._update(filter, update, Options.coerce(options, **kwargs), multi=True)
        return result

    def find_one_and_update(self, filter: Optional[Mapping], update: Mapping, return_document: str = "after",
                            options: Optional[Mapping] = None, **kwargs) -> Optional[dict]:
        """Update the first match and return it as it was ``"before"`` or is ``"after"`` the update."""
        self._expect(Kind.LIST, "find_one_and_update")
        if return_document not in ("before", "after"):
            raise InvalidUpdateError("return_document must be 'before' or 'after'")
        result, originals = self._update(filter, update, Options.coerce(options, **kwargs), multi=False)
        if return_document == "before":
            return originals[0] if originals else None
        return result.documents[0] if result.documents else None

    # ----- Delete -----
    def _delete(self, filter, opts: Options, multi: bool) -> DeleteResult:
        predicate = compile_filter(filter)
        with self._cycle(opts) as state:
            kept, removed = [], []
            for doc in state.data:
                if (multi or not removed) and predicate.matches(doc):
                    removed.append(doc)
                else:
                    kept.append(doc)
            if removed:
                state.replace(kept)
        if multi and not removed:
            raise NotFoundError(f"No documents in '{self.name}' match {filter!r}")
        return DeleteResult(len(removed), removed)

    def delete_one(self, filter: Optional[Mapping], options: Optional[Mapping] = None, **kwargs) -> DeleteResult:
        self._expect(Kind.LIST, "delete_one")
        return self._delete(filter, Options.coerce(options, **kwargs), multi=False)

    def delete_many(self, filter: Optional[Mapping], options: Optional[Mapping] = None, **kwargs) -> DeleteResult:
        self._expect(Kind.LIST, "delete_many")
        return self._delete(filter, Options.coerce(options, **kwargs), multi=True)

    # ----- Map entries -----
    def _mutate_entry(self, update: Mapping, key: str, opts: Options):
        upd = Update(update, protected=())
        with self._cycle(opts) as state:
            new_data = upd.apply(state.data)
            if not values_equal(new_data, state.data):
                state.replace(new_data)
            return deep_get(state.data, key, None)

    def set(self, key: str, value, options: Optional[Mapping] = None, **kwargs):
        """Store ``value`` under ``key``; dotted keys address nested values."""
        self._expect(Kind.MAP, "set")
        return self._mutate_entry({"$set": {key: value}}, key, Options.coerce(options, **kwargs))

    def get(self, key: str, default=None, options: Optional[Mapping] = None, **kwargs):
        self._expect(Kind.MAP, "get")
        opts = Options.coerce(options, **kwargs)
        with self._cycle(opts) as state:
            return deep_get(state.data, key, default)

    def has(self, key: str, options: Optional[Mapping] = None, **kwargs) -> bool:
        self._expect(Kind.MAP, "has")
        opts = Options.coerce(options, **kwargs)
        with self._cycle(opts) as state:
            return has_path(state.data, key)

    def all(self, options: Optional[Mapping] = None, **kwargs) -> Dict[str, Any]:
        self._expect(Kind.MAP, "all")
        opts = Options.coerce(options, **kwargs)
        with self._cycle(opts) as state:
            return state.data

    def push(self, key: str, value, options: Optional[Mapping] = None, **kwargs) -> list:
        """Append ``value`` (or each element of a list) to the array at ``key``."""
        self._expect(Kind.MAP, "push")
        return self._mutate_entry({"$push": {key: value}}, key, Options.coerce(options, **kwargs))

    def pull(self, key: str, value, options: Optional[Mapping] = None, **kwargs):
        """Remove every element equal to ``value`` (or to any element of a list) from the array at ``key``."""
        self._expect(Kind.MAP, "pull")
        return self._mutate_entry({"$pull": {key: value}}, key, Options.coerce(options, **kwargs))

    def _counter(self, key: str, delta, sign: int, allow_negative: Optional[bool], opts: Options):
        if not is_number(delta):
            raise InvalidUpdateError(f"Counter delta for '{key}' must be a number, got {delta!r}")
        if allow_negative is None:
            allow_negative = self.settings.allow_negative
        floor = self.settings.counter_floor
        upd = Update({"$inc": {key: sign * delta}}, protected=())
        with self._cycle(opts) as state:
            new_data = upd.apply(state.data)
            total = deep_get(new_data, key)
            if not allow_negative and total < floor:
                total = floor
                new_data = Update({"$set": {key: floor}}, protected=()).apply(new_data)
            state.replace(new_data)
            return total

    def add(self, key: str, delta, allow_negative: Optional[bool] = None, options: Optional[Mapping] = None, **kwargs):
        """Increase the number at ``key`` by ``delta``; a missing or non-numeric value counts as 0."""
        self._expect(Kind.MAP, "add")
        return self._counter(key, delta, 1, allow_negative, Options.coerce(options, **kwargs))

    def take(self, key: str, delta, allow_negative: Optional[bool] = None, options: Optional[Mapping] = None, **kwargs):
        """Decrease the number at ``key`` by ``delta``, stopping at the configured floor."""
        self._expect(Kind.MAP, "take")
        return self._counter(key, delta, -1, allow_negative, Options.coerce(options, **kwargs))

    def delete(self, key: str, options: Optional[Mapping] = None, **kwargs) -> bool:
        """Remove ``key``; returns False when it was not present."""
        self._expect(Kind.MAP, "delete")
        opts = Options.coerce(options, **kwargs)
        with self._cycle(opts) as state:
            if deep_get(state.data, key) is MISSING:
                return False
            new_data = deep_copy(state.data)
            deep_unset(new_data, key)
            state.replace(new_data)
            return True

    # ----- Maintenance -----
    def partitions(self) -> List[str]:
        return self.partitioner.partitions(self.spec)

    def stats(self, partition=None, options: Optional[Mapping] = None, **kwargs) -> CollectionStats:
        """Size on disk and entry count for one partition, or every partition when none is given."""
        opts = Options.coerce(options, **kwargs)
        files = self.partitioner.existing_files(self.spec, partition if partition is not None else opts.partition)
        total_bytes = documents = 0
        for path in files:
            with self._cycle(opts, path=path) as state:
                documents += len(state.data)
                total_bytes += file_size(path)
        return CollectionStats(total_bytes, documents, len(files))

    def drop(self, partition=None, options: Optional[Mapping] = None, **kwargs) -> int:
        """Delete one partition file, or all of them when none is given. Returns files removed."""
        opts = Options.coerce(options, **kwargs)
        files = self.partitioner.existing_files(self.spec, partition if partition is not None else opts.partition)
        removed = 0
        for path in files:
            with self._locks.hold(path, self._timeout(opts)):
                if remove_file(path):
                    removed += 1
            with contextlib.suppress(OSError):
                # leaves non-empty directories in place
                os.rmdir(path.parent)
        logger.info("collection_dropped", collection=self.name, files=removed)
        return removed
