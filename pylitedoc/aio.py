# pylitedoc/aio.py
"""asyncio facade.

Each coroutine runs the synchronous locked cycle in a worker thread with
``asyncio.to_thread``, so the event loop never blocks on file I/O and the
per-file lock still serialises concurrent tasks.
"""
import asyncio
import functools
from pathlib import Path
from typing import List, Mapping, Optional, Union

from .collection import Collection
from .config import Settings
from .database import Database
from .storage import LockTable


def _offload(name: str):
    method = getattr(Collection, name)

    @functools.wraps(method)
    async def runner(self, *args, **kwargs):
        return await asyncio.to_thread(getattr(self._collection, name), *args, **kwargs)

    return runner


class AsyncCollection:
    """Coroutine version of :class:`~pylitedoc.collection.Collection`."""

    def __init__(self, collection: Collection):
        self._collection = collection

    @property
    def name(self) -> str:
        return self._collection.name

    @property
    def kind(self):
        return self._collection.kind

    @property
    def sync(self) -> Collection:
        return self._collection

    def __repr__(self):
        return f"Async{self._collection!r}"

    # list kind
    create = _offload("create")
    find = _offload("find")
    find_one = _offload("find_one")
    count_documents = _offload("count_documents")
    distinct = _offload("distinct")
    update_one = _offload("update_one")
    update_many = _offload("update_many")
    find_one_and_update = _offload("find_one_and_update")
    delete_one = _offload("delete_one")
    delete_many = _offload("delete_many")

    # map kind
    set = _offload("set")
    get = _offload("get")
    has = _offload("has")
    all = _offload("all")
    push = _offload("push")
    pull = _offload("pull")
    add = _offload("add")
    take = _offload("take")
    delete = _offload("delete")

    # maintenance
    partitions = _offload("partitions")
    stats = _offload("stats")
    drop = _offload("drop")


class AsyncDatabase:
    def __init__(self, root: Optional[Union[str, Path]] = None, settings: Optional[Settings] = None,
                 locks: Optional[LockTable] = None):
        self._db = Database(root, settings=settings, locks=locks)

    @property
    def root(self) -> Path:
        return self._db.root

    @property
    def sync(self) -> Database:
        return self._db

    async def model(self, name: str, schema: Optional[Mapping] = None, **kwargs) -> AsyncCollection:
        coll = await asyncio.to_thread(functools.partial(self._db.model, name, schema, **kwargs))
        return AsyncCollection(coll)

    def collection(self, name: str) -> AsyncCollection:
        return AsyncCollection(self._db.collection(name))

    __getitem__ = collection

    def __contains__(self, name) -> bool:
        return name in self._db

    def list_collection_names(self) -> List[str]:
        return self._db.list_collection_names()

    async def load_models(self) -> List[AsyncCollection]:
        loaded = await asyncio.to_thread(self._db.load_models)
        return [AsyncCollection(c) for c in loaded]
