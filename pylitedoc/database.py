# pylitedoc/database.py
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from .collection import Collection
from .config import Settings, get_settings
from .errors import ConfigurationError
from .logging import ensure_logging, get_logger
from .partition import Partitioner, validate_name
from .schema import CollectionSpec, Schema
from .storage import DEFAULT_LOCKS, LockTable, atomic_write_json, read_json

logger = get_logger(__name__)

# leading '-' can never clash with a collection directory
MODELS_DIR = "-models"


class Database:
    """
    Registration boundary for collections stored under one root directory.
    Usage:
        db = Database("./data")
        users = db.model("users", {"name": "string", "age": {"type": "number", "default": 18}})
        users.create({"name": "ada"})
        counters = db.model("counters", kind="map", cluster=True)
        counters.add("visits", 1, partition="2024")
    """

    def __init__(self, root: Optional[Union[str, Path]] = None, settings: Optional[Settings] = None,
                 locks: Optional[LockTable] = None):
        self.settings = settings or get_settings()
        ensure_logging(self.settings)
        self.root = Path(root if root is not None else self.settings.data_dir)
        self.partitioner = Partitioner(self.root)
        self._locks = locks if locks is not None else DEFAULT_LOCKS
        self._collections: Dict[str, Collection] = {}
        self._guard = threading.Lock()

    def __repr__(self):
        return f"Database(root={str(self.root)!r}, collections={sorted(self._collections)!r})"

    # ----- Registration -----
    def model(self, name: str, schema: Optional[Mapping] = None, *, kind: str = "list", cluster: bool = False,
              strict: bool = False, persist: bool = True) -> Collection:
        """Register a collection and return its handle.

        Registering the same name again with an identical definition returns
        the existing handle; a different definition is a ConfigurationError.
        With ``persist`` the declaration is saved so :meth:`load_models` can
        restore it later.
        """
        name = validate_name(name, "collection name")
        spec = CollectionSpec(
            name=name,
            kind=kind,
            cluster=cluster,
            document_schema=Schema.from_declaration(schema, strict=strict),
        )
        with self._guard:
            existing = self._collections.get(name)
            if existing is not None:
                if existing.spec != spec:
                    raise ConfigurationError(f"Collection '{name}' is already registered with a different definition.")
                return existing
            if persist:
                self._save_declaration(spec)
            coll = self._collections[name] = Collection(spec, self.partitioner, self.settings, self._locks)
        logger.info("collection_registered", collection=name, kind=spec.kind.value, cluster=cluster)
        return coll

    def collection(self, name: str) -> Collection:
        try:
            return self._collections[name]
        except KeyError:
            raise ConfigurationError(f"Collection '{name}' is not registered; call model() first.") from None

    __getitem__ = collection

    def __contains__(self, name) -> bool:
        return name in self._collections

    def list_collection_names(self) -> List[str]:
        return list(self._collections.keys())

    # ----- Declarations -----
    def _declaration_path(self, name: str) -> Path:
        return self.root / MODELS_DIR / f"{name}.json"

    def _save_declaration(self, spec: CollectionSpec):
        path = self._declaration_path(spec.name)
        with self._locks.hold(path, self.settings.lock_timeout):
            atomic_write_json(path, spec.to_declaration(), indent=self.settings.json_indent,
                              fsync=self.settings.fsync)

    def load_models(self) -> List[Collection]:
        """Register every declaration saved by earlier ``model()`` calls under this root."""
        folder = self.root / MODELS_DIR
        if not folder.is_dir():
            return []
        loaded = []
        for path in sorted(folder.glob("*.json")):
            with self._locks.hold(path, self.settings.lock_timeout):
                data = read_json(path, dict, dict)
            if "name" not in data:
                raise ConfigurationError(f"Model declaration {path} has no name.")
            loaded.append(self.model(
                data["name"],
                data.get("schema"),
                kind=data.get("kind", "list"),
                cluster=data.get("cluster", False),
                strict=data.get("strict", False),
                persist=False,
            ))
            logger.info("model_declaration_loaded", collection=data["name"], path=str(path))
        return loaded
