# pylitedoc/partition.py
import re
from pathlib import Path
from typing import List, Optional, Union

from .errors import ConfigurationError
from .schema import CollectionSpec

# one path segment: no separators, no leading dot
_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\-]*$")

PartitionKey = Union[str, int]


def validate_name(value, what: str = "name") -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigurationError(f"{what} must be a string, got {type(value).__name__}")
    name = str(value)
    if not _NAME_RE.match(name):
        raise ConfigurationError(f"Invalid {what} {name!r}: use letters, digits, '_', '-' or '.'")
    return name


class Partitioner:
    """Maps a collection and optional partition key to its JSON file.

    Layout under ``root``::

        <collection>/<collection>.json               unpartitioned
        <collection>/<partition>/<collection>.json   one file per partition
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def collection_dir(self, spec: CollectionSpec) -> Path:
        return self.root / spec.name

    def resolve(self, spec: CollectionSpec, partition: Optional[PartitionKey] = None) -> Path:
        base = self.collection_dir(spec)
        if not spec.cluster:
            return base / f"{spec.name}.json"
        if partition is None:
            raise ConfigurationError(f"Collection '{spec.name}' is clustered; a partition is required.")
        key = validate_name(partition, "partition")
        return base / key / f"{spec.name}.json"

    def partitions(self, spec: CollectionSpec) -> List[str]:
        if not spec.cluster:
            return []
        base = self.collection_dir(spec)
        if not base.is_dir():
            return []
        return sorted(
            p.name for p in base.iterdir()
            if p.is_dir() and (p / f"{spec.name}.json").is_file()
        )

    def existing_files(self, spec: CollectionSpec, partition: Optional[PartitionKey] = None) -> List[Path]:
        """Files an aggregate read covers: one partition, or all of them when none is named."""
        if spec.cluster and partition is None:
            return [self.resolve(spec, p) for p in self.partitions(spec)]
        path = self.resolve(spec, partition)
        return [path] if path.is_file() else []
