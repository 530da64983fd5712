"""YAML-backed store of conditional-fetch metadata, keyed by URL."""

import os
import threading
from typing import Dict, Optional

import yaml

from .models import FatalError, ResourceMetadata
from .writer import write_atomically

STORE_FILE_MODE = 0o644


class MetadataStore:
    """URL -> ResourceMetadata map guarded by a single lock.

    Workers only touch the map through get/set; persist() is called once the
    worker pool has finished.
    """

    def __init__(self, path: str, entries: Optional[Dict[str, ResourceMetadata]] = None):
        self.path = path
        self._entries: Dict[str, ResourceMetadata] = dict(entries or {})
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: str) -> "MetadataStore":
        if not os.path.exists(path):
            return cls(path)

        try:
            with open(path) as f:
                raw = yaml.safe_load(f)
        except OSError as e:
            raise FatalError(f"Failed to read metadata: {e}") from e
        except yaml.YAMLError as e:
            raise FatalError(f"Failed to parse metadata: {e}") from e

        if raw is None:
            return cls(path)
        if not isinstance(raw, dict):
            raise FatalError(f"Failed to parse metadata: expected a mapping in {path}")

        entries = {}
        for url, entry in raw.items():
            if entry is None:
                entry = {}
            if not isinstance(entry, dict):
                raise FatalError(f"Failed to parse metadata: bad entry for {url}")
            entries[str(url)] = ResourceMetadata.from_dict(entry)
        return cls(path, entries)

    def get(self, url: str) -> ResourceMetadata:
        with self._lock:
            return self._entries.get(url, ResourceMetadata())

    def set(self, url: str, metadata: ResourceMetadata):
        with self._lock:
            self._entries[url] = metadata

    def snapshot(self) -> Dict[str, ResourceMetadata]:
        with self._lock:
            return dict(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def dumps(self) -> str:
        data = {url: meta.to_dict() for url, meta in self.snapshot().items()}
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=True,
                              indent=2, allow_unicode=True)

    def persist(self):
        """Rewrite the whole store file via temp file + rename."""
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            write_atomically(directory, self.path, [self.dumps().encode("utf-8")],
                             mode=STORE_FILE_MODE)
        except OSError as e:
            raise FatalError(f"Failed to write metadata: {e}") from e
