from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import weakref
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator
from urllib.parse import quote


logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """
    get/set/delete of JSON blobs by string key.

    ``lock(key)`` serialises read-modify-write cycles on one key; callers
    hold it around load + mutate + save so concurrent writers for the same
    user cannot drop each other's updates.
    """

    def __init__(self):
        # entries vanish once no thread holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[str, Any] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @abstractmethod
    def get(self, key: str) -> Any | None:
        ...

    @abstractmethod
    def set(self, key: str, blob: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        with self._locks_guard:
            key_lock = self._locks.setdefault(key, threading.RLock())
        with key_lock:
            yield


class InMemoryStore(KeyValueStore):
    def __init__(self):
        super().__init__()
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, blob: Any) -> None:
        # stored serialised so callers never share mutable state with the store
        self._data[key] = json.dumps(blob)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One JSON file per key under ``root``; writes replace the file atomically."""

    def __init__(self, root: str | Path):
        super().__init__()
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        # percent-encoding keeps distinct keys in distinct files
        return self.root / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)

    def set(self, key: str, blob: Any) -> None:
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.root, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(blob, fh)
            os.replace(tmp_path, path)
        except Exception:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug("Stored %s (%s)", key, path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def build_store(store_path: str) -> KeyValueStore:
    if store_path:
        logger.info("Using JSON file store at %s", store_path)
        return JsonFileStore(store_path)
    logger.info("Using in-memory store")
    return InMemoryStore()
