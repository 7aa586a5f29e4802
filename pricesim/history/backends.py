from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger("history_backend")


class HistoryStoreError(RuntimeError):
    """Raised when the persisted document cannot be written."""


def empty_document() -> Dict[str, Any]:
    return {"users": {}, "priceHistory": {}}


def _normalise(document: Any) -> Dict[str, Any]:
    if not isinstance(document, dict):
        raise ValueError(f"expected a JSON object, got {type(document).__name__}")
    if not isinstance(document.get("users"), dict):
        document["users"] = {}
    if not isinstance(document.get("priceHistory"), dict):
        document["priceHistory"] = {}
    return document


class KeyValueStore(ABC):
    """
    Backend contract for the persisted document:
      {"users": {...}, "priceHistory": {"SYM": [{"time": iso, "price": n}, ...]}}

    load() never fails (unreadable state reads as empty).
    save() raises HistoryStoreError on failure.
    """

    @abstractmethod
    async def load(self) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def save(self, document: Dict[str, Any]) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """In-process document, copied on every load/save."""

    def __init__(self, document: Optional[Dict[str, Any]] = None) -> None:
        self._document = _normalise(copy.deepcopy(document)) if document else empty_document()

    async def load(self) -> Dict[str, Any]:
        return copy.deepcopy(self._document)

    async def save(self, document: Dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)


class JsonFileStore(KeyValueStore):
    """
    JSON file on disk.

    Reads and writes run in a worker thread so the event loop is not blocked.
    Writes go to a temp file first and are swapped in with os.replace.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def load(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._load_sync)

    async def save(self, document: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._save_sync, document)

    def _load_sync(self) -> Dict[str, Any]:
        if not self.path.exists():
            return empty_document()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return _normalise(json.load(f))
        except (OSError, ValueError) as e:
            # Corrupt or unreadable file is treated as an empty store.
            log.warning("Data file unreadable path=%s error=%s", self.path, e)
            return empty_document()

    def _save_sync(self, document: Dict[str, Any]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise HistoryStoreError(f"failed to write {self.path}: {e}") from e
