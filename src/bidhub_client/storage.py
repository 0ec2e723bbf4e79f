"""
Persisted key-value storage with cross-context change notification.

A *storage area* is the shared, persisted resource (one per user profile).
Each execution context (an app window, a process) talks to it through its own
storage object. A write made by one context produces a ``StorageEvent`` for
listeners of every *other* context on the same area; the writing context is
not notified of its own writes.

Two backends:

- ``MemoryStorageArea`` / ``MemoryStorage``: in-process area, contexts are
  objects created with ``area.context()``.
- ``FileStorage``: one file per key in a directory. Other processes' writes
  are discovered by ``poll()`` (or the ``watch()`` loop).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
import tempfile
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from bidhub_client.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass(frozen=True)
class StorageEvent:
    """A change to one key made by another context. ``None`` values mean absent."""

    key: str
    old_value: str | None
    new_value: str | None
    origin: str


StorageListener = Callable[[StorageEvent], None]


class Storage(Protocol):
    """What the session store needs from a persisted key-value storage."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def add_listener(self, listener: StorageListener) -> Callable[[], None]: ...


class _ListenerRegistry:
    """Listener bookkeeping shared by the storage backends."""

    def __init__(self) -> None:
        self._listeners: list[StorageListener] = []

    def add_listener(self, listener: StorageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    def _dispatch(self, event: StorageEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Storage listener failed", extra={"key": event.key})


class MemoryStorageArea:
    """In-process storage area shared by several contexts."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._contexts: list[MemoryStorage] = []

    def context(self) -> MemoryStorage:
        """Open a new execution context onto this area."""
        storage = MemoryStorage(self)
        self._contexts.append(storage)
        return storage

    def _write(self, origin: MemoryStorage, key: str, value: str | None) -> None:
        old_value = self._items.get(key)
        if value is None:
            self._items.pop(key, None)
        else:
            self._items[key] = value
        if old_value == value:
            return
        event = StorageEvent(key=key, old_value=old_value, new_value=value, origin=origin.context_id)
        for context in list(self._contexts):
            if context is not origin:
                context._dispatch(event)

    def _detach(self, context: MemoryStorage) -> None:
        with contextlib.suppress(ValueError):
            self._contexts.remove(context)


class MemoryStorage(_ListenerRegistry):
    """One context's view of a ``MemoryStorageArea``."""

    def __init__(self, area: MemoryStorageArea) -> None:
        super().__init__()
        self._area = area
        self.context_id = f"ctx-{uuid.uuid4().hex[:8]}"
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            msg = "Storage context is closed"
            raise StorageUnavailableError(msg)

    def get_item(self, key: str) -> str | None:
        self._check_open()
        return self._area._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_open()
        self._area._write(self, key, value)

    def remove_item(self, key: str) -> None:
        self._check_open()
        self._area._write(self, key, None)

    def close(self) -> None:
        """Detach from the area; further access raises StorageUnavailableError."""
        self._closed = True
        self._area._detach(self)

    def __repr__(self) -> str:
        return f"MemoryStorage(context_id={self.context_id!r})"


class FileStorage(_ListenerRegistry):
    """Directory-backed storage: one UTF-8 file per key, atomic single-key writes."""

    def __init__(self, directory: Path | str) -> None:
        super().__init__()
        self._directory = Path(directory)
        self.context_id = f"pid-{os.getpid()}-{uuid.uuid4().hex[:8]}"
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create storage directory: {self._directory}"
            raise StorageUnavailableError(msg, details={"error": str(exc)}) from exc
        self._snapshot: dict[str, str] = self._read_all()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            msg = f"Invalid storage key: {key!r}"
            raise ValueError(msg)
        return self._directory / key

    def _read_all(self) -> dict[str, str]:
        items: dict[str, str] = {}
        try:
            entries = list(self._directory.iterdir())
        except OSError as exc:
            msg = f"Cannot list storage directory: {self._directory}"
            raise StorageUnavailableError(msg, details={"error": str(exc)}) from exc
        for entry in entries:
            if entry.name.startswith(".") or not entry.is_file():
                continue
            try:
                items[entry.name] = entry.read_text(encoding="utf-8")
            except FileNotFoundError:
                # Removed between listing and reading.
                continue
            except OSError as exc:
                msg = f"Cannot read storage key: {entry.name}"
                raise StorageUnavailableError(msg, details={"error": str(exc)}) from exc
        return items

    def get_item(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Cannot read storage key: {key}"
            raise StorageUnavailableError(msg, details={"error": str(exc)}) from exc

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            msg = f"Cannot write storage key: {key}"
            raise StorageUnavailableError(msg, details={"error": str(exc)}) from exc
        self._snapshot[key] = value

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Cannot remove storage key: {key}"
            raise StorageUnavailableError(msg, details={"error": str(exc)}) from exc
        self._snapshot.pop(key, None)

    def poll(self) -> list[StorageEvent]:
        """Detect changes made by other processes since the last poll and notify."""
        current = self._read_all()
        events: list[StorageEvent] = []
        for key in sorted(set(self._snapshot) | set(current)):
            old_value = self._snapshot.get(key)
            new_value = current.get(key)
            if old_value != new_value:
                events.append(
                    StorageEvent(key=key, old_value=old_value, new_value=new_value, origin="external")
                )
        self._snapshot = current
        for event in events:
            self._dispatch(event)
        return events

    async def watch(self, interval_seconds: float = 1.0) -> None:
        """Poll forever at ``interval_seconds``; stop by cancelling the task."""
        logger.debug("Watching storage directory %s", self._directory)
        while True:
            try:
                self.poll()
            except StorageUnavailableError:
                logger.warning(
                    "Storage poll failed",
                    extra={"directory": str(self._directory)},
                )
            await asyncio.sleep(interval_seconds)

    def __repr__(self) -> str:
        return f"FileStorage(directory={str(self._directory)!r})"
