"""Persistence backend protocol and the two backends shipped with the store."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import quote

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A backend could not read or write a blob."""


@runtime_checkable
class PersistenceBackend(Protocol):
    """Durable byte-string key/value facility. The store uses a single key."""

    def get(self, key: str, default: bytes = b"") -> bytes: ...

    def put(self, key: str, data: bytes) -> None:
        """Store data under key. Raises PersistenceError on failure."""
        ...


class MemoryBackend:
    """Dict-backed backend for tests and throwaway runs."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self.blobs: dict[str, bytes] = dict(initial or {})
        self.fail_writes = False
        self.writes = 0

    def get(self, key: str, default: bytes = b"") -> bytes:
        return self.blobs.get(key, default)

    def put(self, key: str, data: bytes) -> None:
        if self.fail_writes:
            raise PersistenceError(f"write to '{key}' rejected")
        self.blobs[key] = data
        self.writes += 1


class FileBackend:
    """One file per key under a directory, replaced atomically on write.

    Keys are percent-encoded into file names, so distinct keys never share a
    file and no key can name a path outside the root.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}.json"

    def get(self, key: str, default: bytes = b"") -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return default
        except OSError as e:
            raise PersistenceError(f"cannot read {path}: {e}") from e

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{path.stem}-", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(f"cannot write {path}: {e}") from e
        logger.debug("Wrote %d bytes to %s", len(data), path)
