"""Session-scoped key-value storage for the persisted extraction document."""

import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from utils.logger import get_logger

logger = get_logger(__name__)


class SessionStorage(Protocol):
    """Flat string key-value store that lives for one host session."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemorySessionStorage:
    """
    Thread-safe in-process storage.

    Contents live exactly as long as the process, which is the session.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        """Drop every stored item (end of session)."""
        with self._lock:
            self._items.clear()


class FileSessionStorage:
    """
    Storage that keeps one JSON file per key under a session directory.

    Writes go to a temp file first and are moved into place with os.replace,
    so a reader never sees a half-written document. Call clear() when the
    host session ends.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        safe_key = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.directory / f"{safe_key}{self.SUFFIX}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        with self._lock:
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read session storage item {key!r}: {e}")
                return None

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        """Remove every stored item (end of session)."""
        with self._lock:
            if not self.directory.exists():
                return
            for path in self.directory.glob(f"*{self.SUFFIX}"):
                path.unlink(missing_ok=True)
