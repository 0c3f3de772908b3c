"""
Key/value persistence for the SDK's local cache.

One JSON file per key in a directory. Writes go to a temporary file that
is then renamed over the target, so a crash never leaves half a file.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class LocalStorage:
    """JSON-file storage: get/set/remove by key."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Stored value, or default when missing or unreadable."""
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring corrupt storage file {path}")
            return default

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        with self._lock:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f)
                os.replace(tmp_path, path)
            except BaseException:
                os.unlink(tmp_path)
                raise

    def remove(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)
