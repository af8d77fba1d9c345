"""Persisted key/value storage for client-side state.

Holds the handful of values a browser client would keep in local storage:
the bearer token, the signed-in user profile and the configured API base URL.
"""

import contextlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

from bugboard.config import default_storage_path

logger = logging.getLogger(__name__)


class LocalStorage:
    """JSON-file backed key/value store.

    The file is re-read on every access so that values written by another
    process (the CLI and the web client share one file) are always current.
    Writes are serialized with a lock and replace the file atomically.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        """Initialize storage.

        Args:
            path: Optional path to the storage file. If not provided, uses default.
        """
        self.path = Path(path) if path else default_storage_path()
        self._lock = threading.Lock()

    def _read(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable storage file %s", self.path)
            return {}

        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".storage-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise

    def get_item(self, key: str) -> Optional[Any]:
        """Return the stored value for key, or None."""
        return self._read().get(key)

    def set_item(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under key."""
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove_item(self, key: str) -> None:
        """Remove key if present."""
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)
