"""Key-value storage backing the daily usage counter."""
from __future__ import annotations

import json
import os
import re
import threading
import time
import uuid
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple


class UsageStore:
    """Minimal key-value contract: text values with a time-to-live."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def put(self, key: str, value: str, *, ttl_seconds: int) -> None:
        raise NotImplementedError


class InMemoryUsageStore(UsageStore):
    """Process-local store, used by default and in tests."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._items: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at <= self._clock():
                del self._items[key]
                return None
            return value

    def put(self, key: str, value: str, *, ttl_seconds: int) -> None:
        with self._lock:
            self._items[key] = (value, self._clock() + ttl_seconds)


class FileUsageStore(UsageStore):
    """Store each key as a small JSON file so counts survive restarts."""

    def __init__(self, base_dir: Path, clock: Callable[[], float] = time.time):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get(self, key: str) -> Optional[str]:
        path = self._key_path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        expires_at = data.get("expires_at")
        if isinstance(expires_at, (int, float)) and expires_at <= self._clock():
            path.unlink(missing_ok=True)
            return None
        value = data.get("value")
        return value if isinstance(value, str) else None

    def put(self, key: str, value: str, *, ttl_seconds: int) -> None:
        payload = {"key": key, "value": value, "expires_at": self._clock() + ttl_seconds}
        path = self._key_path(key)
        # Unique per write so concurrent writers never share a temp file
        tmp_path = path.with_name(f"{path.name}.{os.getpid()}.{uuid.uuid4().hex}.tmp")
        tmp_path.write_text(json.dumps(payload), encoding="utf-8")
        tmp_path.replace(path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _key_path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.base_dir / f"{safe}.json"
