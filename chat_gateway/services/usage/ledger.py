"""Day-scoped request counter enforcing the global daily cap."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo

from chat_gateway.schemas.chat import Usage

from .store import UsageStore

logger = logging.getLogger(__name__)

KEY_SCOPE = "global"
EXPIRY_SECONDS = 60 * 60 * 48


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_count(raw: Optional[str]) -> int:
    if not raw:
        return 0
    try:
        return int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return 0


class QuotaLedger:
    """Reads and bumps the shared counter for the current calendar day.

    The day is taken in ``timezone`` while the advertised reset stays at
    00:00 UTC. ``increment_and_check`` is a plain read-then-write, so
    concurrent requests may undercount.
    """

    def __init__(
        self,
        store: UsageStore,
        *,
        cap: int,
        timezone_name: str = "UTC",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.cap = cap
        self.tz = ZoneInfo(timezone_name)
        self._clock = clock

    def day_key(self) -> str:
        today = self._clock().astimezone(self.tz).strftime("%Y-%m-%d")
        return f"{today}:{KEY_SCOPE}"

    def peek(self) -> Tuple[int, int]:
        return _parse_count(self.store.get(self.day_key())), self.cap

    def usage(self) -> Usage:
        count, cap = self.peek()
        return Usage(count=count, cap=cap)

    def increment_and_check(self) -> Tuple[bool, int]:
        """Persist ``current + 1`` and report whether it exceeds the cap.

        The write happens before the comparison, so the request that trips
        the cap and every later one that day are still counted.
        """
        key = self.day_key()
        current = _parse_count(self.store.get(key))
        next_count = current + 1
        self.store.put(key, str(next_count), ttl_seconds=EXPIRY_SECONDS)
        over_cap = next_count > self.cap
        if over_cap:
            logger.info(f"Daily cap reached for {key}: {next_count}/{self.cap}")
        return over_cap, next_count
