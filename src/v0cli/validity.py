"""Decide whether a persisted session is still usable."""

import time
from typing import Optional

from v0cli.models import AuthRecord

THIRTY_DAYS_MS = 30 * 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def is_stale(record: AuthRecord, now: Optional[int] = None) -> bool:
    """Return True once the record is 30 days old or older."""
    current = now_ms() if now is None else now
    return current - record.created_at_ms >= THIRTY_DAYS_MS


def is_valid(record: Optional[AuthRecord], cookie_jar_present: bool, now: Optional[int] = None) -> bool:
    """A session is valid when its cookie file exists and it is younger than 30 days."""
    if not cookie_jar_present or record is None:
        return False
    return not is_stale(record, now)
