"""Time source helpers.

All persisted timestamps are naive UTC so they compare consistently on
SQLite and PostgreSQL.
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)
