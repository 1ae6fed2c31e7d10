"""Timezone-aware timestamp helpers.

Model timestamp columns use ``utc_now`` as their default instead of the
deprecated ``datetime.utcnow()``:

    created_at = Column(DateTime, default=utc_now)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time in UTC, with tzinfo attached."""
    return datetime.now(timezone.utc)
