from datetime import datetime, timezone
from typing import Optional

from statbadge.domain.models import VisitorData


def increment_visitor_count(
    previous: Optional[VisitorData], now: Optional[datetime] = None,
) -> VisitorData:
    """
    Returns the next visitor record: count + 1, or 1 when there is no previous value.

    `last_updated` never moves backwards, even if the clock does. The
    read-increment-write around this call is only safe with a single writer
    per key; no locking happens here.
    """
    now = now or datetime.now(timezone.utc)

    if previous is None:
        return VisitorData(count=1, last_updated=now)

    previous_at = previous.last_updated
    if previous_at.tzinfo is None:
        previous_at = previous_at.replace(tzinfo=timezone.utc)

    return VisitorData(
        count=previous.count + 1,
        last_updated=max(now, previous_at),
    )
