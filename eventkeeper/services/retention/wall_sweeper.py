# eventkeeper/services/retention/wall_sweeper.py
"""Selection of wall posts past an event's wall retention window."""

import uuid
from collections.abc import Iterable
from datetime import datetime

from eventkeeper.services.retention.calculator import add_months
from eventkeeper.services.retention.types import WallPostSnapshot


def wall_cutoff(wall_retention_months: int | None, now: datetime) -> datetime | None:
    """Posts created before this instant are expired. None when sweeping is disabled."""
    if wall_retention_months is None or wall_retention_months <= 0:
        return None
    try:
        return add_months(now, -wall_retention_months)
    except OverflowError:
        # Window reaches before year 1, so no post is old enough
        return None


def expired_wall_post_ids(
    event_id: uuid.UUID,
    wall_retention_months: int | None,
    posts: Iterable[WallPostSnapshot],
    now: datetime,
) -> list[uuid.UUID]:
    """Ids of the event's posts older than the wall retention window."""
    cutoff = wall_cutoff(wall_retention_months, now)
    if cutoff is None:
        return []

    return [post.id for post in posts if post.event_id == event_id and post.created_at < cutoff]
