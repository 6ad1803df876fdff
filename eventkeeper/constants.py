# eventkeeper/constants.py
"""
Centralized policy constants organized by domain.

All lifecycle and retention numbers used throughout the codebase should be
defined here with documentation explaining their purpose.
"""

from datetime import timedelta


class LifecycleDefaults:
    """Event lifecycle policy."""

    # Events without an explicit end are treated as lasting this long
    DEFAULT_EVENT_DURATION = timedelta(hours=3)


class RetentionDefaults:
    """Data retention policy for completed events."""

    DATA_RETENTION_MONTHS = 24              # Applied at event creation
    NOTIFICATION_DAYS_BEFORE_ARCHIVAL = 30  # Organizer warning lead time
    DELETION_GRACE_PERIOD_DAYS = 30         # Scheduled deletion countdown


class RetentionLimits:
    """Accepted ranges for organizer-supplied retention settings."""

    DATA_RETENTION_MONTHS_MIN = 1
    DATA_RETENTION_MONTHS_MAX = 120         # 10 years
    WALL_RETENTION_MONTHS_MIN = 1
    WALL_RETENTION_MONTHS_MAX = 120
    GRACE_PERIOD_DAYS_MIN = 1
    GRACE_PERIOD_DAYS_MAX = 365


class NotificationTypes:
    """In-app notification types emitted by the retention job."""

    RETENTION_WARNING = "RETENTION_WARNING"


class Initiators:
    """Values for the initiated_by column of lifecycle audit rows."""

    SCHEDULER = "scheduler"
    ORGANIZER = "organizer"
    ADMIN = "admin"
    CLI = "cli"
