"""
Shared values for tests.
"""

from datetime import datetime, timedelta, timezone


# Approval instant for listings in tests
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def at(hours: float) -> datetime:
    """The instant `hours` hours after T0."""
    return T0 + timedelta(hours=hours)
