"""UTC-everywhere time handling. Invoice dates are calendar dates in UTC."""

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Current calendar date in UTC. Default issue date for new invoices."""
    return now_utc().date()
