"""
Date and time helpers.

Provides timezone normalization and the child-age arithmetic used by
enrollment eligibility checks.
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Return a timezone-aware UTC datetime.

    SQLite drops tzinfo on the way back out, so naive values read from the
    database are assumed to be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def calculate_age(birth_date: date, today: date) -> tuple[int, int]:
    """
    Age in whole years and months.

    A month only counts once its day-of-month has been reached, so a child
    born on the 20th is still a month younger on the 19th.

    Args:
        birth_date: Date of birth
        today: Reference date

    Returns:
        Tuple of (years, months) with 0 <= months < 12

    Examples:
        >>> calculate_age(date(2020, 3, 15), date(2024, 3, 15))
        (4, 0)
        >>> calculate_age(date(2020, 3, 15), date(2024, 3, 14))
        (3, 11)
    """
    years = today.year - birth_date.year
    months = today.month - birth_date.month

    if months < 0:
        years -= 1
        months += 12

    if today.day < birth_date.day:
        months -= 1
        if months < 0:
            years -= 1
            months += 12

    return years, months
