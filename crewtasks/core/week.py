"""Calendar date and week arithmetic.

All functions work on naive calendar dates. Weekday numbers follow the
persisted convention 0=Sunday..6=Saturday, and weeks start on Monday.
"""

import re
from collections.abc import Callable
from datetime import date, datetime, timedelta


DAYS_PER_WEEK = 7

_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def to_date(value: date | str) -> date:
    """Return a calendar date from a ``date`` or an exact ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If the string is anything other than a valid ``YYYY-MM-DD`` date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        msg = f"Expected ISO date string, got {type(value).__name__}"
        raise ValueError(msg)  # noqa: TRY004
    if not _ISO_DATE.fullmatch(value):
        msg = f"Expected YYYY-MM-DD date, got {value!r}"
        raise ValueError(msg)
    return date.fromisoformat(value)


def js_weekday(value: date | str) -> int:
    """Weekday number with 0=Sunday..6=Saturday."""
    return to_date(value).isoweekday() % DAYS_PER_WEEK


def monday_of(value: date | str) -> date:
    """Return the Monday of the week containing ``value``.

    Sunday belongs to the week that started six days earlier.
    """
    day = to_date(value)
    weekday = js_weekday(day)
    offset = 6 if weekday == 0 else weekday - 1
    return day - timedelta(days=offset)


def same_week(a: date | str, b: date | str) -> bool:
    """Return True if both dates fall in the same Monday-start week."""
    return monday_of(a) == monday_of(b)


def week_days(value: date | str) -> list[date]:
    """Return the seven dates Monday..Sunday of the week containing ``value``."""
    start = monday_of(value)
    return [start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def shift_week(monday: date | str, offset: int) -> date:
    """Move a week start by ``offset`` whole weeks."""
    return monday_of(monday) + timedelta(weeks=offset)


def date_of_timestamp(ms: int | float) -> date:
    """Device-local calendar date of an epoch-milliseconds timestamp."""
    return datetime.fromtimestamp(ms / 1000).date()


def now_ms(clock: Callable[[], datetime] | None = None) -> int:
    """Current wall-clock time as epoch milliseconds."""
    current = clock() if clock else datetime.now()
    return int(current.timestamp() * 1000)


def today_iso(clock: Callable[[], datetime] | None = None) -> str:
    """Device-local calendar date as an ISO string."""
    current = clock() if clock else datetime.now()
    return current.date().isoformat()
