"""Date helpers for relative filters (UTC).

Relative filters such as "joined last month" are stored as an offset and resolved into a concrete
UTC cutoff at query time. Record values may hold dates in many shapes (ISO strings, `date`,
`datetime`, free-form text typed by a user), so comparisons go through `parse_date_value`.
"""

from __future__ import annotations

import calendar
from datetime import UTC, date, datetime, time

import dateparser
from dateparser.conf import Settings as DateparserSettings

_DATEPARSER_SETTINGS = DateparserSettings().replace(
    STRICT_PARSING=True,
    TIMEZONE="UTC",
    TO_TIMEZONE="UTC",
    RETURN_AS_TIMEZONE_AWARE=True,
)


def utc_now() -> datetime:
    return datetime.now(UTC)


def months_before(value: datetime, months: int) -> datetime:
    """Shift a datetime back by whole calendar months.

    The day of month is clamped to the length of the target month (March 31 -> February 28/29).
    """

    if months < 0:
        raise ValueError("months must be non-negative")

    month_index = value.year * 12 + (value.month - 1) - months
    year, month_zero = divmod(month_index, 12)
    month = month_zero + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def parse_date_value(value: object) -> datetime | None:
    """Coerce a stored field value into an aware UTC datetime.

    Returns:
        The parsed datetime, or `None` if the value does not look like a date.
    """

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = dateparser.parse(text, languages=["en"], settings=_DATEPARSER_SETTINGS)
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
