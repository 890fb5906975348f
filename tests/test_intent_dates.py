"""Tests for calendar-month offsets and stored date value parsing (UTC)."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from src.intent.dates import months_before, parse_date_value


def test_months_before_same_day_previous_month() -> None:
    now = datetime(2025, 11, 28, 12, 30, tzinfo=UTC)
    assert months_before(now, 1) == datetime(2025, 10, 28, 12, 30, tzinfo=UTC)


def test_months_before_crosses_year_boundary() -> None:
    now = datetime(2025, 1, 15, tzinfo=UTC)
    assert months_before(now, 1) == datetime(2024, 12, 15, tzinfo=UTC)


def test_months_before_clamps_day_of_month() -> None:
    assert months_before(datetime(2025, 3, 31, tzinfo=UTC), 1) == datetime(2025, 2, 28, tzinfo=UTC)
    assert months_before(datetime(2024, 3, 31, tzinfo=UTC), 1) == datetime(2024, 2, 29, tzinfo=UTC)


def test_months_before_rejects_negative_offsets() -> None:
    with pytest.raises(ValueError):
        months_before(datetime(2025, 1, 1, tzinfo=UTC), -1)


def test_parse_iso_date_string_as_utc_midnight() -> None:
    parsed = parse_date_value("2024-01-15")
    assert parsed == datetime(2024, 1, 15, tzinfo=UTC)


def test_parse_iso_datetime_with_offset_converts_to_utc() -> None:
    parsed = parse_date_value("2024-01-15T10:00:00+02:00")
    assert parsed == datetime(2024, 1, 15, 8, tzinfo=UTC)


def test_parse_free_form_date() -> None:
    parsed = parse_date_value("15 January 2024")
    assert parsed is not None
    assert parsed.date() == date(2024, 1, 15)
    assert parsed.tzinfo is not None


def test_parse_date_objects() -> None:
    assert parse_date_value(date(2024, 2, 20)) == datetime(2024, 2, 20, tzinfo=UTC)
    assert parse_date_value(datetime(2024, 2, 20, 9)) == datetime(2024, 2, 20, 9, tzinfo=UTC)


@pytest.mark.parametrize("value", [None, 42, "", "not a date at all", ["2024-01-01"]])
def test_parse_non_dates_returns_none(value: object) -> None:
    assert parse_date_value(value) is None
