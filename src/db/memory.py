"""In-process record store.

Used when no `DATABASE_URL` is configured and by the test suite. Matching follows the Postgres
adapter: equality is exact, range comparisons only match values of a comparable type, and records
are returned in insertion order.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import datetime
from numbers import Number
from typing import Any

from src.db.store import ID_FIELD, Record, clean_fields
from src.intent.dates import parse_date_value, utc_now
from src.query.filters import Operator, Predicate


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Number):
        return float(value)  # type: ignore[arg-type]
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _compare(actual: Any, expected: Any) -> int | None:
    """Three-way compare, or `None` if the values are not comparable."""

    if isinstance(expected, datetime):
        left = parse_date_value(actual)
        if left is None:
            return None
        return (left > expected) - (left < expected)

    left_num, right_num = _as_number(actual), _as_number(expected)
    if left_num is not None and right_num is not None:
        return (left_num > right_num) - (left_num < right_num)

    if isinstance(actual, str) and isinstance(expected, str):
        return (actual > expected) - (actual < expected)
    return None


def _field_value(record: Record, name: str) -> tuple[bool, Any]:
    if name == ID_FIELD:
        return True, record.id
    if name in record.fields:
        return True, record.fields[name]
    return False, None


def _matches(record: Record, predicate: Predicate, now: datetime) -> bool:
    present, actual = _field_value(record, predicate.field)
    if not present:
        return False

    expected = predicate.resolved_value(now)
    if predicate.op == Operator.eq:
        return actual == expected

    ordering = _compare(actual, expected)
    if ordering is None:
        return False
    if predicate.op == Operator.gte:
        return ordering >= 0
    return ordering <= 0


class InMemoryRecordStore:
    """A `RecordStore` backed by an ordered dict of records."""

    def __init__(self, records: Sequence[Record] = ()) -> None:
        self._records: dict[str, Record] = {r.id: r for r in records}

    def _select(self, tag: str | None, predicates: Sequence[Predicate]) -> list[Record]:
        now = utc_now()
        return [
            r
            for r in self._records.values()
            if (tag is None or r.entity == tag) and all(_matches(r, p, now) for p in predicates)
        ]

    def insert(self, tag: str, fields: Mapping[str, Any]) -> Record:
        """Synchronous create, used for seeding."""

        now = utc_now()
        record = Record(
            id=uuid.uuid4().hex,
            entity=tag,
            created_at=now,
            updated_at=now,
            fields=clean_fields(fields),
        )
        self._records[record.id] = record
        return record

    async def create(self, tag: str, fields: Mapping[str, Any]) -> Record:
        return self.insert(tag, fields)

    async def read(
            self,
            tag: str | None,
            predicates: Sequence[Predicate],
            limit: int | None = None,
    ) -> list[Record]:
        matched = self._select(tag, predicates)
        return matched if limit is None else matched[:limit]

    async def update(
            self,
            tag: str | None,
            predicates: Sequence[Predicate],
            fields: Mapping[str, Any],
    ) -> Record | None:
        matched = self._select(tag, predicates)
        if not matched:
            return None

        current = matched[0]
        updated = replace(
            current,
            fields={**current.fields, **clean_fields(fields)},
            updated_at=utc_now(),
        )
        self._records[updated.id] = updated
        return updated

    async def delete(self, tag: str | None, predicates: Sequence[Predicate]) -> bool:
        matched = self._select(tag, predicates)
        if not matched:
            return False
        del self._records[matched[0].id]
        return True

    async def count(self, tag: str | None, predicates: Sequence[Predicate]) -> int:
        return len(self._select(tag, predicates))
