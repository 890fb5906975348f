"""Filter translation.

The LLM produces a flat, loosely typed filter bag such as:

    {"department": "Sales", "minSalary": 50000, "joinedLastMonth": true}

`translate` turns it into an ordered list of typed predicates that store adapters understand.
Unknown keys degrade to equality predicates; translation never fails.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from src.intent.dates import months_before, utc_now

ENTITY_KEY = "entity"
JOINED_LAST_MONTH_KEY = "joinedLastMonth"
JOIN_DATE_FIELD = "joinDate"

_RANGE_MARKER_RE = re.compile(r"min|max", flags=re.IGNORECASE)


class Operator(StrEnum):
    """Comparison operators supported by every store adapter."""

    eq = "eq"
    gte = "gte"
    lte = "lte"


@dataclass(frozen=True)
class Eq:
    value: Any


@dataclass(frozen=True)
class Range:
    op: Literal[Operator.gte, Operator.lte]
    value: Any


@dataclass(frozen=True)
class DateRelative:
    """A cutoff `months` calendar months before the moment the query runs."""

    months: int

    def resolve(self, now: datetime | None = None) -> datetime:
        return months_before(now or utc_now(), self.months)


FilterValue = Eq | Range | DateRelative


@dataclass(frozen=True)
class Predicate:
    """One `(field, operator, value)` filter condition."""

    field: str
    condition: FilterValue

    @property
    def op(self) -> Operator:
        if isinstance(self.condition, Eq):
            return Operator.eq
        if isinstance(self.condition, Range):
            return self.condition.op
        return Operator.gte

    def resolved_value(self, now: datetime | None = None) -> Any:
        """Concrete comparison value (relative dates become a UTC datetime)."""

        if isinstance(self.condition, DateRelative):
            return self.condition.resolve(now)
        return self.condition.value

    def as_triple(self, now: datetime | None = None) -> tuple[str, Operator, Any]:
        return self.field, self.op, self.resolved_value(now)


def _range_predicate(key: str, value: Any) -> Predicate:
    field = _RANGE_MARKER_RE.sub("", key).lower()
    op = Operator.gte if "min" in key.lower() else Operator.lte
    return Predicate(field=field, condition=Range(op=op, value=value))


def translate(entity: str | None, filters: Mapping[str, Any] | None) -> list[Predicate]:
    """Translate a flat filter bag into predicates, preserving mapping order.

    Rules per key:
        - `entity` is skipped (entity scoping is resolved separately),
        - keys containing `min`/`max` become `gte`/`lte` range predicates on the stripped,
          lower-cased field name (`minPrice` -> `price >= value`),
        - `joinedLastMonth` becomes `joinDate >= now - 1 month` whatever its value,
        - anything else is an equality predicate.

    `entity` is accepted so entity-specific keys can be special-cased; the current vocabulary
    applies to every entity.
    """

    predicates: list[Predicate] = []
    for key, value in (filters or {}).items():
        if key == ENTITY_KEY:
            continue
        if key == JOINED_LAST_MONTH_KEY:
            predicates.append(Predicate(field=JOIN_DATE_FIELD, condition=DateRelative(months=1)))
        elif _RANGE_MARKER_RE.search(key):
            predicates.append(_range_predicate(key, value))
        else:
            predicates.append(Predicate(field=key, condition=Eq(value)))
    return predicates


def targeting_predicates(predicates: list[Predicate]) -> list[Predicate]:
    """Predicates honored by update/delete: at most the first one.

    Mutations target a record through a single filter so the store never needs a
    composite index. Callers wanting precise targeting put a selective key (an id) first.
    """

    return predicates[:1]
