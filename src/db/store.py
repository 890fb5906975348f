"""Record store contract.

All records live in one flat collection, tagged by a canonical entity name. Store adapters expose
five async operations over that collection; `tag=None` means "every entity".
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from src.query.filters import Predicate

ID_FIELD = "id"
RESERVED_FIELDS: frozenset[str] = frozenset({ID_FIELD, "entity", "createdAt", "updatedAt"})


class StoreError(RuntimeError):
    """Raised by store adapters when an operation fails."""


class StoreConnectionError(StoreError):
    """The store is unreachable or rejected our credentials."""


class StoreIndexError(StoreError):
    """The store cannot serve the query without an index that does not exist.

    Reserved for adapters whose backends demand composite indexes for filtered queries. The
    Postgres and in-memory adapters scan JSONB or dicts directly and never raise it; the dispatcher
    still maps it to `IndexRequired` so such an adapter can plug in unchanged.
    """


@dataclass(frozen=True)
class Record:
    """A persisted entity instance."""

    id: str
    entity: str
    created_at: datetime
    updated_at: datetime
    fields: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Flatten into the shape shown to users."""

        return {
            ID_FIELD: self.id,
            "entity": self.entity,
            **self.fields,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


def clean_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    """Drop keys that are owned by the store (`id`, `entity`, timestamps)."""

    return {k: v for k, v in data.items() if k not in RESERVED_FIELDS}


class RecordStore(Protocol):
    """Async CRUD + count over the record collection."""

    async def create(self, tag: str, fields: Mapping[str, Any]) -> Record: ...

    async def read(
            self,
            tag: str | None,
            predicates: Sequence[Predicate],
            limit: int | None = None,
    ) -> list[Record]: ...

    async def update(
            self,
            tag: str | None,
            predicates: Sequence[Predicate],
            fields: Mapping[str, Any],
    ) -> Record | None: ...

    async def delete(self, tag: str | None, predicates: Sequence[Predicate]) -> bool: ...

    async def count(self, tag: str | None, predicates: Sequence[Predicate]) -> int: ...
