"""Record operation dispatcher.

Maps a routed database action onto the record store and phrases the outcome in plain English.
"Nothing matched" is a normal outcome with a message, never an error. Store failures are
re-raised as `DispatchError` subclasses whose `public_message` is safe to show to users.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from src.db.store import (
    Record,
    RecordStore,
    StoreConnectionError,
    StoreError,
    StoreIndexError,
)
from src.intent.entities import is_wildcard, normalize, singular
from src.intent.schema import Action, normalize_action
from src.query.filters import Predicate, targeting_predicates, translate

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
DEFAULT_CREATE_TAG = "records"


class DispatchError(RuntimeError):
    """Raised when a record operation fails.

    `str(exc)` carries diagnostics for logs; `public_message` is what users see.
    """

    public_message = "The database operation failed. Please try again."


class InsufficientData(DispatchError):
    """A create was attempted without any fields."""

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return str(self)


class StoreUnavailable(DispatchError):
    public_message = "The database is currently unavailable. Please try again later."


class IndexRequired(DispatchError):
    public_message = "This query needs a database index that is not configured yet."


@dataclass(frozen=True)
class DispatchResult:
    """Human-readable outcome plus the records involved (if any)."""

    message: str
    data: list[Record] | None = None


@dataclass(frozen=True)
class _Scope:
    """Entity scoping for one dispatch call."""

    tag: str | None
    label: str


def _scope(entity: str | None, *, fallback_label: str, plural: bool = False) -> _Scope:
    if is_wildcard(entity):
        return _Scope(tag=None, label=fallback_label)
    assert entity is not None
    tag = normalize(entity)
    return _Scope(tag=tag, label=tag if plural and tag else entity.strip())


class Dispatcher:
    """Runs create/read/update/delete/count against a `RecordStore`."""

    def __init__(self, store: RecordStore, *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        self._store = store
        self._page_size = page_size

    async def dispatch(
            self,
            action: str | Action | None,
            entity: str | None,
            filters: Mapping[str, Any] | None = None,
            data: Mapping[str, Any] | None = None,
    ) -> DispatchResult:
        """Run one routed database action.

        Unknown actions fall back to `read`.

        Raises:
            InsufficientData: create without data.
            StoreUnavailable: the store is unreachable or rejected the credentials.
            IndexRequired: the store needs an index for this query.
            DispatchError: any other store failure.
        """

        kind = normalize_action(action)
        filters = dict(filters or {})
        data = dict(data or {})

        handlers = {
            Action.create: lambda: self._create(entity, data),
            Action.update: lambda: self._update(entity, filters, data),
            Action.delete: lambda: self._delete(entity, filters),
            Action.read: lambda: self._read(entity, filters),
            Action.count: lambda: self._count(entity, filters),
        }

        try:
            result = await handlers[kind]()
        except StoreConnectionError as exc:
            logger.warning("store unavailable action=%s error=%s", kind, exc)
            raise StoreUnavailable(f"Failed to {kind} record: {exc}") from exc
        except StoreIndexError as exc:
            logger.warning("store index required action=%s error=%s", kind, exc)
            raise IndexRequired(f"Failed to {kind} record: {exc}") from exc
        except StoreError as exc:
            logger.error("store failed action=%s error=%s", kind, exc)
            raise DispatchError(f"Failed to {kind} record: {exc}") from exc

        logger.info(
            "dispatched action=%s entity=%s records=%s",
            kind,
            entity,
            None if result.data is None else len(result.data),
        )
        return result

    async def _create(self, entity: str | None, data: dict[str, Any]) -> DispatchResult:
        tag = normalize(entity) or DEFAULT_CREATE_TAG
        if not data:
            raise InsufficientData(f"To add a new {tag}, I need more details.")

        record = await self._store.create(tag, data)
        label = (entity or "record").strip()
        return DispatchResult(message=f"Successfully added a new {label}.", data=[record])

    async def _update(
            self,
            entity: str | None,
            filters: dict[str, Any],
            data: dict[str, Any],
    ) -> DispatchResult:
        if not data:
            return DispatchResult(message="No update data provided.")

        scope = _scope(entity, fallback_label="record")
        record = await self._store.update(scope.tag, self._targeting(entity, filters), data)
        if record is None:
            return DispatchResult(message=self._not_found(entity))
        return DispatchResult(message=f"Successfully updated the {scope.label}.", data=[record])

    async def _delete(self, entity: str | None, filters: dict[str, Any]) -> DispatchResult:
        scope = _scope(entity, fallback_label="record")
        deleted = await self._store.delete(scope.tag, self._targeting(entity, filters))
        if not deleted:
            return DispatchResult(message=self._not_found(entity))
        return DispatchResult(message=f"Successfully deleted the {scope.label}.")

    async def _read(self, entity: str | None, filters: dict[str, Any]) -> DispatchResult:
        scope = _scope(entity, fallback_label="records", plural=True)
        records = await self._store.read(
            scope.tag,
            translate(entity, filters),
            limit=self._page_size,
        )
        if not records:
            return DispatchResult(message=f"No {scope.label} found.", data=[])
        return DispatchResult(message=f"Found {len(records)} {scope.label}.", data=records)

    async def _count(self, entity: str | None, filters: dict[str, Any]) -> DispatchResult:
        scope = _scope(entity, fallback_label="records", plural=True)
        total = await self._store.count(scope.tag, translate(entity, filters))
        if total == 1:
            return DispatchResult(message=f"There is 1 {singular(scope.label)}.")
        return DispatchResult(message=f"There are {total} {scope.label}.")

    @staticmethod
    def _targeting(entity: str | None, filters: dict[str, Any]) -> list[Predicate]:
        return targeting_predicates(translate(entity, filters))

    @staticmethod
    def _not_found(entity: str | None) -> str:
        label = "records" if entity is None or not entity.strip() else entity.strip()
        return f"No {label} found matching criteria."
