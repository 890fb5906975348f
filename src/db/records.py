"""Postgres record store (JSONB).

Records are rows of a single `records` table: `entity` holds the canonical tag and `fields` holds
the free-form attributes as JSONB. Field names and values coming from users are always bound as
parameters; the SQL text itself is built only from fixed fragments.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, LiteralString, cast

import psycopg
from psycopg import errors
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from src.db.pool import get_conn
from src.db.store import (
    ID_FIELD,
    Record,
    StoreConnectionError,
    StoreError,
    clean_fields,
)
from src.intent.dates import utc_now
from src.query.filters import Operator, Predicate

logger = logging.getLogger(__name__)

_COLUMNS = "id::text, entity, fields, created_at, updated_at"
_ORDER = "ORDER BY created_at, id"

_RANGE_SQL: dict[Operator, str] = {
    Operator.gte: ">=",
    Operator.lte: "<=",
}


def _predicate_clause(predicate: Predicate, now: datetime) -> tuple[str, list[Any]]:
    value = predicate.resolved_value(now)

    if predicate.field == ID_FIELD:
        if predicate.op == Operator.eq:
            return "id::text = %s", [str(value)]
        return f"id::text {_RANGE_SQL[predicate.op]} %s", [str(value)]

    if predicate.op == Operator.eq:
        # Containment keeps equality on the GIN index.
        return "fields @> %s", [Jsonb({predicate.field: value})]

    operator = _RANGE_SQL[predicate.op]
    if isinstance(value, datetime):
        # Dates are stored as ISO strings; compare on the calendar day.
        return f"(fields ->> %s) {operator} %s", [predicate.field, value.date().isoformat()]

    return (
        f"(jsonb_typeof(fields -> %s) = jsonb_typeof(%s) AND (fields -> %s) {operator} %s)",
        [predicate.field, Jsonb(value), predicate.field, Jsonb(value)],
    )


def build_where(
        tag: str | None,
        predicates: Sequence[Predicate],
        *,
        now: datetime | None = None,
) -> tuple[str, list[Any]]:
    """Build a `WHERE` clause (possibly empty) and its parameters."""

    moment = now or utc_now()
    clauses: list[str] = []
    params: list[Any] = []

    if tag is not None:
        clauses.append("entity = %s")
        params.append(tag)

    for predicate in predicates:
        clause, p = _predicate_clause(predicate, moment)
        clauses.append(clause)
        params.extend(p)

    if not clauses:
        return "", params
    return "WHERE " + " AND ".join(clauses), params


def _record_from_row(row: Sequence[Any]) -> Record:
    record_id, entity, fields, created_at, updated_at = row
    return Record(
        id=record_id,
        entity=entity,
        created_at=created_at,
        updated_at=updated_at,
        fields=dict(fields or {}),
    )


class PostgresRecordStore:
    """A `RecordStore` over the `records` table."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    @asynccontextmanager
    async def _cursor(self) -> AsyncIterator[psycopg.AsyncCursor]:
        try:
            async with get_conn(self._pool) as conn:
                async with conn.cursor() as cur:
                    yield cur
                await conn.commit()
        except errors.QueryCanceled as exc:
            raise StoreError("Database query timed out") from exc
        except (errors.InvalidAuthorizationSpecification, errors.InsufficientPrivilege) as exc:
            raise StoreConnectionError("Database authentication failed") from exc
        except psycopg.OperationalError as exc:
            raise StoreConnectionError("Database is unreachable") from exc
        except errors.UndefinedTable as exc:
            raise StoreError("records table is missing (run `python -m src.db.migrate`)") from exc
        except psycopg.Error as exc:
            raise StoreError(str(exc)) from exc

    async def _execute(self, cur: psycopg.AsyncCursor, sql: str, params: list[Any]) -> None:
        logger.debug("store query sql=%s", sql)
        await cur.execute(cast(LiteralString, sql), params)

    async def create(self, tag: str, fields: Mapping[str, Any]) -> Record:
        async with self._cursor() as cur:
            await self._execute(
                cur,
                f"INSERT INTO records (entity, fields) VALUES (%s, %s) RETURNING {_COLUMNS}",
                [tag, Jsonb(clean_fields(fields))],
            )
            row = await cur.fetchone()
        if row is None:
            raise StoreError("INSERT returned no row")
        return _record_from_row(row)

    async def read(
            self,
            tag: str | None,
            predicates: Sequence[Predicate],
            limit: int | None = None,
    ) -> list[Record]:
        where, params = build_where(tag, predicates)
        sql = f"SELECT {_COLUMNS} FROM records {where} {_ORDER}"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)

        async with self._cursor() as cur:
            await self._execute(cur, sql, params)
            rows = await cur.fetchall()
        return [_record_from_row(r) for r in rows]

    async def update(
            self,
            tag: str | None,
            predicates: Sequence[Predicate],
            fields: Mapping[str, Any],
    ) -> Record | None:
        where, params = build_where(tag, predicates)
        sql = (
            "UPDATE records SET fields = fields || %s, updated_at = NOW() "
            f"WHERE id = (SELECT id FROM records {where} {_ORDER} LIMIT 1) "
            f"RETURNING {_COLUMNS}"
        )
        async with self._cursor() as cur:
            await self._execute(cur, sql, [Jsonb(clean_fields(fields)), *params])
            row = await cur.fetchone()
        return _record_from_row(row) if row else None

    async def delete(self, tag: str | None, predicates: Sequence[Predicate]) -> bool:
        where, params = build_where(tag, predicates)
        sql = (
            f"DELETE FROM records WHERE id = (SELECT id FROM records {where} {_ORDER} LIMIT 1) "
            "RETURNING id"
        )
        async with self._cursor() as cur:
            await self._execute(cur, sql, params)
            row = await cur.fetchone()
        return row is not None

    async def count(self, tag: str | None, predicates: Sequence[Predicate]) -> int:
        where, params = build_where(tag, predicates)
        async with self._cursor() as cur:
            await self._execute(cur, f"SELECT COUNT(*)::bigint FROM records {where}", params)
            row = await cur.fetchone()
        if not row or row[0] is None:
            return 0
        return int(row[0])
