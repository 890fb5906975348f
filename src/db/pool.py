"""Postgres connections for the record store.

The bot talks to Postgres through an async pool (psycopg3); the maintenance scripts (migrate,
seed) open one synchronous connection each. Every session is pinned to UTC because record
timestamps and relative date filters are computed in UTC. Pooled sessions also carry a
statement timeout so a slow query fails the request instead of stalling the bot.
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import AsyncIterator

import psycopg
from dotenv import load_dotenv
from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

APPLICATION_NAME = "nlq-router-bot"
DEFAULT_STATEMENT_TIMEOUT_MS = 5_000


def require_database_url() -> str:
    """Read `DATABASE_URL` (loading `.env` first) or raise a clear error."""

    load_dotenv(".env")
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required for the Postgres record store")
    return database_url


def connect_utc(database_url: str | None = None) -> psycopg.Connection:
    """Open a synchronous UTC session for the maintenance scripts."""

    conn = psycopg.connect(
        database_url or require_database_url(),
        application_name=f"{APPLICATION_NAME}-maint",
    )
    conn.execute("SET TIME ZONE 'UTC'", prepare=False)
    return conn


def session_configurator(
        statement_timeout_ms: int,
) -> Callable[[AsyncConnection], Awaitable[None]]:
    """Build the pool `configure` callback for new connections."""

    if statement_timeout_ms < 0:
        raise ValueError("statement_timeout_ms must be non-negative")

    async def configure(conn: AsyncConnection) -> None:
        async with conn.cursor() as cur:
            await cur.execute("SET TIME ZONE 'UTC'", prepare=False)
            # SET does not take bind parameters; the value is a validated int.
            await cur.execute(
                f"SET statement_timeout = {int(statement_timeout_ms)}",  # type: ignore[arg-type]
                prepare=False,
            )
        # Leave the connection idle (not INTRANS) so the pool accepts it back.
        await conn.commit()

    return configure


def create_pool(
        database_url: str | None = None,
        *,
        min_size: int = 1,
        max_size: int | None = None,
        timeout: float = 10.0,
        statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS,
) -> AsyncConnectionPool:
    """Create an (unopened) async pool for the record store.

    Notes:
        - Call `await pool.open()` at startup and `await pool.close()` at shutdown.
        - If `database_url` is omitted, `DATABASE_URL` is read from the environment / `.env`.
        - `timeout` bounds how long a request waits for a connection before the store reports
          itself unavailable. `statement_timeout_ms=0` disables the per-statement bound.
    """

    return AsyncConnectionPool(
        conninfo=database_url or require_database_url(),
        kwargs={"application_name": APPLICATION_NAME},
        min_size=min_size,
        max_size=max_size,
        timeout=timeout,
        open=False,
        configure=session_configurator(statement_timeout_ms),
    )


@asynccontextmanager
async def get_conn(pool: AsyncConnectionPool) -> AsyncIterator[AsyncConnection]:
    """Borrow a pooled connection."""

    async with pool.connection() as conn:
        yield conn
