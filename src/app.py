"""Application composition root.

This module wires configuration, the record store, the LLM cascade and the weather client into the
`QueryService` used by the bot handlers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from psycopg_pool import AsyncConnectionPool

from src.bot.throttle import RateLimiter
from src.config.settings import Settings
from src.db.dataset_rows import SAMPLE_DATASET_PATH, iter_record_rows, load_dataset_file
from src.db.memory import InMemoryRecordStore
from src.db.pool import create_pool
from src.db.records import PostgresRecordStore
from src.db.store import RecordStore
from src.llm.cascade import CascadeRouter
from src.llm.gemini import GeminiConfig, GeminiProvider
from src.query.dispatcher import Dispatcher
from src.service.query import QueryService
from src.weather.client import WeatherClient, WeatherConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class App:
    """Shared application dependencies for handlers."""

    settings: Settings
    service: QueryService
    limiter: RateLimiter
    pool: AsyncConnectionPool | None = None


def create_store(settings: Settings) -> tuple[RecordStore, AsyncConnectionPool | None]:
    """Pick the record store backend: Postgres if `DATABASE_URL` is set, else in-memory."""

    if settings.database_url:
        pool = create_pool(
            settings.database_url,
            max_size=10,
            statement_timeout_ms=settings.db_statement_timeout_ms,
        )
        return PostgresRecordStore(pool), pool

    logger.warning("DATABASE_URL is not set; using the in-memory record store")
    store = InMemoryRecordStore()
    if settings.seed_sample_data:
        for tag, fields in iter_record_rows(load_dataset_file(SAMPLE_DATASET_PATH)):
            store.insert(tag, fields)
    return store, None


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        A returned DB pool is not opened. Call `await app.pool.open()` at startup.
    """

    store, pool = create_store(settings)

    router = CascadeRouter(
        GeminiProvider(
            GeminiConfig(api_base=settings.llm_api_base, timeout_s=settings.llm_timeout_s)
        ),
        settings.gemini_credentials,
        settings.model_ids,
    )
    service = QueryService(
        router=router,
        dispatcher=Dispatcher(store, page_size=settings.page_size),
        weather=WeatherClient(WeatherConfig(api_key=settings.openweather_api_key)),
    )
    limiter = RateLimiter(max_requests=settings.rate_limit_per_minute, window_s=60.0)

    logger.info(
        "app created store=%s credentials=%d models=%s",
        type(store).__name__,
        router.credential_count,
        ",".join(router.models),
    )
    return App(settings=settings, service=service, limiter=limiter, pool=pool)
