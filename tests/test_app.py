from __future__ import annotations

import pytest

from src.app import create_app, create_store
from src.config.settings import Settings
from src.db.memory import InMemoryRecordStore


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "TELEGRAM_BOT_TOKEN": "t",
        "DATABASE_URL": "",
        "GEMINI_MODELS": "m1,m2",
        **overrides,
    }
    settings = Settings(_env_file=None, **values)  # type: ignore[arg-type]
    settings.gemini_credentials = ["k1", "k2"]
    return settings


@pytest.mark.asyncio
async def test_memory_store_is_seeded_on_request() -> None:
    store, pool = create_store(_settings(SEED_SAMPLE_DATA=True))

    assert pool is None
    assert isinstance(store, InMemoryRecordStore)
    assert await store.count("employees", []) == 3
    assert await store.count("orders", []) == 3
    assert await store.count("products", []) == 2


@pytest.mark.asyncio
async def test_memory_store_starts_empty_by_default() -> None:
    store, _ = create_store(_settings())

    assert await store.count(None, []) == 0


def test_create_app_wires_the_cascade() -> None:
    app = create_app(_settings(RATE_LIMIT_PER_MINUTE=1))

    assert app.pool is None
    assert app.limiter.check("u").allowed
    assert not app.limiter.check("u").allowed
