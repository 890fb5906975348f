"""Tests for the aiogram message handler reply contract.

Every incoming message gets exactly one plain-text reply. Failures map onto stable user-facing
messages and never leak provider or store diagnostics.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import pytest

from src.bot.handlers import (
    EMPTY_QUERY_REPLY,
    MAX_LISTED_RECORDS,
    ROUTING_FAILED_REPLY,
    UNEXPECTED_ERROR_REPLY,
    handle_message,
    handle_start,
    render_reply,
)
from src.bot.throttle import RateLimiter
from src.db.memory import InMemoryRecordStore
from src.llm.cascade import AllProvidersExhausted
from src.query.dispatcher import Dispatcher, StoreUnavailable
from src.service.help import CAPABILITIES
from src.service.query import QueryResponse, QueryService
from src.weather.client import WeatherError


class _FakeMessage:
    def __init__(self, text: str | None, user_id: int = 42) -> None:
        self.text = text
        self.caption = None
        self.from_user = SimpleNamespace(id=user_id)
        self.chat = SimpleNamespace(id=user_id)
        self.answers: list[str] = []

    async def answer(self, text: str) -> None:
        """Record the outgoing bot reply (aiogram's `Message.answer` substitute)."""
        self.answers.append(text)


class _FailingService:
    def __init__(self, error: Exception) -> None:
        self.error = error

    async def handle(self, query: str) -> QueryResponse:
        raise self.error


class _StaticClassifier:
    def __init__(self, reply: str) -> None:
        self.reply = reply

    def classify(self, raw_query: str) -> str:
        return self.reply


def _make_app(service: Any, *, max_requests: int = 10) -> Any:
    return SimpleNamespace(service=service, limiter=RateLimiter(max_requests=max_requests))


def _real_service(reply: dict[str, Any], store: InMemoryRecordStore) -> QueryService:
    return QueryService(
        _StaticClassifier(json.dumps(reply)),
        Dispatcher(store),
        SimpleNamespace(lookup=lambda location: f"Sunny in {location}."),
    )


@pytest.mark.asyncio
async def test_start_replies_with_capabilities() -> None:
    message = _FakeMessage("/start")

    await handle_start(message)  # type: ignore[arg-type]

    assert message.answers == [CAPABILITIES]


@pytest.mark.asyncio
@pytest.mark.parametrize("text", [None, "   ", "/unknown"])
async def test_empty_or_command_text(text: str | None) -> None:
    message = _FakeMessage(text)

    app = _make_app(_FailingService(AssertionError()))

    await handle_message(message, app)  # type: ignore[arg-type]

    assert message.answers == [EMPTY_QUERY_REPLY]


@pytest.mark.asyncio
async def test_count_query_end_to_end() -> None:
    store = InMemoryRecordStore()
    store.insert("employees", {"name": "John Doe"})
    store.insert("employees", {"name": "Jane Smith"})
    service = _real_service(
        {"tool": "database", "action": "count", "parameters": {"entity": "employees"}},
        store,
    )
    message = _FakeMessage("How many employees are there?")

    await handle_message(message, _make_app(service))  # type: ignore[arg-type]

    assert message.answers == ["There are 2 employees."]


@pytest.mark.asyncio
async def test_list_query_renders_records() -> None:
    store = InMemoryRecordStore()
    store.insert("products", {"name": "Laptop", "price": 1200})
    service = _real_service(
        {"tool": "database", "action": "list", "parameters": {"entity": "products"}},
        store,
    )
    message = _FakeMessage("show products")

    await handle_message(message, _make_app(service))  # type: ignore[arg-type]

    assert message.answers == ["Found 1 products.\n\n• [products] name: Laptop, price: 1200"]


@pytest.mark.asyncio
async def test_weather_query_end_to_end() -> None:
    service = _real_service(
        {"tool": "weather", "action": "check", "parameters": {"location": "Paris, FR"}},
        InMemoryRecordStore(),
    )
    message = _FakeMessage("weather in paris")

    await handle_message(message, _make_app(service))  # type: ignore[arg-type]

    assert message.answers == ["Sunny in Paris, FR."]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (AllProvidersExhausted([]), ROUTING_FAILED_REPLY),
        (
            StoreUnavailable("Failed to read record: Database is unreachable"),
            "Failed to execute database operation: "
            "The database is currently unavailable. Please try again later.",
        ),
        (
            WeatherError("Weather API HTTP error: 500"),
            "Failed to execute weather operation: "
            "The weather service is unavailable right now. Please try again later.",
        ),
        (KeyError("boom"), UNEXPECTED_ERROR_REPLY),
    ],
)
async def test_failures_map_to_single_reply(error: Exception, expected: str) -> None:
    message = _FakeMessage("anything")

    await handle_message(message, _make_app(_FailingService(error)))  # type: ignore[arg-type]

    assert message.answers == [expected]


@pytest.mark.asyncio
async def test_invalid_llm_output_is_a_routing_failure() -> None:
    service = QueryService(
        _StaticClassifier("no json here"),
        Dispatcher(InMemoryRecordStore()),
        SimpleNamespace(lookup=lambda location: ""),
    )
    message = _FakeMessage("anything")

    await handle_message(message, _make_app(service))  # type: ignore[arg-type]

    assert message.answers == [ROUTING_FAILED_REPLY]


@pytest.mark.asyncio
async def test_rate_limited_user_gets_one_reply() -> None:
    store = InMemoryRecordStore()
    service = _real_service(
        {"tool": "database", "action": "count", "parameters": {"entity": "orders"}},
        store,
    )
    app = _make_app(service, max_requests=1)

    first, second = _FakeMessage("count orders"), _FakeMessage("count orders")
    await handle_message(first, app)  # type: ignore[arg-type]
    await handle_message(second, app)  # type: ignore[arg-type]

    assert first.answers == ["There are 0 orders."]
    assert len(second.answers) == 1
    assert second.answers[0].startswith("Rate limit exceeded.")


def test_render_reply_truncates_long_listings() -> None:
    store = InMemoryRecordStore()
    records = [store.insert("items", {"n": n}) for n in range(MAX_LISTED_RECORDS + 5)]

    text = render_reply(QueryResponse("Found 25 items.", records))

    assert text.splitlines()[-1] == "… and 5 more."
    assert text.count("• [items]") == MAX_LISTED_RECORDS
