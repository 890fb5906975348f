"""End-to-end query handling with a scripted classifier and the in-memory store."""

from __future__ import annotations

import json
from typing import Any

import pytest

from src.db.memory import InMemoryRecordStore
from src.intent.extract import InvalidResponseFormat
from src.llm.cascade import AllProvidersExhausted
from src.query.dispatcher import Dispatcher
from src.service.help import CAPABILITIES
from src.service.query import QueryService


class _ScriptedClassifier:
    def __init__(self, reply: str | Exception) -> None:
        self.reply = reply
        self.queries: list[str] = []

    def classify(self, raw_query: str) -> str:
        self.queries.append(raw_query)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class _FakeWeather:
    def __init__(self) -> None:
        self.locations: list[str] = []

    def lookup(self, location: str) -> str:
        self.locations.append(location)
        return f"The weather in {location} is 20°C (68°F) with clear sky."


class _SpyDispatcher(Dispatcher):
    def __init__(self, store: InMemoryRecordStore) -> None:
        super().__init__(store)
        self.calls: list[tuple[Any, ...]] = []

    async def dispatch(self, action, entity, filters=None, data=None):  # type: ignore
        self.calls.append((action, entity, dict(filters or {}), dict(data or {})))
        return await super().dispatch(action, entity, filters, data)


def _service(reply: str | Exception, store: InMemoryRecordStore | None = None):
    store = store or InMemoryRecordStore()
    dispatcher = _SpyDispatcher(store)
    weather = _FakeWeather()
    service = QueryService(_ScriptedClassifier(reply), dispatcher, weather)
    return service, dispatcher, weather, store


@pytest.mark.asyncio
async def test_add_product_creates_a_record() -> None:
    reply = (
        "```json\n"
        + json.dumps(
            {
                "tool": "database",
                "action": "add",
                "parameters": {
                    "entity": "products",
                    "data": {"name": "Gaming Laptop", "price": 1500},
                },
                "insufficientInfo": False,
            }
        )
        + "\n```"
    )
    service, dispatcher, _, store = _service(reply)

    response = await service.handle("Add a new product: Gaming Laptop, price: 1500")

    assert "products" in response.response_text
    assert response.structured_data is not None
    assert response.structured_data[0].fields == {"name": "Gaming Laptop", "price": 1500}
    assert dispatcher.calls[0][1] == "products"
    assert await store.count("products", []) == 1


@pytest.mark.asyncio
async def test_weather_without_location_returns_guidance() -> None:
    reply = json.dumps({"tool": "weather", "action": "check", "parameters": {}})
    service, dispatcher, weather, _ = _service(reply)

    response = await service.handle("What's the weather?")

    assert response.response_text.startswith("I need a location to check the weather.")
    assert CAPABILITIES in response.response_text
    assert response.structured_data is None
    assert dispatcher.calls == []
    assert weather.locations == []


@pytest.mark.asyncio
async def test_guided_response_from_the_model_wins() -> None:
    reply = json.dumps(
        {
            "tool": "database",
            "action": "add",
            "parameters": {"entity": "employees"},
            "insufficientInfo": True,
            "missingInfo": "employee details",
            "guidedResponse": "Tell me the employee's name and department.",
        }
    )
    service, dispatcher, _, _ = _service(reply)

    response = await service.handle("add an employee")

    assert response.response_text == "Tell me the employee's name and department."
    assert dispatcher.calls == []


@pytest.mark.asyncio
async def test_database_guidance_names_missing_info() -> None:
    reply = json.dumps(
        {"tool": "database", "insufficientInfo": True, "missingInfo": "entity type"}
    )
    service, _, _, _ = _service(reply)

    response = await service.handle("delete it")

    assert "Specifically, I need: entity type." in response.response_text


@pytest.mark.asyncio
async def test_unknown_tool_returns_general_help() -> None:
    service, dispatcher, weather, _ = _service('Sure! {"tool": null}')

    response = await service.handle("sing me a song")

    assert response.response_text.startswith("I'm not sure what you're asking for.")
    assert dispatcher.calls == []
    assert weather.locations == []


@pytest.mark.asyncio
async def test_weather_city_is_used_as_location() -> None:
    reply = json.dumps({"tool": "weather", "action": "check", "parameters": {"city": "Paris, FR"}})
    service, _, weather, _ = _service(reply)

    response = await service.handle("weather in paris france")

    assert weather.locations == ["Paris, FR"]
    assert response.response_text.startswith("The weather in Paris, FR")


@pytest.mark.asyncio
async def test_range_filters_reach_the_store() -> None:
    store = InMemoryRecordStore()
    store.insert("products", {"name": "Laptop", "price": 1200})
    store.insert("products", {"name": "Mouse", "price": 25})
    reply = json.dumps(
        {
            "tool": "database",
            "action": "list",
            "parameters": {"entity": "products", "filters": {"minPrice": 100}},
        }
    )
    service, _, _, _ = _service(reply, store)

    response = await service.handle("products costing at least 100")

    assert response.response_text == "Found 1 products."
    assert [r.fields["name"] for r in response.structured_data or []] == ["Laptop"]


@pytest.mark.asyncio
async def test_routing_failures_propagate() -> None:
    service, _, _, _ = _service(AllProvidersExhausted([]))
    with pytest.raises(AllProvidersExhausted):
        await service.handle("anything")

    service, _, _, _ = _service("I cannot help with that.")
    with pytest.raises(InvalidResponseFormat):
        await service.handle("anything")
