"""Query handling: route -> extract/validate -> run the tool.

`QueryService.handle` is the single entry point used by the bot. Failures to obtain or parse an
instruction propagate (`AllProvidersExhausted`, `InstructionError`), as do tool failures
(`DispatchError`, `WeatherError`). Incomplete queries are answered with guidance and never reach
a tool.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from time import monotonic
from typing import Protocol

from src.db.store import Record
from src.intent.extract import extract
from src.intent.schema import RoutingInstruction, Tool
from src.query.dispatcher import Dispatcher
from src.service.help import database_help, general_help, weather_help

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    def classify(self, raw_query: str) -> str: ...


class WeatherLookup(Protocol):
    def lookup(self, location: str) -> str: ...


@dataclass(frozen=True)
class QueryResponse:
    """Reply text plus the records involved (database queries only)."""

    response_text: str
    structured_data: list[Record] | None = None


def guidance_message(instruction: RoutingInstruction) -> str:
    """Help text for an instruction marked `insufficient_info`."""

    if instruction.guided_response:
        return instruction.guided_response
    if instruction.tool == Tool.weather:
        return weather_help()
    if instruction.tool == Tool.database:
        return database_help(instruction.missing_info)
    return general_help()


class QueryService:
    """Turns free text into exactly one tool call (or a guidance message)."""

    def __init__(
            self,
            router: Classifier,
            dispatcher: Dispatcher,
            weather: WeatherLookup,
    ) -> None:
        self._router = router
        self._dispatcher = dispatcher
        self._weather = weather

    async def route(self, query: str) -> RoutingInstruction:
        """Classify a query and return the validated instruction.

        The cascade blocks on network calls, so it runs in a worker thread.
        """

        raw_text = await asyncio.to_thread(self._router.classify, query)
        return extract(raw_text)

    async def handle(self, query: str) -> QueryResponse:
        started = monotonic()
        instruction = await self.route(query)

        if instruction.insufficient_info:
            logger.info(
                "insufficient info tool=%s missing=%r",
                instruction.tool,
                instruction.missing_info,
            )
            return QueryResponse(response_text=guidance_message(instruction))

        params = instruction.parameters
        if instruction.tool == Tool.weather:
            assert params.location is not None
            text = await asyncio.to_thread(self._weather.lookup, params.location)
            response = QueryResponse(response_text=text)
        else:
            result = await self._dispatcher.dispatch(
                instruction.action,
                params.entity,
                params.filters,
                params.data,
            )
            response = QueryResponse(response_text=result.message, structured_data=result.data)

        logger.info(
            "handled tool=%s action=%s latency_ms=%d",
            instruction.tool,
            instruction.normalized_action if instruction.tool == Tool.database else "check",
            int((monotonic() - started) * 1000),
        )
        return response
