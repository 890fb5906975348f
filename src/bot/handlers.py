"""aiogram message handlers.

Contract: every incoming text message gets exactly one plain-text reply. Internal failures are
logged and answered with a stable generic message; provider and store diagnostics never reach the
user.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from time import monotonic
from typing import Any

from aiogram.types import Message

from src.app import App
from src.db.store import Record
from src.intent.extract import InstructionError
from src.llm.cascade import AllProvidersExhausted
from src.query.dispatcher import DispatchError
from src.service.help import CAPABILITIES
from src.service.query import QueryResponse
from src.weather.client import WeatherError

logger = logging.getLogger(__name__)

# Telegram rejects messages longer than 4096 characters.
MAX_REPLY_CHARS = 4_000
MAX_LISTED_RECORDS = 20

ROUTING_FAILED_REPLY = "Failed to process query. Please try again."
UNEXPECTED_ERROR_REPLY = "An unexpected error occurred. Please try again."
EMPTY_QUERY_REPLY = "Please send a question, for example: \"How many employees are there?\""


def _is_command_text(text: str) -> bool:
    return text.lstrip().startswith("/")


def _format_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_record(record: Record) -> str:
    """One line per record: entity tag, then its free-form fields."""

    fields = ", ".join(f"{k}: {_format_value(v)}" for k, v in record.fields.items())
    prefix = f"• [{record.entity}]"
    return f"{prefix} {fields}" if fields else f"{prefix} (id {record.id})"


def render_reply(response: QueryResponse) -> str:
    """Render a query response as a Telegram-sized plain-text message."""

    lines = [response.response_text]
    records: Sequence[Record] = response.structured_data or []
    if records:
        lines.append("")
        lines.extend(format_record(r) for r in records[:MAX_LISTED_RECORDS])
        if len(records) > MAX_LISTED_RECORDS:
            lines.append(f"… and {len(records) - MAX_LISTED_RECORDS} more.")

    text = "\n".join(lines)
    if len(text) > MAX_REPLY_CHARS:
        text = text[: MAX_REPLY_CHARS - 1] + "…"
    return text


async def handle_start(message: Message) -> None:
    """Answer `/start` and `/help` with the capabilities list."""

    await message.answer(CAPABILITIES)


async def handle_message(message: Message, app: App) -> None:
    """Handle an incoming Telegram message with exactly one reply."""

    started = monotonic()
    raw_text = message.text or message.caption or ""
    if not raw_text.strip() or _is_command_text(raw_text):
        await message.answer(EMPTY_QUERY_REPLY)
        return

    user_id = message.from_user.id if message.from_user else message.chat.id
    limit = app.limiter.check(user_id)
    if not limit.allowed:
        logger.info("rate limited user_id=%s reset_in_s=%.0f", user_id, limit.reset_in_s)
        await message.answer(
            f"Rate limit exceeded. Please try again in {int(limit.reset_in_s) + 1} seconds."
        )
        return

    # noinspection PyBroadException
    try:
        response = await app.service.handle(raw_text)
        reply = render_reply(response)
    except (AllProvidersExhausted, InstructionError) as exc:
        logger.warning("routing failed error=%s", exc)
        reply = ROUTING_FAILED_REPLY
    except DispatchError as exc:
        logger.warning("database operation failed error=%s", exc)
        reply = f"Failed to execute database operation: {exc.public_message}"
    except WeatherError as exc:
        logger.warning("weather operation failed error=%s", exc)
        reply = f"Failed to execute weather operation: {exc.public_message}"
    except Exception:
        # Handler boundary: never leak internals to the chat.
        logger.exception("handler failed")
        reply = UNEXPECTED_ERROR_REPLY

    logger.info(
        "replied user_id=%s remaining=%d latency_ms=%d",
        user_id,
        limit.remaining,
        int((monotonic() - started) * 1000),
    )
    await message.answer(reply)
