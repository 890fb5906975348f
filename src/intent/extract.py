"""Instruction extraction and validation.

The LLM is asked for a bare JSON object but often wraps it in Markdown fences or prepends prose.
`extract` recovers the object and completes it:

    - unparseable output is a hard failure (`InstructionError` subclasses),
    - incomplete user intent is a normal outcome: the instruction is returned with
      `insufficient_info=True` and must never be dispatched.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from src.intent.schema import RoutingInstruction, Tool, instruction_from_obj

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", flags=re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

UNKNOWN_TOOL_MESSAGE = "Unable to determine what you need. Please be more specific."
MISSING_ACTION_MESSAGE = "Unable to determine the action. Please specify what you want to do."
MISSING_LOCATION_MESSAGE = "location/city name"


class InstructionError(ValueError):
    """Raised when the LLM output cannot be turned into an instruction."""


class InvalidResponseFormat(InstructionError):
    """Raised when no JSON object can be located in the LLM output."""


class MalformedInstruction(InstructionError):
    """Raised when the located JSON object cannot be parsed."""


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` fence markers anywhere in the text."""

    return _FENCE_RE.sub("", text or "").strip()


def locate_json_object(text: str) -> str:
    """Return the outermost `{...}` span (first `{` to last `}`)."""

    match = _OBJECT_RE.search(strip_code_fences(text))
    if not match:
        raise InvalidResponseFormat("Invalid response format from LLM - no JSON found")
    return match.group(0)


def _validate(obj: dict[str, Any]) -> RoutingInstruction:
    try:
        return instruction_from_obj(obj)
    except ValidationError as exc:
        raise MalformedInstruction(f"LLM returned an invalid instruction: {exc}") from exc


def _optional_text(value: Any) -> str | None:
    return None if value is None else str(value)


def _validate_insufficient(obj: dict[str, Any]) -> RoutingInstruction:
    """Build a guidance-only instruction; badly typed fields never make it fatal."""

    try:
        return instruction_from_obj(obj)
    except ValidationError as exc:
        logger.info("insufficient instruction rebuilt errors=%d", exc.error_count())
        return RoutingInstruction(
            tool=obj.get("tool"),
            insufficient_info=True,
            missing_info=_optional_text(obj.get("missingInfo")),
            guided_response=_optional_text(obj.get("guidedResponse")),
        )


def _mark_insufficient(obj: dict[str, Any], missing_info: str) -> RoutingInstruction:
    obj["insufficientInfo"] = True
    obj["missingInfo"] = missing_info
    return _validate_insufficient(obj)


def _location_text(value: Any) -> str | None:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def complete_instruction(obj: dict[str, Any]) -> RoutingInstruction:
    """Apply completeness rules to a decoded instruction object."""

    if obj.get("insufficientInfo") is True:
        return _validate_insufficient(obj)

    tool = obj.get("tool")
    if not isinstance(tool, str) or tool.strip().lower() not in {Tool.weather, Tool.database}:
        return _mark_insufficient(obj, UNKNOWN_TOOL_MESSAGE)

    if not obj.get("action"):
        return _mark_insufficient(obj, MISSING_ACTION_MESSAGE)

    parameters = obj.get("parameters")
    if not isinstance(parameters, dict):
        parameters = {}
        obj["parameters"] = parameters

    if tool.strip().lower() == Tool.weather:
        location = _location_text(parameters.get("location")) or _location_text(
            parameters.get("city")
        )
        if not location:
            return _mark_insufficient(obj, MISSING_LOCATION_MESSAGE)
        parameters["location"] = location
    else:
        parameters["filters"] = parameters.get("filters") or {}
        parameters["data"] = parameters.get("data") or {}

    return _validate(obj)


def extract(raw_text: str) -> RoutingInstruction:
    """Parse raw LLM output into a validated `RoutingInstruction`.

    Raises:
        InvalidResponseFormat: If the text contains no `{...}` span.
        MalformedInstruction: If the span is not a valid JSON object.
    """

    span = locate_json_object(raw_text)
    try:
        obj = json.loads(span)
    except json.JSONDecodeError as exc:
        logger.warning("instruction parse failed error=%s raw=%r", exc, raw_text)
        raise MalformedInstruction("Failed to parse LLM response as JSON") from exc

    if not isinstance(obj, dict):
        raise MalformedInstruction("LLM response is not a JSON object")

    return complete_instruction(obj)
