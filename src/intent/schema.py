"""Routing instruction schema (Pydantic models).

This schema is the contract between the LLM router and the tools (weather lookup and the record
store). Field aliases follow the camelCase JSON the model is prompted to return.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Tool(StrEnum):
    """Tools a query can be routed to."""

    weather = "weather"
    database = "database"
    none = "none"


class Action(StrEnum):
    """Canonical record store operations."""

    create = "create"
    read = "read"
    update = "update"
    delete = "delete"
    count = "count"


ACTION_SYNONYMS: dict[str, Action] = {
    "add": Action.create,
    "create": Action.create,
    "modify": Action.update,
    "update": Action.update,
    "edit": Action.update,
    "delete": Action.delete,
    "remove": Action.delete,
    "display": Action.read,
    "list": Action.read,
    "show": Action.read,
    "read": Action.read,
    "count": Action.count,
}


def normalize_action(action: str | None) -> Action:
    """Map a free-form action verb onto a canonical action (unknown verbs read)."""

    return ACTION_SYNONYMS.get((action or "").strip().lower(), Action.read)


def _as_text(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v is not None)
    return value


class Parameters(BaseModel):
    """Tool parameters extracted from the query."""

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    location: str | None = None
    entity: str | None = None
    filters: dict[str, Any] = Field(default_factory=dict)
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("location", "entity", mode="before")
    @classmethod
    def numbers_as_text(cls, value: Any) -> Any:
        """ZIP codes and numeric names arrive as JSON numbers."""

        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("filters", "data", mode="before")
    @classmethod
    def default_empty_mapping(cls, value: Any) -> Any:
        """Treat `null` bags as empty mappings."""

        return {} if value is None else value


class RoutingInstruction(BaseModel):
    """A routing decision produced by the LLM and completed by the validator."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    tool: Tool = Tool.none
    action: str | None = None
    parameters: Parameters = Field(default_factory=Parameters)
    insufficient_info: bool = Field(default=False, alias="insufficientInfo")
    missing_info: str | None = Field(default=None, alias="missingInfo")
    guided_response: str | None = Field(default=None, alias="guidedResponse")
    intent: str | None = None

    @field_validator("tool", mode="before")
    @classmethod
    def coerce_unknown_tool(cls, value: Any) -> Any:
        """Map `null` and unknown tool names to `Tool.none`."""

        if isinstance(value, str) and value.strip().lower() in {Tool.weather, Tool.database}:
            return value.strip().lower()
        return Tool.none

    @field_validator("missing_info", "guided_response", "intent", mode="before")
    @classmethod
    def advisory_as_text(cls, value: Any) -> Any:
        """Advisory fields are display text; the model sometimes sends lists or numbers."""

        return _as_text(value)

    @field_validator("parameters", mode="before")
    @classmethod
    def default_parameters(cls, value: Any) -> Any:
        return {} if value is None else value

    @model_validator(mode="after")
    def validate_dispatchable(self) -> RoutingInstruction:
        """A complete instruction must name a real tool and an action."""

        if self.insufficient_info:
            return self
        if self.tool == Tool.none:
            raise ValueError("tool is required unless insufficientInfo=true")
        if not (self.action or "").strip():
            raise ValueError("action is required unless insufficientInfo=true")
        return self

    @property
    def normalized_action(self) -> Action:
        return normalize_action(self.action)


def instruction_from_obj(obj: Any) -> RoutingInstruction:
    """Validate and parse a RoutingInstruction from a decoded JSON object."""

    return RoutingInstruction.model_validate(obj)
