"""Routing prompt.

The prompt text lives in `prompt_routing_v1.md`; it is configuration, not logic. Placeholders use
`string.Template` syntax (`$capabilities`, `$query`) because the template is full of JSON braces.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any

SYSTEM_CAPABILITIES: dict[str, Any] = {
    "weather": {
        "description": "Get current weather information",
        "required_fields": ["location or city name"],
    },
    "database": {
        "actions": {
            "create": {
                "description": "Add a new record",
                "required_fields": ["entity type", "data to add"],
            },
            "read": {
                "description": "List or display records",
                "required_fields": ["entity type (optional)"],
            },
            "update": {
                "description": "Modify an existing record",
                "required_fields": ["entity type", "filters to find record", "data to update"],
            },
            "delete": {
                "description": "Remove a record",
                "required_fields": ["entity type", "filters to find record"],
            },
            "count": {
                "description": "Count records",
                "required_fields": ["entity type"],
            },
        }
    },
}


@lru_cache(maxsize=1)
def _load_template() -> Template:
    prompt_path = Path(__file__).resolve().parent / "prompt_routing_v1.md"
    return Template(prompt_path.read_text(encoding="utf-8"))


def build_routing_prompt(user_query: str) -> str:
    """Render the routing prompt for one user query."""

    return _load_template().safe_substitute(
        capabilities=json.dumps(SYSTEM_CAPABILITIES, indent=2),
        query=user_query.replace('"', "'"),
    )
