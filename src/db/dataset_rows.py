"""Seed-dataset helpers.

A seed dataset is a JSON object with a top-level `"records"` list. Each item carries an `entity`
noun plus free-form fields:

    {"records": [{"entity": "employee", "name": "John Doe", "salary": 75000}]}

Both the Postgres seeding CLI and the in-memory store use these helpers so entity tags are
normalized the same way as records created through the bot.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from src.db.store import clean_fields
from src.intent.entities import normalize

SAMPLE_DATASET_PATH = Path(__file__).resolve().parent / "sample_records.json"


def parse_dataset(payload: Any) -> list[dict[str, Any]]:
    """Validate the dataset envelope and return its records."""

    if (
            not isinstance(payload, dict)
            or "records" not in payload
            or not isinstance(payload["records"], list)
    ):
        raise ValueError(
            "Unexpected dataset format: expected object with key 'records' containing a list"
        )

    records: list[dict[str, Any]] = payload["records"]
    for idx, item in enumerate(records):
        if not isinstance(item, dict) or not normalize(item.get("entity")):
            raise ValueError(f"records[{idx}] must be an object with a non-empty 'entity'")
    return records


def load_dataset_file(path: str | Path) -> list[dict[str, Any]]:
    return parse_dataset(json.loads(Path(path).read_text(encoding="utf-8")))


def iter_record_rows(records: Sequence[dict[str, Any]]) -> Iterable[tuple[str, dict[str, Any]]]:
    """Yield `(tag, fields)` pairs ready for `RecordStore.create` or an INSERT."""

    for item in records:
        tag = normalize(item["entity"])
        assert tag is not None
        yield tag, clean_fields(item)
