"""Seed the Postgres record store from a JSON dataset.

Defaults to the bundled sample dataset (employees, orders, products).
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Iterable
from pathlib import Path

from psycopg.types.json import Jsonb

from src.config.logging import configure_logging
from src.db.pool import connect_utc
from src.db.dataset_rows import SAMPLE_DATASET_PATH, iter_record_rows, load_dataset_file

logger = logging.getLogger(__name__)


def _chunks(iterable: Iterable[tuple], size: int) -> Iterable[list[tuple]]:
    chunk: list[tuple] = []
    for item in iterable:
        chunk.append(item)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def load_dataset(*, path: str | Path, truncate: bool, batch_size: int) -> int:
    """Insert every dataset record into `records`; return the number inserted."""

    if batch_size <= 0:
        raise ValueError("--batch-size must be a positive integer")

    records = load_dataset_file(path)
    rows = ((tag, Jsonb(fields)) for tag, fields in iter_record_rows(records))

    inserted = 0
    with connect_utc() as conn:
        with conn.transaction():
            with conn.cursor() as cur:
                if truncate:
                    cur.execute("TRUNCATE records", prepare=False)

                for batch in _chunks(rows, batch_size):
                    cur.executemany(
                        "INSERT INTO records (entity, fields) VALUES (%s, %s)",
                        batch,
                    )
                    inserted += len(batch)

    logger.info("seeded records count=%d path=%s", inserted, path)
    return inserted


def main() -> None:
    """CLI entry point for seeding the record store."""

    parser = argparse.ArgumentParser(description="Load a records dataset into Postgres.")
    parser.add_argument(
        "--path",
        default=str(SAMPLE_DATASET_PATH),
        help="Path to the dataset JSON file (defaults to the bundled sample records).",
    )
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="TRUNCATE the records table before loading (destructive).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Number of rows per insert batch.",
    )
    args = parser.parse_args()

    configure_logging()
    load_dataset(path=args.path, truncate=args.truncate, batch_size=args.batch_size)


if __name__ == "__main__":
    main()
