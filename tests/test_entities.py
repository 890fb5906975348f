"""Tests for entity noun normalization and wildcard detection."""

from __future__ import annotations

import pytest

from src.intent.entities import WILDCARD_ENTITIES, is_wildcard, normalize, singular


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("product", "products"),
        ("Products", "products"),
        ("  Employee ", "employees"),
        ("company", "companies"),
        ("companies", "companies"),
        ("orders", "orders"),
    ],
)
def test_normalize_pluralizes_and_lowercases(raw: str, expected: str) -> None:
    assert normalize(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_normalize_missing_entity_is_none(raw: str | None) -> None:
    assert normalize(raw) is None


@pytest.mark.parametrize("raw", ["product", "Company", "status", "day", "records", "ALL"])
def test_normalize_is_idempotent(raw: str) -> None:
    once = normalize(raw)
    assert normalize(once) == once


@pytest.mark.parametrize("raw", sorted(WILDCARD_ENTITIES))
def test_wildcard_vocabulary_is_case_insensitive(raw: str) -> None:
    assert is_wildcard(raw)
    assert is_wildcard(raw.upper())
    assert is_wildcard(f"  {raw.title()} ")


def test_wildcard_matches_normalized_form() -> None:
    # "Database" normalizes to "databases", which is in the vocabulary too.
    assert is_wildcard("Database")
    assert is_wildcard("RECORD")


def test_missing_entity_is_wildcard() -> None:
    assert is_wildcard(None)
    assert is_wildcard("")


def test_regular_entities_are_not_wildcards() -> None:
    assert not is_wildcard("employees")
    assert not is_wildcard("product")
    assert not is_wildcard("dataset")


def test_singular_inverts_simple_plurals() -> None:
    assert singular("companies") == "company"
    assert singular("employees") == "employee"
    assert singular("staff") == "staff"
