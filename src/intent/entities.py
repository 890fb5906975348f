"""Entity noun resolution.

Records live in one flat collection and are tagged with a canonical plural, lower-case entity
name. Users (and the LLM) refer to entities loosely ("employee", "Employees", "company"), so every
entity noun is normalized before it reaches the store.
"""

from __future__ import annotations

WILDCARD_ENTITIES: frozenset[str] = frozenset(
    {
        "record",
        "records",
        "database",
        "databases",
        "all",
        "everything",
        "data",
    }
)


def normalize(entity: str | None) -> str | None:
    """Normalize an entity noun to its plural storage tag.

    The pluralization is a simple heuristic, not a lemmatizer:
        - `company` -> `companies`
        - `product` -> `products`
        - `orders` -> `orders`

    Returns `None` for missing or blank input.
    """

    if not entity:
        return None
    value = entity.strip().lower()
    if not value:
        return None
    if value.endswith("y"):
        return value[:-1] + "ies"
    if not value.endswith("s"):
        value += "s"
    return value


def is_wildcard(entity: str | None) -> bool:
    """Whether the entity means "every record" and must not be used as a filter."""

    if entity is None or not entity.strip():
        return True
    raw = entity.strip().lower()
    return raw in WILDCARD_ENTITIES or normalize(raw) in WILDCARD_ENTITIES


def singular(tag: str) -> str:
    """Best-effort inverse of `normalize`, used for "There is 1 ..." messages."""

    if tag.endswith("ies"):
        return tag[:-3] + "y"
    if tag.endswith("s"):
        return tag[:-1]
    return tag
