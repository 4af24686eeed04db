"""
Identifier and address helpers shared by the normalizer, the reconciler
and the ticket queries.
"""
from typing import Any, Callable, Hashable, Iterable, List, TypeVar

T = TypeVar("T")


def normalize_identifier(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def identifiers_match(stored: Any, incoming: Any) -> bool:
    """
    Stored sheet cells and payload ids can differ in type or surrounding
    whitespace ("123 " vs 123), so compare strictly first, then as trimmed strings.
    """
    if stored == incoming and stored not in (None, ""):
        return True
    stored_key = normalize_identifier(stored)
    return stored_key != "" and stored_key == normalize_identifier(incoming)


def dedupe_by_key(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """Keep the first occurrence of every key, in input order."""
    seen = set()
    unique = []
    for item in items:
        item_key = key(item)
        if item_key in seen:
            continue
        seen.add(item_key)
        unique.append(item)
    return unique


def extract_location(address: str) -> str:
    """
    Collapse a venue address to "City, ST, Country".

    Addresses are expected as "Street, City, ST ZIP, Country"; two-part
    addresses are returned unchanged and anything shorter as-is.
    """
    if not address or not address.strip():
        return "Unknown"

    parts = [part.strip() for part in address.split(",")]
    if len(parts) >= 3:
        city = parts[-3]
        state = parts[-2].split(" ")[0]
        country = parts[-1]
        return f"{city}, {state}, {country}"
    return address
