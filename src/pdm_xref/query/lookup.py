"""Shared helpers for relationship lookups over a schema view."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from pdm_xref.errors import DomainIntegrityError
from pdm_xref.types import Entity, plain_value

T = TypeVar("T")


def at_most_one(matches: Sequence[T], error: type[DomainIntegrityError]) -> T | None:
    """Return the single match, None when empty, or raise `error` on several."""
    if len(matches) > 1:
        raise error(list(matches))
    return matches[0] if matches else None


def text(value: Any) -> str:
    value = plain_value(value)
    if value is None:
        return ""
    return str(value)


def aggregate(value: Any) -> tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, tuple):
        return value
    return (value,)


def entities(values: Iterable[Any]) -> list[Entity]:
    return [value for value in values if isinstance(value, Entity)]


def unique(items: Iterable[Entity]) -> list[Entity]:
    """Drop repeated entities while keeping first-seen order."""
    seen: set[int] = set()
    result: list[Entity] = []
    for item in items:
        if id(item) in seen:
            continue
        seen.add(id(item))
        result.append(item)
    return result
