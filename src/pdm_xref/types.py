"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any
from urllib.parse import unquote, urlparse


@dataclass(frozen=True, slots=True)
class EntityRef:
    """An instance reference (`#id`) that has not been resolved to an entity."""

    id: int

    def __str__(self) -> str:
        return f"#{self.id}"


@dataclass(slots=True, eq=False, repr=False)
class Entity:
    """One decoded entity instance.

    Entities compare by identity: two decoded files carry no shared instance
    identity, so cross-file correspondence is always established by value.
    """

    id: int
    type_name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    model: str = ""
    types: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.types:
            self.types = (self.type_name,)

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name.upper(), default)

    def __getitem__(self, name: str) -> Any:
        return self.attributes[name.upper()]

    def __repr__(self) -> str:
        return f"Entity(#{self.id}={self.type_name}, model={self.model!r})"


@dataclass(slots=True, eq=False)
class EntityModel:
    """A named population of entities decoded from one exchange file."""

    name: str
    schema_name: str
    entities: dict[int, Entity] = field(default_factory=dict)

    def extent(self, type_name: str) -> list[Entity]:
        wanted = type_name.upper()
        return [entity for entity in self.entities.values() if wanted in entity.types]

    def __len__(self) -> int:
        return len(self.entities)


@dataclass(slots=True, eq=False)
class ExchangeStructure:
    """Decoded content of one physical exchange file."""

    file_name: str
    schema_names: tuple[str, ...]
    models: list[EntityModel] = field(default_factory=list)
    header: dict[str, Any] = field(default_factory=dict)

    @property
    def entity_count(self) -> int:
        return sum(len(model) for model in self.models)


@dataclass(frozen=True, slots=True)
class DocumentSourceLocation:
    """Normalized locator of an external file."""

    file_name: str
    path: str | None = None
    mechanism: str | None = None

    @classmethod
    def from_url(cls, url: str | PurePath, *, mechanism: str = "URL") -> DocumentSourceLocation:
        text = str(url)
        if text.startswith("file:"):
            text = unquote(urlparse(text).path)
        file_path = PurePath(text)
        parent = str(file_path.parent) if str(file_path.parent) != "." else None
        return cls(file_name=file_path.name, path=parent, mechanism=mechanism)

    @property
    def full_path(self) -> Path:
        return Path(self.path or ".") / self.file_name

    @property
    def extension(self) -> str:
        return PurePath(self.file_name).suffix.lstrip(".").lower()

    def __str__(self) -> str:
        return f"{self.mechanism or '?'}:{self.full_path}"


@dataclass(frozen=True, slots=True)
class LinkageRecord:
    """Correspondence between a master shape and a detail shape in another file."""

    master: Entity
    detail: Entity


@dataclass(frozen=True, slots=True)
class TypedValue:
    """A typed parameter such as `IDENTIFIER('x')` or `LENGTH_MEASURE(1.)`."""

    type_name: str
    value: Any


@dataclass(frozen=True, slots=True)
class Enumeration:
    """An enumeration literal such as `.MADE.`."""

    value: str


def plain_value(value: Any) -> Any:
    """Strip typed-parameter wrappers down to the underlying value."""
    while isinstance(value, TypedValue):
        value = value.value
    return value
