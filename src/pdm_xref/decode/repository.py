"""Model repository and lifecycle-scoped read-only views over decoded models."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from pdm_xref.decode.schema import SchemaList, default_schema_list
from pdm_xref.errors import PDMError
from pdm_xref.types import Entity, EntityModel, TypedValue

LOGGER = logging.getLogger(__name__)


class Repository:
    """Holds every model produced by a decoder.

    Decoding accumulates models here; nothing is removed unless a caller asks.
    Queries never run against the repository directly, only against a
    `SchemaView` created with `view()`.
    """

    def __init__(self, schema_list: SchemaList | None = None) -> None:
        self.schema_list = schema_list or default_schema_list()
        self._models: dict[str, EntityModel] = {}
        self._open_views: set[str] = set()

    @property
    def models(self) -> list[EntityModel]:
        return list(self._models.values())

    def add_model(self, model: EntityModel) -> EntityModel:
        name = model.name
        suffix = 2
        while name in self._models:
            name = f"{model.name}#{suffix}"
            suffix += 1
        model.name = name
        self._models[name] = model
        return model

    def remove_models(self, models: Iterable[EntityModel]) -> None:
        for model in models:
            self._models.pop(model.name, None)

    def get(self, name: str) -> EntityModel:
        model = self._models.get(name)
        if model is None:
            raise KeyError(f"Model not found: {name}")
        return model

    @property
    def open_views(self) -> set[str]:
        return set(self._open_views)

    @contextmanager
    def view(self, name: str, models: Iterable[EntityModel]) -> Iterator[SchemaView]:
        """Create a read-only view over `models`, released when the block exits."""
        view = SchemaView(name, self.schema_list)
        view.add_models(models)
        view.mark_read_only()
        self._open_views.add(name)
        try:
            yield view
        finally:
            self._open_views.discard(name)
            view.dispose()


class SchemaView:
    """A merged, read-only population answering extent and inverse lookups."""

    def __init__(self, name: str, schema_list: SchemaList) -> None:
        self.name = name
        self._schema_list = schema_list
        self._models: list[EntityModel] = []
        self._read_only = False
        self._disposed = False
        self._inverse: dict[Entity, list[tuple[Entity, str]]] | None = None

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def models(self) -> list[EntityModel]:
        self._check_live()
        return list(self._models)

    def add_models(self, models: Iterable[EntityModel]) -> None:
        self._check_live()
        if self._read_only:
            raise PDMError(f"View is read-only: {self.name}")
        for model in models:
            if all(model is not existing for existing in self._models):
                self._models.append(model)

    def mark_read_only(self) -> None:
        self._read_only = True

    def dispose(self) -> None:
        self._models = []
        self._inverse = None
        self._disposed = True

    def is_kind_of(self, entity: Entity, type_name: str) -> bool:
        return any(self._schema_list.is_kind_of(t, type_name) for t in entity.types)

    def extent(self, type_name: str) -> list[Entity]:
        """All entities of `type_name` or one of its subtypes, in model order."""
        self._check_live()
        return [
            entity
            for model in self._models
            for entity in model.entities.values()
            if self.is_kind_of(entity, type_name)
        ]

    def used_in(self, target: Any, type_name: str, role: str) -> list[Entity]:
        """Entities of `type_name` whose attribute `role` refers to `target`.

        This is the single inverse-relationship lookup of the query layer; it
        returns an ordered, possibly empty list and never enforces cardinality.
        """
        self._check_live()
        if not isinstance(target, Entity):
            return []
        wanted_role = role.upper()
        result: list[Entity] = []
        seen: set[int] = set()
        for user, attribute in self._inverse_index().get(target, []):
            if attribute != wanted_role or id(user) in seen:
                continue
            if self.is_kind_of(user, type_name):
                seen.add(id(user))
                result.append(user)
        return result

    def _inverse_index(self) -> dict[Entity, list[tuple[Entity, str]]]:
        if not self._read_only:
            raise PDMError(f"View must be read-only before inverse lookups: {self.name}")
        if self._inverse is None:
            index: dict[Entity, list[tuple[Entity, str]]] = {}
            for model in self._models:
                for entity in model.entities.values():
                    for attribute, value in entity.attributes.items():
                        for referenced in _referenced_entities(value):
                            index.setdefault(referenced, []).append((entity, attribute))
            LOGGER.debug("Built inverse index for view %s (%d targets)", self.name, len(index))
            self._inverse = index
        return self._inverse

    def _check_live(self) -> None:
        if self._disposed:
            raise PDMError(f"View has been disposed: {self.name}")


def _referenced_entities(value: Any) -> Iterator[Entity]:
    if isinstance(value, Entity):
        yield value
    elif isinstance(value, tuple):
        for item in value:
            yield from _referenced_entities(item)
    elif isinstance(value, TypedValue):
        yield from _referenced_entities(value.value)
