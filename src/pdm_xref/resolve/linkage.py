"""Pairing of master shapes with detail shapes defined in a referenced file."""

from __future__ import annotations

import logging

from pdm_xref.decode.repository import Repository, SchemaView
from pdm_xref.errors import DomainIntegrityError, PDMError
from pdm_xref.query.documents import (
    applications,
    definitional_shape_applications,
    document_references,
    files_named,
)
from pdm_xref.query.lookup import aggregate, entities, unique
from pdm_xref.query.products import definitions_of_item, shape_identity, shape_representations
from pdm_xref.resolve.node import ReferenceNode
from pdm_xref.types import Entity, LinkageRecord

LOGGER = logging.getLogger(__name__)

ShapeKey = tuple[str, str, str]


class LinkageDiscovery:
    """Finds shape representations that denote the same part in two files.

    The parent ("master") file names the child's file through document
    references or externally defined shapes; every shape representation it
    attaches that way is compared with the child's ("detail") shape
    representations by representation name, product name and product id.
    Shapes that are not the shape of any product are never paired.
    Results are cached per node pair since loaded content never changes.
    """

    def __init__(self, repository: Repository) -> None:
        self.repository = repository
        self._cache: dict[tuple[str, str], frozenset[LinkageRecord]] = {}

    def discover(self, parent: ReferenceNode, child: ReferenceNode) -> frozenset[LinkageRecord]:
        parent_content = parent.decoded_content
        child_content = child.decoded_content
        if parent_content is None or child_content is None:
            raise PDMError(
                f"linkage needs two loaded nodes: {parent.name} ({parent.status_kind.value}), "
                f"{child.name} ({child.status_kind.value})"
            )
        key = (parent.name, child.name)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        with (
            self.repository.view(f"{parent.name}.MASTER", parent_content.models) as master_view,
            self.repository.view(f"{child.name}.DETAIL", child_content.models) as detail_view,
        ):
            masters = self._master_shapes(master_view, child.name)
            details = self._detail_index(detail_view)
            records: set[LinkageRecord] = set()
            for shape in masters:
                try:
                    identity = shape_identity(master_view, shape)
                except DomainIntegrityError as exc:
                    LOGGER.warning("%s: skipping master shape %r: %s", parent.name, shape, exc)
                    continue
                if identity is None:
                    continue
                for detail in details.get(identity, []):
                    records.add(LinkageRecord(master=shape, detail=detail))

        result = frozenset(records)
        self._cache[key] = result
        LOGGER.debug("%s -> %s: %d linkage(s)", parent.name, child.name, len(result))
        return result

    def _master_shapes(self, view: SchemaView, file_name: str) -> list[Entity]:
        shapes: list[Entity] = []
        for document_file in files_named(view, file_name):
            documents = document_references(view, document_file)
            definitions: list[Entity] = []
            for application in applications(view, documents):
                for item in entities(aggregate(application.get("ITEMS"))):
                    definitions.extend(definitions_of_item(view, item))
            for definition in unique(definitions):
                try:
                    shapes.extend(shape_representations(view, [definition]))
                except DomainIntegrityError as exc:
                    LOGGER.warning("skipping shape of %r: %s", definition, exc)
            for usage in definitional_shape_applications(view, documents):
                representation = usage.get("USED_REPRESENTATION")
                if isinstance(representation, Entity) and view.is_kind_of(
                    representation, "SHAPE_REPRESENTATION"
                ):
                    shapes.append(representation)
        return unique(shapes)

    def _detail_index(self, view: SchemaView) -> dict[ShapeKey, list[Entity]]:
        index: dict[ShapeKey, list[Entity]] = {}
        for representation in view.extent("SHAPE_REPRESENTATION"):
            try:
                identity = shape_identity(view, representation)
            except DomainIntegrityError as exc:
                LOGGER.warning("skipping detail shape %r: %s", representation, exc)
                continue
            if identity is None:
                continue
            index.setdefault(identity, []).append(representation)
        return index
