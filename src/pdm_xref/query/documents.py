"""External file identification and document association queries."""

from __future__ import annotations

from collections.abc import Iterable

from pdm_xref.decode.repository import SchemaView
from pdm_xref.errors import (
    MultipleAssignedVersions,
    MultipleDefinitionalShapes,
    MultipleDocumentRepresentationTypes,
)
from pdm_xref.query.lookup import aggregate, at_most_one, entities, text, unique
from pdm_xref.types import DocumentSourceLocation, Entity

EXTERNAL_DEFINITION = "external definition"


def document_files(view: SchemaView) -> list[Entity]:
    return view.extent("DOCUMENT_FILE")


def documentation_files(view: SchemaView, product_definition: Entity) -> list[Entity]:
    """Document files listed as documentation of a product definition."""
    return [
        item
        for item in entities(aggregate(product_definition.get("DOCUMENTATION_IDS")))
        if view.is_kind_of(item, "DOCUMENT_FILE")
    ]


def source_properties(view: SchemaView, item: Entity) -> list[Entity]:
    return view.used_in(item, "APPLIED_EXTERNAL_IDENTIFICATION_ASSIGNMENT", "ITEMS")


def file_locations(view: SchemaView, document_file: Entity) -> list[DocumentSourceLocation]:
    """Locations declared for a document file, in declaration order.

    An assignment with an empty assigned id carries the file name in its
    external source; otherwise the assigned id is the file name and the source
    id is its path. Without any assignment the file's own id is the name.
    """
    assignments = source_properties(view, document_file)
    if not assignments:
        return [DocumentSourceLocation(file_name=text(document_file.get("ID")))]

    locations: list[DocumentSourceLocation] = []
    for assignment in assignments:
        role = assignment.get("ROLE")
        source = assignment.get("SOURCE")
        mechanism = text(role.get("NAME")) if isinstance(role, Entity) else None
        source_id = text(source.get("SOURCE_ID")) if isinstance(source, Entity) else ""
        assigned_id = text(assignment.get("ASSIGNED_ID"))
        if assigned_id == "":
            location = DocumentSourceLocation(file_name=source_id, path=None, mechanism=mechanism)
        else:
            location = DocumentSourceLocation(
                file_name=assigned_id, path=source_id or None, mechanism=mechanism
            )
        locations.append(location)
    return locations


def files_named(view: SchemaView, file_name: str) -> list[Entity]:
    """Document files with at least one location naming `file_name`."""
    return [
        document_file
        for document_file in document_files(view)
        if any(location.file_name == file_name for location in file_locations(view, document_file))
    ]


def representation_type(view: SchemaView, document_file: Entity) -> Entity | None:
    usages = view.used_in(document_file, "DOCUMENT_REPRESENTATION_TYPE", "REPRESENTED_DOCUMENT")
    return at_most_one(usages, MultipleDocumentRepresentationTypes)


def version_of_file(view: SchemaView, document_file: Entity) -> Entity | None:
    assignments = view.used_in(document_file, "APPLIED_IDENTIFICATION_ASSIGNMENT", "ITEMS")
    versions = [
        assignment
        for assignment in assignments
        if isinstance(assignment.get("ROLE"), Entity)
        and text(assignment["ROLE"].get("NAME")) == "version"
    ]
    return at_most_one(versions, MultipleAssignedVersions)


def document_references(view: SchemaView, document_file: Entity) -> list[Entity]:
    """The file itself plus documents made equivalent to the products it documents."""
    result: list[Entity] = [document_file]
    for definition in view.used_in(
        document_file, "PRODUCT_DEFINITION_WITH_ASSOCIATED_DOCUMENTS", "DOCUMENTATION_IDS"
    ):
        related: list[Entity] = [definition]
        formation = definition.get("FORMATION")
        if isinstance(formation, Entity):
            related.append(formation)
            if isinstance(formation.get("OF_PRODUCT"), Entity):
                related.append(formation["OF_PRODUCT"])
        for item in related:
            for equivalence in view.used_in(item, "DOCUMENT_PRODUCT_EQUIVALENCE", "RELATED_PRODUCT"):
                relating = equivalence.get("RELATING_DOCUMENT")
                if isinstance(relating, Entity):
                    result.append(relating)
    return unique(result)


def applications(view: SchemaView, documents: Iterable[Entity]) -> list[Entity]:
    """APPLIED_DOCUMENT_REFERENCEs assigning any of `documents`."""
    return unique(
        application
        for document in documents
        for application in view.used_in(document, "APPLIED_DOCUMENT_REFERENCE", "ASSIGNED_DOCUMENT")
    )


def definitional_shape_applications(view: SchemaView, documents: Iterable[Entity]) -> list[Entity]:
    """Property definition representations defining a part shape externally."""
    result: list[Entity] = []
    for document in documents:
        for definition in view.used_in(document, "PROPERTY_DEFINITION", "DEFINITION"):
            if text(definition.get("NAME")) != EXTERNAL_DEFINITION:
                continue
            result.extend(
                view.used_in(definition, "PROPERTY_DEFINITION_REPRESENTATION", "DEFINITION")
            )
    return unique(result)


def definitional_shape_definition(view: SchemaView, shape_representation: Entity) -> Entity | None:
    """The document file holding the externally defined shape of a representation.

    Raises:
        MultipleDefinitionalShapes: several external definitions use it.
    """
    usages = [
        usage
        for usage in view.used_in(
            shape_representation, "PROPERTY_DEFINITION_REPRESENTATION", "USED_REPRESENTATION"
        )
        if isinstance(usage.get("DEFINITION"), Entity)
        and text(usage["DEFINITION"].get("NAME")) == EXTERNAL_DEFINITION
    ]
    usage = at_most_one(usages, MultipleDefinitionalShapes)
    if usage is None:
        return None
    target = usage["DEFINITION"].get("DEFINITION")
    if isinstance(target, Entity) and view.is_kind_of(target, "DOCUMENT_FILE"):
        return target
    return None
