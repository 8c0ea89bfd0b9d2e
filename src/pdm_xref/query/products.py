"""Product identification and geometric shape queries.

Product identification follows the PDM schema usage guide: a PRODUCT has
versions (PRODUCT_DEFINITION_FORMATION), each version has views
(PRODUCT_DEFINITION), and a view carries its shape through
PRODUCT_DEFINITION_SHAPE and SHAPE_DEFINITION_REPRESENTATION.
"""

from __future__ import annotations

from collections.abc import Iterable

from pdm_xref.decode.repository import SchemaView
from pdm_xref.errors import MultipleProductDefinitionShapes, MultipleShapeDefinitionRepresentations
from pdm_xref.query.lookup import at_most_one, text, unique
from pdm_xref.types import Entity


def products(view: SchemaView) -> list[Entity]:
    return view.extent("PRODUCT")


def product_definitions(view: SchemaView) -> list[Entity]:
    return view.extent("PRODUCT_DEFINITION")


def versions_of(view: SchemaView, product: Entity) -> list[Entity]:
    return view.used_in(product, "PRODUCT_DEFINITION_FORMATION", "OF_PRODUCT")


def views_of(view: SchemaView, version: Entity) -> list[Entity]:
    return view.used_in(version, "PRODUCT_DEFINITION", "FORMATION")


def version_of(product_definition: Entity) -> Entity | None:
    formation = product_definition.get("FORMATION")
    return formation if isinstance(formation, Entity) else None


def master_base(product_definition: Entity) -> Entity | None:
    formation = version_of(product_definition)
    if formation is None:
        return None
    product = formation.get("OF_PRODUCT")
    return product if isinstance(product, Entity) else None


def definitions_of_item(view: SchemaView, item: Entity) -> list[Entity]:
    """Expand a product, version or view to the product definitions it covers."""
    if view.is_kind_of(item, "PRODUCT_DEFINITION"):
        return [item]
    if view.is_kind_of(item, "PRODUCT_DEFINITION_FORMATION"):
        return views_of(view, item)
    if view.is_kind_of(item, "PRODUCT"):
        return unique(
            definition
            for version in versions_of(view, item)
            for definition in views_of(view, version)
        )
    return []


def shape_of(view: SchemaView, product_definition: Entity) -> Entity | None:
    """Return the PRODUCT_DEFINITION_SHAPE of a product definition.

    Raises:
        MultipleProductDefinitionShapes: more than one shape defines the view.
    """
    shapes = view.used_in(product_definition, "PRODUCT_DEFINITION_SHAPE", "DEFINITION")
    return at_most_one(shapes, MultipleProductDefinitionShapes)


def representations_of(view: SchemaView, shape: Entity) -> list[Entity]:
    usages = view.used_in(shape, "SHAPE_DEFINITION_REPRESENTATION", "DEFINITION")
    return unique(
        usage["USED_REPRESENTATION"]
        for usage in usages
        if isinstance(usage.get("USED_REPRESENTATION"), Entity)
        and view.is_kind_of(usage["USED_REPRESENTATION"], "SHAPE_REPRESENTATION")
    )


def shape_representations(view: SchemaView, product_definitions: Iterable[Entity]) -> list[Entity]:
    """Shape representations of every given product definition that has a shape."""
    result: list[Entity] = []
    for definition in product_definitions:
        shape = shape_of(view, definition)
        if shape is not None:
            result.extend(representations_of(view, shape))
    return unique(result)


def product_of_representation(view: SchemaView, shape_representation: Entity) -> Entity | None:
    """Walk a shape representation back to the PRODUCT it is the shape of.

    Raises:
        MultipleShapeDefinitionRepresentations: the representation defines
            more than one product shape.
    """
    usages = view.used_in(
        shape_representation, "SHAPE_DEFINITION_REPRESENTATION", "USED_REPRESENTATION"
    )
    usage = at_most_one(usages, MultipleShapeDefinitionRepresentations)
    if usage is None:
        return None
    shape = usage.get("DEFINITION")
    if not isinstance(shape, Entity):
        return None
    definition = shape.get("DEFINITION")
    if not isinstance(definition, Entity) or not view.is_kind_of(definition, "PRODUCT_DEFINITION"):
        return None
    return master_base(definition)


def shape_identity(view: SchemaView, shape_representation: Entity) -> tuple[str, str, str] | None:
    """`(representation name, product name, product id)` used to pair shapes across files.

    Returns None for a representation that is not the shape of any product;
    such shapes have no identity to match on.
    """
    product = product_of_representation(view, shape_representation)
    if product is None:
        return None
    return (
        text(shape_representation.get("NAME")),
        text(product.get("NAME")),
        text(product.get("ID")),
    )
