"""Recognized exchange schemas and the entity layouts used by PDM queries."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

_SCHEMA_ID = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)")

# Explicit attributes in exchange order, inherited attributes first.
_PDM_ENTITIES: dict[str, tuple[str, ...]] = {
    "APPLICATION_CONTEXT": ("APPLICATION",),
    "PRODUCT_CONTEXT": ("NAME", "FRAME_OF_REFERENCE", "DISCIPLINE_TYPE"),
    "PRODUCT_DEFINITION_CONTEXT": ("NAME", "FRAME_OF_REFERENCE", "LIFE_CYCLE_STAGE"),
    "PRODUCT": ("ID", "NAME", "DESCRIPTION", "FRAME_OF_REFERENCE"),
    "PRODUCT_CATEGORY": ("NAME", "DESCRIPTION"),
    "PRODUCT_RELATED_PRODUCT_CATEGORY": ("NAME", "DESCRIPTION", "PRODUCTS"),
    "PRODUCT_DEFINITION_FORMATION": ("ID", "DESCRIPTION", "OF_PRODUCT"),
    "PRODUCT_DEFINITION_FORMATION_WITH_SPECIFIED_SOURCE": (
        "ID",
        "DESCRIPTION",
        "OF_PRODUCT",
        "MAKE_OR_BUY",
    ),
    "PRODUCT_DEFINITION": ("ID", "DESCRIPTION", "FORMATION", "FRAME_OF_REFERENCE"),
    "PRODUCT_DEFINITION_WITH_ASSOCIATED_DOCUMENTS": (
        "ID",
        "DESCRIPTION",
        "FORMATION",
        "FRAME_OF_REFERENCE",
        "DOCUMENTATION_IDS",
    ),
    "NEXT_ASSEMBLY_USAGE_OCCURRENCE": (
        "ID",
        "NAME",
        "DESCRIPTION",
        "RELATING_PRODUCT_DEFINITION",
        "RELATED_PRODUCT_DEFINITION",
        "REFERENCE_DESIGNATOR",
    ),
    "PROPERTY_DEFINITION": ("NAME", "DESCRIPTION", "DEFINITION"),
    "PRODUCT_DEFINITION_SHAPE": ("NAME", "DESCRIPTION", "DEFINITION"),
    "PROPERTY_DEFINITION_REPRESENTATION": ("DEFINITION", "USED_REPRESENTATION"),
    "SHAPE_DEFINITION_REPRESENTATION": ("DEFINITION", "USED_REPRESENTATION"),
    "REPRESENTATION": ("NAME", "ITEMS", "CONTEXT_OF_ITEMS"),
    "SHAPE_REPRESENTATION": ("NAME", "ITEMS", "CONTEXT_OF_ITEMS"),
    "ADVANCED_BREP_SHAPE_REPRESENTATION": ("NAME", "ITEMS", "CONTEXT_OF_ITEMS"),
    "FACETED_BREP_SHAPE_REPRESENTATION": ("NAME", "ITEMS", "CONTEXT_OF_ITEMS"),
    "MANIFOLD_SURFACE_SHAPE_REPRESENTATION": ("NAME", "ITEMS", "CONTEXT_OF_ITEMS"),
    "GEOMETRICALLY_BOUNDED_SURFACE_SHAPE_REPRESENTATION": ("NAME", "ITEMS", "CONTEXT_OF_ITEMS"),
    "GEOMETRICALLY_BOUNDED_WIREFRAME_SHAPE_REPRESENTATION": ("NAME", "ITEMS", "CONTEXT_OF_ITEMS"),
    "TESSELLATED_SHAPE_REPRESENTATION": ("NAME", "ITEMS", "CONTEXT_OF_ITEMS"),
    "DOCUMENT": ("ID", "NAME", "DESCRIPTION", "KIND"),
    "DOCUMENT_FILE": (
        "ID",
        "NAME",
        "DESCRIPTION",
        "KIND",
        "OBJECT_NAME",
        "OBJECT_DESCRIPTION",
    ),
    "DOCUMENT_TYPE": ("PRODUCT_DATA_TYPE",),
    "DOCUMENT_REPRESENTATION_TYPE": ("NAME", "REPRESENTED_DOCUMENT"),
    "DOCUMENT_PRODUCT_EQUIVALENCE": (
        "NAME",
        "DESCRIPTION",
        "RELATING_DOCUMENT",
        "RELATED_PRODUCT",
    ),
    "APPLIED_DOCUMENT_REFERENCE": ("ASSIGNED_DOCUMENT", "SOURCE", "ITEMS"),
    "ROLE_ASSOCIATION": ("ROLE", "ITEM_WITH_ROLE"),
    "OBJECT_ROLE": ("NAME", "DESCRIPTION"),
    "EXTERNAL_SOURCE": ("SOURCE_ID",),
    "IDENTIFICATION_ROLE": ("NAME", "DESCRIPTION"),
    "APPLIED_IDENTIFICATION_ASSIGNMENT": ("ASSIGNED_ID", "ROLE", "ITEMS"),
    "APPLIED_EXTERNAL_IDENTIFICATION_ASSIGNMENT": ("ASSIGNED_ID", "ROLE", "SOURCE", "ITEMS"),
}

_PDM_SUPERTYPES: dict[str, str] = {
    "PRODUCT_DEFINITION_FORMATION_WITH_SPECIFIED_SOURCE": "PRODUCT_DEFINITION_FORMATION",
    "PRODUCT_DEFINITION_WITH_ASSOCIATED_DOCUMENTS": "PRODUCT_DEFINITION",
    "PRODUCT_RELATED_PRODUCT_CATEGORY": "PRODUCT_CATEGORY",
    "PRODUCT_DEFINITION_SHAPE": "PROPERTY_DEFINITION",
    "SHAPE_DEFINITION_REPRESENTATION": "PROPERTY_DEFINITION_REPRESENTATION",
    "SHAPE_REPRESENTATION": "REPRESENTATION",
    "ADVANCED_BREP_SHAPE_REPRESENTATION": "SHAPE_REPRESENTATION",
    "FACETED_BREP_SHAPE_REPRESENTATION": "SHAPE_REPRESENTATION",
    "MANIFOLD_SURFACE_SHAPE_REPRESENTATION": "SHAPE_REPRESENTATION",
    "GEOMETRICALLY_BOUNDED_SURFACE_SHAPE_REPRESENTATION": "SHAPE_REPRESENTATION",
    "GEOMETRICALLY_BOUNDED_WIREFRAME_SHAPE_REPRESENTATION": "SHAPE_REPRESENTATION",
    "TESSELLATED_SHAPE_REPRESENTATION": "SHAPE_REPRESENTATION",
    "DOCUMENT_FILE": "DOCUMENT",
    "APPLIED_DOCUMENT_REFERENCE": "DOCUMENT_REFERENCE",
    "APPLIED_IDENTIFICATION_ASSIGNMENT": "IDENTIFICATION_ASSIGNMENT",
    "APPLIED_EXTERNAL_IDENTIFICATION_ASSIGNMENT": "EXTERNAL_IDENTIFICATION_ASSIGNMENT",
    "EXTERNAL_IDENTIFICATION_ASSIGNMENT": "IDENTIFICATION_ASSIGNMENT",
}


def schema_identifier(declared: str) -> str:
    """Return the bare schema name of a FILE_SCHEMA entry.

    `'AP242_..._MIM_LF { 1 0 10303 442 1 1 4 }'` becomes `AP242_..._MIM_LF`.
    """
    match = _SCHEMA_ID.match(declared)
    return match.group(1).upper() if match else declared.strip().upper()


@dataclass(slots=True)
class SchemaDefinition:
    """Entity layouts and subtype graph of one exchange schema."""

    name: str
    entities: dict[str, tuple[str, ...]] = field(default_factory=dict)
    supertypes: dict[str, str] = field(default_factory=dict)

    def attribute_names(self, type_name: str) -> tuple[str, ...] | None:
        return self.entities.get(type_name.upper())

    def is_kind_of(self, type_name: str, ancestor: str) -> bool:
        current: str | None = type_name.upper()
        wanted = ancestor.upper()
        while current is not None:
            if current == wanted:
                return True
            current = self.supertypes.get(current)
        return False

    def matches(self, declared: str) -> bool:
        return schema_identifier(declared) == self.name


class SchemaList:
    """Ordered set of schemas a decoder accepts."""

    def __init__(self, schemas: Iterable[SchemaDefinition]) -> None:
        self._schemas: list[SchemaDefinition] = list(schemas)

    def find(self, declared: str) -> SchemaDefinition | None:
        for schema in self._schemas:
            if schema.matches(declared):
                return schema
        return None

    def is_kind_of(self, type_name: str, ancestor: str) -> bool:
        return any(schema.is_kind_of(type_name, ancestor) for schema in self._schemas)

    def names(self) -> list[str]:
        return [schema.name for schema in self._schemas]

    def __iter__(self):
        return iter(self._schemas)

    def __len__(self) -> int:
        return len(self._schemas)


def _pdm_schema(name: str) -> SchemaDefinition:
    return SchemaDefinition(
        name=name,
        entities=dict(_PDM_ENTITIES),
        supertypes=dict(_PDM_SUPERTYPES),
    )


AP242 = _pdm_schema("AP242_MANAGED_MODEL_BASED_3D_ENGINEERING_MIM_LF")
AP214 = _pdm_schema("AUTOMOTIVE_DESIGN")
AP203E2 = _pdm_schema("AP203_CONFIGURATION_CONTROLLED_3D_DESIGN_OF_MECHANICAL_PARTS_AND_ASSEMBLIES_MIM_LF")
AP203 = _pdm_schema("CONFIG_CONTROL_DESIGN")


def default_schema_list() -> SchemaList:
    return SchemaList([AP242, AP214, AP203E2, AP203])
