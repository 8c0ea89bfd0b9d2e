"""Exception hierarchy for reference resolution and PDM queries."""

from __future__ import annotations

from typing import Any


class PDMError(Exception):
    """Base exception for the package."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ReferenceNotFoundError(PDMError):
    """A referenced location could not be opened."""


class DecoderError(PDMError):
    """The decoder rejected the content of an exchange file."""


class UnknownSchemaError(DecoderError):
    """The exchange file declares no schema from the recognized list."""


class DomainIntegrityError(PDMError):
    """A relationship expected to have at most one match has several.

    Subclasses name the violated relationship; `matches` holds the offending
    entities in lookup order.
    """

    relationship = "relationship"

    def __init__(self, matches: list[Any]) -> None:
        super().__init__(
            f"multiple {self.relationship}: {len(matches)} matches",
            {"matches": [repr(match) for match in matches]},
        )
        self.matches = matches


class MultipleProductDefinitionShapes(DomainIntegrityError):
    relationship = "product definition shapes"


class MultipleDefinitionalShapes(DomainIntegrityError):
    relationship = "definitional shapes"


class MultipleDocumentRepresentationTypes(DomainIntegrityError):
    relationship = "document representation types"


class MultipleAssignedVersions(DomainIntegrityError):
    relationship = "assigned versions"


class MultipleShapeDefinitionRepresentations(DomainIntegrityError):
    relationship = "shape definition representations"
