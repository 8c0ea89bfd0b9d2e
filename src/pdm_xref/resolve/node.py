"""Reference graph nodes and their load status."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from pdm_xref.types import DocumentSourceLocation, Entity, ExchangeStructure


class StatusKind(str, Enum):
    PENDING = "pending"
    DEFERRED = "deferred"
    LOADED = "loaded"
    FOREIGN_REFERENCE = "foreign_reference"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FailureKind(str, Enum):
    REFERENCE_NOT_FOUND = "reference_not_found"
    DECODER_ERROR = "decoder_error"


@dataclass(frozen=True, slots=True)
class FailureReason:
    kind: FailureKind
    location: DocumentSourceLocation
    message: str = ""


@dataclass(frozen=True, slots=True)
class Pending:
    kind: ClassVar[StatusKind] = StatusKind.PENDING


@dataclass(frozen=True, slots=True)
class Deferred:
    kind: ClassVar[StatusKind] = StatusKind.DEFERRED


@dataclass(frozen=True, slots=True)
class Loaded:
    content: ExchangeStructure
    kind: ClassVar[StatusKind] = StatusKind.LOADED


@dataclass(frozen=True, slots=True)
class ForeignReference:
    kind: ClassVar[StatusKind] = StatusKind.FOREIGN_REFERENCE


@dataclass(frozen=True, slots=True)
class Failed:
    reason: FailureReason
    kind: ClassVar[StatusKind] = StatusKind.FAILED


@dataclass(frozen=True, slots=True)
class Cancelled:
    kind: ClassVar[StatusKind] = StatusKind.CANCELLED


LoadStatus = Union[Pending, Deferred, Loaded, ForeignReference, Failed, Cancelled]

TERMINAL_STATUSES = (Loaded, ForeignReference, Failed, Cancelled)


class InvalidTransition(RuntimeError):
    """Raised when a terminal status would be overwritten."""


class ReferenceNode:
    """One external file in the reference graph.

    The node's name is the file name of its first candidate location and is
    fixed at construction; it identifies the logical document across the
    whole graph. `parent` is a lookup relation only, the loader owns every node.
    """

    def __init__(
        self,
        candidate_locations: Iterable[DocumentSourceLocation],
        *,
        parent: ReferenceNode | None = None,
        originating_handle: Entity | None = None,
    ) -> None:
        self.candidate_locations: list[DocumentSourceLocation] = list(candidate_locations)
        if not self.candidate_locations:
            raise ValueError("a reference node needs at least one candidate location")
        self.name = self.candidate_locations[0].file_name.strip()
        self.parent = parent
        self.depth = 0 if parent is None else parent.depth + 1
        self.originating_handle = originating_handle
        self._status: LoadStatus = Pending()

    @classmethod
    def root(cls, location: DocumentSourceLocation) -> ReferenceNode:
        return cls([location])

    @property
    def status(self) -> LoadStatus:
        return self._status

    @property
    def status_kind(self) -> StatusKind:
        return self._status.kind

    @property
    def primary_location(self) -> DocumentSourceLocation:
        return self.candidate_locations[0]

    @property
    def decoded_content(self) -> ExchangeStructure | None:
        if isinstance(self._status, Loaded):
            return self._status.content
        return None

    @property
    def failure(self) -> FailureReason | None:
        if isinstance(self._status, Failed):
            return self._status.reason
        return None

    @property
    def is_pending(self) -> bool:
        return isinstance(self._status, Pending)

    @property
    def is_deferred(self) -> bool:
        return isinstance(self._status, Deferred)

    @property
    def is_terminal(self) -> bool:
        return isinstance(self._status, TERMINAL_STATUSES)

    def add_candidates(self, locations: Iterable[DocumentSourceLocation]) -> None:
        for location in locations:
            if location not in self.candidate_locations:
                self.candidate_locations.append(location)

    def mark_loaded(
        self, content: ExchangeStructure, location: DocumentSourceLocation | None = None
    ) -> None:
        self._transition(Loaded(content))
        if location is not None:
            self.candidate_locations = [location]

    def mark_failed(self, reason: FailureReason) -> None:
        self._transition(Failed(reason))

    def mark_deferred(self) -> None:
        self._transition(Deferred())

    def mark_foreign_reference(self) -> None:
        self._transition(ForeignReference())

    def mark_cancelled(self) -> None:
        self._transition(Cancelled())

    def mirror(self, other: ReferenceNode) -> None:
        """Adopt the outcome already reached by another node of the same name."""
        if isinstance(other.status, Pending):
            return
        self._transition(other.status)

    def requeue(self) -> bool:
        """Move a deferred node back to pending; returns whether it moved."""
        if not isinstance(self._status, Deferred):
            return False
        self._status = Pending()
        return True

    def _transition(self, status: LoadStatus) -> None:
        if self.is_terminal:
            raise InvalidTransition(
                f"{self.name}: cannot change {self.status_kind.value} to {status.kind.value}"
            )
        self._status = status

    def __repr__(self) -> str:
        return f"ReferenceNode({self.name!r}, depth={self.depth}, status={self.status_kind.value})"
