import pytest

from pdm_xref.resolve.node import (
    FailureKind,
    FailureReason,
    InvalidTransition,
    Loaded,
    ReferenceNode,
    StatusKind,
)
from pdm_xref.types import DocumentSourceLocation, ExchangeStructure


def _content(name: str = "part.stp") -> ExchangeStructure:
    return ExchangeStructure(file_name=name, schema_names=("AUTOMOTIVE_DESIGN",))


def test_name_and_depth_come_from_first_candidate_and_parent() -> None:
    root = ReferenceNode.root(DocumentSourceLocation("assembly.stp", "/cad", "URL"))
    child = ReferenceNode(
        [
            DocumentSourceLocation("part.stp", "/cad", "URL"),
            DocumentSourceLocation("part_alt.stp", "/backup", "URL"),
        ],
        parent=root,
    )

    assert root.name == "assembly.stp"
    assert root.depth == 0
    assert child.name == "part.stp"
    assert child.depth == 1
    assert child.parent is root
    assert child.status_kind is StatusKind.PENDING


def test_node_requires_a_location() -> None:
    with pytest.raises(ValueError):
        ReferenceNode([])


def test_loaded_collapses_candidates_and_exposes_content() -> None:
    winner = DocumentSourceLocation("part.stp", "/backup", "URL")
    node = ReferenceNode([DocumentSourceLocation("part.stp", "/cad", "URL"), winner])
    content = _content()

    node.mark_loaded(content, winner)

    assert node.candidate_locations == [winner]
    assert node.decoded_content is content
    assert isinstance(node.status, Loaded)
    assert node.is_terminal


def test_terminal_statuses_cannot_change() -> None:
    location = DocumentSourceLocation("part.stp", "/cad", "URL")
    node = ReferenceNode([location])
    node.mark_failed(FailureReason(FailureKind.REFERENCE_NOT_FOUND, location, "gone"))

    with pytest.raises(InvalidTransition):
        node.mark_loaded(_content())
    assert node.failure is not None
    assert node.failure.kind is FailureKind.REFERENCE_NOT_FOUND
    assert node.decoded_content is None


def test_deferred_requeues_to_pending_only_once() -> None:
    node = ReferenceNode([DocumentSourceLocation("part.stp", "/cad", "URL")])
    node.mark_deferred()

    assert node.is_deferred
    assert node.requeue() is True
    assert node.is_pending
    assert node.requeue() is False


def test_mirror_adopts_outcome_of_same_name() -> None:
    primary = ReferenceNode([DocumentSourceLocation("shared.stp", "/cad", "URL")])
    other = ReferenceNode([DocumentSourceLocation("shared.stp", "/lib", "URL")])
    content = _content("shared.stp")

    other.mirror(primary)
    assert other.is_pending

    primary.mark_loaded(content)
    other.mirror(primary)
    assert other.decoded_content is primary.decoded_content
