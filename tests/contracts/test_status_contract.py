from pathlib import Path

import pytest

from pdm_xref.decode.repository import Repository
from pdm_xref.resolve import node as node_module
from pdm_xref.resolve.loader import ExternalReferenceLoader
from pdm_xref.resolve.node import TERMINAL_STATUSES, StatusKind
from step_builders import part_block, reference_block

STATUS_CLASSES = (
    node_module.Pending,
    node_module.Deferred,
    node_module.Loaded,
    node_module.ForeignReference,
    node_module.Failed,
    node_module.Cancelled,
)


def test_every_status_kind_has_one_status_class() -> None:
    assert sorted(cls.kind.value for cls in STATUS_CLASSES) == sorted(kind.value for kind in StatusKind)
    assert node_module.Pending not in TERMINAL_STATUSES
    assert node_module.Deferred not in TERMINAL_STATUSES


@pytest.mark.parametrize(
    "files",
    [
        {},
        {"assembly.stp": "garbage"},
        {"assembly.stp": None},
        {"assembly.stp": "part1.stp", "part1.stp": None},
        {"assembly.stp": "part1.stp", "part1.stp": "assembly.stp"},
        {"assembly.stp": "part1.stp", "part1.stp": "garbage"},
    ],
)
def test_decode_never_raises_and_settles_every_node(files: dict, write_step, tmp_path: Path) -> None:
    for name, content in files.items():
        if content == "garbage":
            (tmp_path / name).write_text("ISO-10303-21;\nnot data", encoding="utf-8")
        elif content is None:
            write_step(name, part_block(1, "P-1", "Plate", "BODY"))
        else:
            write_step(name, reference_block(1, content))

    repository = Repository()
    loader = ExternalReferenceLoader(repository, repository.schema_list, tmp_path / "assembly.stp")
    loader.decode()

    assert all(node.is_terminal for node in loader.node_list)
    for node in loader.node_list:
        assert (node.decoded_content is not None) == (node.status_kind is StatusKind.LOADED)
        assert (node.failure is not None) == (node.status_kind is StatusKind.FAILED)
    assert len(loader.nodes) == len({node.name for node in loader.node_list})
    assert repository.open_views == set()
