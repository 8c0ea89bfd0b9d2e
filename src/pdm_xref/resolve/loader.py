"""Fixed-point loader for a master exchange file and everything it references."""

from __future__ import annotations

import logging
import os
from typing import Any

from pdm_xref.config import LoaderConfig
from pdm_xref.decode.part21 import Decoder, Part21Decoder
from pdm_xref.decode.repository import Repository
from pdm_xref.decode.schema import SchemaList
from pdm_xref.errors import DecoderError, DomainIntegrityError, ReferenceNotFoundError
from pdm_xref.query.documents import document_files, file_locations
from pdm_xref.resolve.linkage import LinkageDiscovery
from pdm_xref.resolve.monitor import ActivityMonitor
from pdm_xref.resolve.node import FailureKind, FailureReason, ReferenceNode, StatusKind
from pdm_xref.resolve.policy import Disposition, DispositionPolicy, ReferenceDispositionPolicy
from pdm_xref.types import DocumentSourceLocation, EntityModel, LinkageRecord

LOGGER = logging.getLogger(__name__)


class ExternalReferenceLoader:
    """Discovers, fetches and decodes every file reachable from a master file.

    `decode()` repeatedly scans pending nodes until a scan decodes nothing new.
    Each canonical name is decoded at most once: the first node to carry a
    name is its primary node, and later nodes of the same name adopt the
    primary's outcome. A freshly decoded node is searched for DOCUMENT_FILE
    entities and one child node is added per referenced file.

    Load failures never escape `decode()`; they are recorded on the node.
    Monitor callbacks that raise are logged and otherwise ignored.
    """

    def __init__(
        self,
        repository: Repository,
        schema_list: SchemaList | None,
        master_file: str | os.PathLike[str] | DocumentSourceLocation,
        monitor: ActivityMonitor | None = None,
        policy: DispositionPolicy | None = None,
        *,
        config: LoaderConfig | None = None,
        decoder: Decoder | None = None,
    ) -> None:
        self.repository = repository
        self.config = config or LoaderConfig()
        self.schema_list = schema_list or repository.schema_list
        self.monitor = monitor or ActivityMonitor()
        self.policy: DispositionPolicy = policy or ReferenceDispositionPolicy(self.config)
        self.decoder: Decoder = decoder or Part21Decoder(repository, self.schema_list)

        if isinstance(master_file, DocumentSourceLocation):
            location = master_file
        else:
            location = DocumentSourceLocation.from_url(
                os.fspath(master_file), mechanism=self.config.url_mechanism
            )
        self.root = ReferenceNode.root(location)
        self._nodes: list[ReferenceNode] = [self.root]
        self._primary: dict[str, ReferenceNode] = {self.root.name: self.root}
        self._cancel_requested = False
        self._linkage = LinkageDiscovery(repository)

    @property
    def nodes(self) -> dict[str, ReferenceNode]:
        """Primary node per canonical name."""
        return dict(self._primary)

    @property
    def node_list(self) -> list[ReferenceNode]:
        """Every node in discovery order, including repeated names."""
        return list(self._nodes)

    @property
    def models(self) -> list[EntityModel]:
        result: list[EntityModel] = []
        seen: set[int] = set()
        for node in self._primary.values():
            content = node.decoded_content
            if content is None:
                continue
            for model in content.models:
                if id(model) not in seen:
                    seen.add(id(model))
                    result.append(model)
        return result

    def statuses(self) -> dict[str, StatusKind]:
        return {name: node.status_kind for name, node in self._primary.items()}

    def children_of(self, node: ReferenceNode) -> list[ReferenceNode]:
        return [candidate for candidate in self._nodes if candidate.parent is node]

    def decode(self) -> None:
        """Run the loading loop to a fixed point.

        Deferred nodes are consulted once more at the start of every call, so a
        later call picks up references whose policy decision has changed.
        """
        for node in self._nodes:
            node.requeue()

        progressed = True
        while progressed and not self._cancel_requested:
            progressed = False
            for node in list(self._nodes):
                if self._cancel_requested:
                    break
                if node.is_pending and self._load(node):
                    progressed = True
        if self._cancel_requested:
            self._cancel_remaining()
            return
        LOGGER.info("reference graph settled: %s", self._status_counts())

    def retry_deferred(self) -> int:
        """Re-run resolution for deferred nodes; returns how many left deferral."""
        deferred = [node for node in self._nodes if node.is_deferred]
        self.decode()
        return sum(1 for node in deferred if not node.is_deferred)

    def cancel(self) -> None:
        """Ask a running or future `decode()` to stop at the next scan boundary."""
        self._cancel_requested = True

    def linkages(self, parent: ReferenceNode, child: ReferenceNode) -> frozenset[LinkageRecord]:
        return self._linkage.discover(parent, child)

    def all_linkages(self) -> dict[tuple[str, str], frozenset[LinkageRecord]]:
        """Linkages for every parent/child edge whose two ends are loaded."""
        result: dict[tuple[str, str], frozenset[LinkageRecord]] = {}
        for child in self._nodes:
            parent = child.parent
            if parent is None or parent.decoded_content is None or child.decoded_content is None:
                continue
            if parent.name == child.name:
                continue
            result[(parent.name, child.name)] = self.linkages(parent, child)
        return result

    def report(self) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for node in self._nodes:
            failure = node.failure
            content = node.decoded_content
            rows.append(
                {
                    "name": node.name,
                    "depth": node.depth,
                    "status": node.status_kind.value,
                    "parent": node.parent.name if node.parent is not None else None,
                    "location": str(node.primary_location.full_path),
                    "mechanism": node.primary_location.mechanism,
                    "failure": failure.kind.value if failure is not None else None,
                    "message": failure.message if failure is not None else None,
                    "entities": content.entity_count if content is not None else 0,
                }
            )
        return rows

    def _load(self, node: ReferenceNode) -> bool:
        self._notify("started_loading", node)
        try:
            return self._resolve(node)
        finally:
            self._notify("completed_loading", node)

    def _notify(self, callback: str, *args: Any) -> None:
        try:
            getattr(self.monitor, callback)(*args)
        except Exception:
            LOGGER.exception("activity monitor failed in %s", callback)

    def _resolve(self, node: ReferenceNode) -> bool:
        primary = self._primary.setdefault(node.name, node)
        if primary is not node:
            node.mirror(primary)
            return False

        for location in node.candidate_locations:
            disposition = self.policy.disposition(location)
            if disposition is Disposition.LOAD:
                return self._load_location(node, location)
            if disposition is Disposition.DEFER:
                node.mark_deferred()
                return False
        node.mark_foreign_reference()
        return False

    def _load_location(self, node: ReferenceNode, location: DocumentSourceLocation) -> bool:
        try:
            stream = self.policy.open_stream(location)
        except (ReferenceNotFoundError, OSError) as exc:
            node.mark_failed(FailureReason(FailureKind.REFERENCE_NOT_FOUND, location, str(exc)))
            return False

        try:
            with stream:
                content = self.decoder.decode(stream, name=node.name)
        except DecoderError as exc:
            node.mark_failed(FailureReason(FailureKind.DECODER_ERROR, location, exc.message))
            return False
        except Exception as exc:
            LOGGER.exception("%s: decoder raised an unexpected error", node.name)
            node.mark_failed(FailureReason(FailureKind.DECODER_ERROR, location, repr(exc)))
            return False

        node.mark_loaded(content, location)
        self._nodes.extend(self._identify_children(node))
        return True

    def _identify_children(self, parent: ReferenceNode) -> list[ReferenceNode]:
        content = parent.decoded_content
        if content is None:
            return []
        max_depth = self.config.max_depth
        if max_depth is not None and parent.depth + 1 > max_depth:
            LOGGER.debug("%s: depth limit %d reached, references not followed", parent.name, max_depth)
            self._notify("identified", [], parent)
            return []

        children: list[ReferenceNode] = []
        by_name: dict[str, ReferenceNode] = {}
        with self.repository.view(f"{parent.name}.TEMP", content.models) as view:
            for document_file in document_files(view):
                try:
                    locations = [
                        self.policy.normalize(location, parent.primary_location)
                        for location in file_locations(view, document_file)
                    ]
                except DomainIntegrityError as exc:
                    LOGGER.warning("%s: skipping %r: %s", parent.name, document_file, exc)
                    continue
                if not locations:
                    continue
                name = locations[0].file_name.strip()
                sibling = by_name.get(name)
                if sibling is not None:
                    sibling.add_candidates(locations)
                    continue
                child = ReferenceNode(locations, parent=parent, originating_handle=document_file)
                by_name[name] = child
                children.append(child)
                self._primary.setdefault(child.name, child)

        self._notify("identified", children, parent)
        return children

    def _cancel_remaining(self) -> None:
        for node in self._nodes:
            if node.is_pending or node.is_deferred:
                node.mark_cancelled()
        LOGGER.info("reference loading cancelled: %s", self._status_counts())

    def _status_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for node in self._nodes:
            counts[node.status_kind.value] = counts.get(node.status_kind.value, 0) + 1
        return counts
