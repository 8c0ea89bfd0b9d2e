"""Observer hooks around load attempts and reference discovery."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pdm_xref.resolve.node import ReferenceNode

LOGGER = logging.getLogger(__name__)


class ActivityMonitor:
    """No-op base monitor; override the callbacks of interest.

    Callbacks are diagnostic only. Their return value is ignored and they must
    not mutate the nodes they receive.
    """

    def started_loading(self, node: ReferenceNode) -> None:
        pass

    def completed_loading(self, node: ReferenceNode) -> None:
        pass

    def identified(self, children: list[ReferenceNode], parent: ReferenceNode) -> None:
        pass


class LoggingActivityMonitor(ActivityMonitor):
    """Writes every callback to the package logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or LOGGER

    def started_loading(self, node: ReferenceNode) -> None:
        self.logger.debug("loading %s (depth %d)", node.name, node.depth)

    def completed_loading(self, node: ReferenceNode) -> None:
        failure = node.failure
        if failure is not None:
            self.logger.info(
                "%s: %s (%s)", node.name, failure.kind.value, failure.message or failure.location
            )
        else:
            self.logger.info("%s: %s", node.name, node.status_kind.value)

    def identified(self, children: list[ReferenceNode], parent: ReferenceNode) -> None:
        self.logger.info(
            "%s references %d external file(s): %s",
            parent.name,
            len(children),
            ", ".join(child.name for child in children) or "-",
        )
