"""Disposition policy: which external references this resolver loads, and how."""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from pathlib import PurePath
from typing import Protocol, TextIO

from pdm_xref.config import LoaderConfig
from pdm_xref.errors import ReferenceNotFoundError
from pdm_xref.types import DocumentSourceLocation

LOGGER = logging.getLogger(__name__)


class Disposition(str, Enum):
    LOAD = "load"
    DEFER = "defer"
    DECLINE = "decline"


class DispositionPolicy(Protocol):
    """Contract the loader relies on; hosting applications may supply their own."""

    def normalize(
        self, location: DocumentSourceLocation, parent: DocumentSourceLocation
    ) -> DocumentSourceLocation:
        """Complete a child location from its parent's location."""

    def disposition(self, location: DocumentSourceLocation) -> Disposition:
        """Decide whether a location is loaded now, later, or not by this resolver."""

    def open_stream(self, location: DocumentSourceLocation) -> TextIO:
        """Open a character stream, raising `ReferenceNotFoundError` on failure."""


class ReferenceDispositionPolicy:
    """Default policy: load local exchange files reached through a URL mechanism.

    Anything else (other mechanisms, native CAD formats, office documents) is
    declined so that it ends up as a foreign reference instead of an error.
    """

    def __init__(self, config: LoaderConfig | None = None) -> None:
        self.config = config or LoaderConfig()

    def normalize(
        self, location: DocumentSourceLocation, parent: DocumentSourceLocation
    ) -> DocumentSourceLocation:
        path = location.path
        if not path:
            path = parent.path
        elif parent.path and not PurePath(path).is_absolute():
            path = str(PurePath(parent.path) / path)
        mechanism = location.mechanism or parent.mechanism
        return replace(location, path=path, mechanism=mechanism)

    def disposition(self, location: DocumentSourceLocation) -> Disposition:
        if location.mechanism != self.config.url_mechanism:
            return Disposition.DECLINE
        if location.extension not in self.config.recognized_extensions:
            LOGGER.debug("%s: unrecognized extension %r", location, location.extension)
            return Disposition.DECLINE
        return Disposition.LOAD

    def open_stream(self, location: DocumentSourceLocation) -> TextIO:
        try:
            return open(location.full_path, encoding=self.config.encoding)
        except OSError as exc:
            raise ReferenceNotFoundError(
                f"cannot open {location.full_path}: {exc.strerror or exc}",
                {"location": str(location)},
            ) from exc
