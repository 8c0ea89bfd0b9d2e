"""External reference resolution for STEP AP242 PDM exchange files."""

from .config import LoaderConfig
from .decode.repository import Repository
from .decode.schema import default_schema_list
from .resolve.loader import ExternalReferenceLoader
from .resolve.monitor import ActivityMonitor
from .resolve.node import ReferenceNode, StatusKind
from .resolve.policy import Disposition, ReferenceDispositionPolicy
from .types import DocumentSourceLocation, LinkageRecord

__all__ = [
    "ActivityMonitor",
    "Disposition",
    "DocumentSourceLocation",
    "ExternalReferenceLoader",
    "LinkageRecord",
    "LoaderConfig",
    "ReferenceDispositionPolicy",
    "ReferenceNode",
    "Repository",
    "StatusKind",
    "default_schema_list",
]
