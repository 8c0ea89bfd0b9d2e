"""FastAPI entrypoint for resolving reference graphs and inspecting results."""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from pdm_xref.config import ApiConfig, LoaderConfig
from pdm_xref.decode.repository import Repository
from pdm_xref.errors import PDMError
from pdm_xref.obs.tracing import Timer, TracingMonitor
from pdm_xref.query.lookup import text
from pdm_xref.resolve.loader import ExternalReferenceLoader
from pdm_xref.types import Entity, LinkageRecord

LOGGER = logging.getLogger(__name__)


class ResolveRequest(BaseModel):
    path: str = Field(min_length=1)
    max_depth: int | None = Field(default=None, ge=0)
    recognized_extensions: list[str] | None = None


app = FastAPI(title="PDM External Reference Resolver", version="0.1.0")

_api_config = ApiConfig()
_monitor = TracingMonitor(limit=_api_config.trace_limit)
_sessions: OrderedDict[str, ExternalReferenceLoader] = OrderedDict()


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "session_count": len(_sessions),
        "trace_count": len(_monitor.list_recent(limit=_api_config.trace_limit)),
    }


@app.post("/resolve")
def resolve(request: ResolveRequest) -> dict[str, Any]:
    overrides: dict[str, Any] = {"max_depth": request.max_depth}
    if request.recognized_extensions:
        overrides["recognized_extensions"] = request.recognized_extensions
    config = LoaderConfig(**overrides)

    repository = Repository()
    loader = ExternalReferenceLoader(
        repository, repository.schema_list, request.path, _monitor, config=config
    )
    with Timer() as timer:
        loader.decode()

    session_id = str(uuid.uuid4())
    _sessions[session_id] = loader
    while len(_sessions) > _api_config.max_sessions:
        _sessions.popitem(last=False)
    LOGGER.info("session %s resolved %s in %.1f ms", session_id, request.path, timer.elapsed_ms)
    return {**_session_payload(session_id, loader), "latency_ms": timer.elapsed_ms}


@app.get("/sessions/{session_id}")
def session_detail(session_id: str) -> dict[str, Any]:
    return _session_payload(session_id, _get_session(session_id))


@app.post("/sessions/{session_id}/retry")
def retry(session_id: str) -> dict[str, Any]:
    loader = _get_session(session_id)
    released = loader.retry_deferred()
    return {**_session_payload(session_id, loader), "released": released}


@app.get("/sessions/{session_id}/linkages")
def linkages(session_id: str, parent: str, child: str) -> dict[str, Any]:
    loader = _get_session(session_id)
    nodes = loader.nodes
    if parent not in nodes or child not in nodes:
        raise HTTPException(status_code=404, detail=f"Unknown node: {parent if parent not in nodes else child}")
    try:
        records = loader.linkages(nodes[parent], nodes[child])
    except PDMError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    return {
        "parent": parent,
        "child": child,
        "items": sorted(
            (_linkage_payload(record) for record in records),
            key=lambda item: (item["master"]["id"], item["detail"]["id"]),
        ),
    }


@app.get("/traces")
def traces(limit: int = 20) -> dict[str, Any]:
    return {"items": [asdict(record) for record in _monitor.list_recent(limit=limit)]}


@app.get("/metrics")
def metrics() -> dict[str, Any]:
    return _monitor.summary()


def _get_session(session_id: str) -> ExternalReferenceLoader:
    loader = _sessions.get(session_id)
    if loader is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return loader


def _session_payload(session_id: str, loader: ExternalReferenceLoader) -> dict[str, Any]:
    return {
        "session_id": session_id,
        "root": loader.root.name,
        "statuses": {name: kind.value for name, kind in loader.statuses().items()},
        "nodes": loader.report(),
        "model_count": len(loader.models),
    }


def _linkage_payload(record: LinkageRecord) -> dict[str, Any]:
    return {"master": _entity_payload(record.master), "detail": _entity_payload(record.detail)}


def _entity_payload(entity: Entity) -> dict[str, Any]:
    return {
        "model": entity.model,
        "id": entity.id,
        "type": entity.type_name,
        "name": text(entity.get("NAME")),
    }
