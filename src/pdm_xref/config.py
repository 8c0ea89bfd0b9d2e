"""Configuration models for external reference resolution."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class LoaderConfig(BaseModel):
    """Configures the default disposition policy and graph expansion."""

    url_mechanism: str = Field(default="URL", min_length=1)
    recognized_extensions: frozenset[str] = Field(
        default=frozenset({"stp", "step", "p21"})
    )
    encoding: str = Field(default="utf-8", min_length=1)
    max_depth: int | None = Field(default=None, ge=0)

    @field_validator("recognized_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> frozenset[str]:
        items = [value] if isinstance(value, str) else list(value)
        return frozenset(str(ext).lstrip(".").lower() for ext in items)


class ApiConfig(BaseModel):
    """Configures the hosting API session store."""

    max_sessions: int = Field(default=64, ge=1)
    trace_limit: int = Field(default=1000, ge=1)
