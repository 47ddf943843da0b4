from __future__ import annotations

from fastapi import Request

from schoolhub.config import get_store_kind
from schoolhub.core.ports.storage import ResourceStore
from schoolhub.core.registry import ResourceRegistry
from schoolhub.db import InMemoryResourceStore, SqlResourceStore, get_engine


def build_store(kind: str | None = None) -> ResourceStore:
    """Create the store named by ``kind`` (``sql`` or ``memory``), defaulting to ``SCHOOLHUB_STORE``."""
    kind = kind or get_store_kind()
    if kind == "memory":
        return InMemoryResourceStore()
    if kind == "sql":
        return SqlResourceStore(get_engine())
    raise ValueError(f"Unknown store kind: {kind!r}")


def get_registry(request: Request) -> ResourceRegistry:
    return request.app.state.registry


def get_store(request: Request) -> ResourceStore:
    return request.app.state.store
