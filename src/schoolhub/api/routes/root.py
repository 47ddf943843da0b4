from __future__ import annotations

import re
from typing import Any

from fastapi import APIRouter, Depends

from schoolhub.api.dependencies import get_registry
from schoolhub.core.registry import ResourceRegistry

router = APIRouter()

TITLE = "SchoolHub API"
DESCRIPTION = "Generic CRUD and query endpoints for school records."
VERSION = "0.1.0"

_UPPER = re.compile(r"(?<!^)([A-Z])")


def camel_to_kebab(name: str) -> str:
    """``academicYears`` -> ``academic-years``."""
    return _UPPER.sub(r"-\1", name).lower()


@router.get("/")
async def root() -> dict[str, Any]:
    return {
        "meta": {"title": TITLE, "description": DESCRIPTION, "version": VERSION},
        "links": {
            "self": "/",
            "api": "/api",
            "health": "/health",
            "openapi": "/openapi.json",
            "docs": "/docs",
        },
    }


@router.get("/api")
async def discovery(registry: ResourceRegistry = Depends(get_registry)) -> dict[str, Any]:
    """List every registered resource with its collection link and enabled operations."""
    return {
        "success": True,
        "data": [
            {
                "name": config.resource_name,
                "pluralName": config.plural_name,
                "href": f"/api/{camel_to_kebab(config.plural_name)}",
                "operations": sorted(op.value for op in config.operations),
            }
            for config in registry
        ],
    }
