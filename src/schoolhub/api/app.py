from __future__ import annotations

from fastapi import FastAPI

from schoolhub.api.dependencies import build_store
from schoolhub.api.errors import register_error_handlers
from schoolhub.api.lifespan import lifespan
from schoolhub.api.routes.health import router as health_router
from schoolhub.api.routes.resources import router as resources_router
from schoolhub.api.routes.root import DESCRIPTION, TITLE, VERSION
from schoolhub.api.routes.root import router as root_router
from schoolhub.core.ports.storage import ResourceStore
from schoolhub.core.registry import ResourceRegistry
from schoolhub.resources.configs import build_registry


def create_app(registry: ResourceRegistry | None = None, store: ResourceStore | None = None) -> FastAPI:
    app = FastAPI(title=TITLE, description=DESCRIPTION, version=VERSION, lifespan=lifespan)

    # Built once here and shared read-only by every request.
    app.state.registry = registry if registry is not None else build_registry()
    app.state.store = store if store is not None else build_store()

    register_error_handlers(app)

    app.include_router(root_router, include_in_schema=False)
    app.include_router(health_router, include_in_schema=False)
    app.include_router(resources_router)

    return app
