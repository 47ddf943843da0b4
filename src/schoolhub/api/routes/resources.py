"""Dynamic ``/api/{resource}`` routes dispatching to the registry's CRUD orchestrators.

The resource segment may be the plural name or the resource name, in camelCase
or kebab-case: ``/api/academic-years``, ``/api/academicYears`` and
``/api/academicYear`` all reach the same config.
"""

from fastapi import APIRouter, Depends, Request, Response

from schoolhub.api.crud import CrudOrchestrator, create_crud_route
from schoolhub.api.dependencies import get_registry, get_store
from schoolhub.api.envelope import not_found
from schoolhub.core.ports.storage import ResourceStore
from schoolhub.core.registry import ResourceRegistry

router = APIRouter(prefix="/api", tags=["resources"])


def _resolve(resource: str, registry: ResourceRegistry, store: ResourceStore) -> CrudOrchestrator | None:
    config = registry.resolve(resource)
    if config is None:
        return None
    return create_crud_route(config, store)


@router.get("/{resource}")
async def list_resources(
    resource: str,
    request: Request,
    registry: ResourceRegistry = Depends(get_registry),
    store: ResourceStore = Depends(get_store),
) -> Response:
    crud = _resolve(resource, registry, store)
    if crud is None:
        return not_found("Resource")
    return await crud.list(request)


@router.post("/{resource}")
async def create_resource(
    resource: str,
    request: Request,
    registry: ResourceRegistry = Depends(get_registry),
    store: ResourceStore = Depends(get_store),
) -> Response:
    crud = _resolve(resource, registry, store)
    if crud is None:
        return not_found("Resource")
    return await crud.create(request)


@router.get("/{resource}/{id}")
async def retrieve_resource(
    resource: str,
    id: str,
    request: Request,
    registry: ResourceRegistry = Depends(get_registry),
    store: ResourceStore = Depends(get_store),
) -> Response:
    crud = _resolve(resource, registry, store)
    if crud is None:
        return not_found("Resource")
    return await crud.retrieve(request, id)


@router.put("/{resource}/{id}")
async def replace_resource(
    resource: str,
    id: str,
    request: Request,
    registry: ResourceRegistry = Depends(get_registry),
    store: ResourceStore = Depends(get_store),
) -> Response:
    crud = _resolve(resource, registry, store)
    if crud is None:
        return not_found("Resource")
    return await crud.replace(request, id)


@router.patch("/{resource}/{id}")
async def patch_resource(
    resource: str,
    id: str,
    request: Request,
    registry: ResourceRegistry = Depends(get_registry),
    store: ResourceStore = Depends(get_store),
) -> Response:
    crud = _resolve(resource, registry, store)
    if crud is None:
        return not_found("Resource")
    return await crud.patch(request, id)


@router.delete("/{resource}/{id}")
async def delete_resource(
    resource: str,
    id: str,
    request: Request,
    registry: ResourceRegistry = Depends(get_registry),
    store: ResourceStore = Depends(get_store),
) -> Response:
    crud = _resolve(resource, registry, store)
    if crud is None:
        return not_found("Resource")
    return await crud.delete(request, id)
