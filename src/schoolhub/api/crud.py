"""CRUD orchestration: one ``ResourceConfig`` turned into list/retrieve/create/update/delete handlers.

Every handler runs the same linear pipeline and converts any failure into an
envelope response through ``handle_api_error``. Mutations run their hooks and
the primary storage call inside one store transaction, so a failing
``after_*`` hook rolls the primary write back.
"""

from __future__ import annotations

import asyncio
import json
import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError
from starlette.datastructures import QueryParams
from starlette.requests import Request
from starlette.responses import Response

from schoolhub.api.envelope import (
    created,
    handle_api_error,
    no_content,
    success,
    validation_issues,
)
from schoolhub.core.errors import BadRequestError, MethodNotAllowedError, NotFoundError, issue
from schoolhub.core.ports.storage import Record, ResourceStore
from schoolhub.core.query import CountArgs, FindUniqueArgs, QueryBuilder, RawValue, SortOrder, validate_filters
from schoolhub.core.registry import HookContext, Operation, ResourceConfig

RESERVED_PARAMS = frozenset({"search", "page", "pageSize", "sortBy", "sortOrder"})


def query_params_to_dict(params: QueryParams | Mapping[str, RawValue]) -> dict[str, RawValue]:
    """Collapse a multi-dict into ``key -> str`` (single value) or ``key -> list[str]`` (repeated key)."""
    if isinstance(params, QueryParams):
        out: dict[str, RawValue] = {}
        for key in params:
            values = params.getlist(key)
            out[key] = values[0] if len(values) == 1 else values
        return out
    return dict(params)


def _last(value: RawValue) -> str | None:
    """Repeated query keys resolve to their last value, the same rule filters follow."""
    if value is None or isinstance(value, str):
        return value
    return value[-1] if value else None


def _positive_int(name: str, raw: str | None, issues: list[dict[str, Any]]) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        number = int(raw)
    except ValueError:
        issues.append(issue([name], "Expected a positive integer", "invalid_type"))
        return None
    if number < 1:
        issues.append(issue([name], "Expected a positive integer", "too_small"))
        return None
    return number


class CrudOrchestrator:
    def __init__(self, config: ResourceConfig, store: ResourceStore) -> None:
        self.config = config
        self.store = store

    @property
    def resource_name(self) -> str:
        return self.config.resource_name

    @property
    def plural_name(self) -> str:
        return self.config.plural_name

    def _require(self, operation: Operation) -> None:
        if not self.config.allows(operation):
            raise MethodNotAllowedError(f"{operation.value} is not supported for {self.plural_name}")

    def _transform_response(self, record: Record) -> Any:
        if self.config.transform_response is not None:
            return self.config.transform_response(record)
        return record

    def _validate(self, data: Any, schema: type[BaseModel] | None, *, partial: bool) -> Record:
        if schema is None:
            if not isinstance(data, dict):
                raise BadRequestError.from_issues(
                    "Validation failed", [issue([], "Expected a JSON object", "invalid_type")]
                )
            return data
        try:
            model = schema.model_validate(data)
        except ValidationError as exc:
            raise BadRequestError.from_issues("Validation failed", validation_issues(exc)) from exc
        return model.model_dump(exclude_unset=partial)

    @staticmethod
    async def _read_json(request: Request) -> Any:
        try:
            return await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise BadRequestError.from_issues(
                "Malformed JSON body", [issue([], str(exc), "invalid_json")]
            ) from exc

    async def _get_existing(self, store: ResourceStore, id: str) -> Record:
        existing = await store.find_unique(self.config.model, FindUniqueArgs(id=id))
        if existing is None:
            raise NotFoundError(self.resource_name)
        return existing

    # --- List ---

    def _parse_list_params(self, params: dict[str, RawValue]) -> tuple[int | None, int | None, str | None, SortOrder | None]:
        issues: list[dict[str, Any]] = []
        page = _positive_int("page", _last(params.get("page")), issues)
        page_size = _positive_int("pageSize", _last(params.get("pageSize")), issues)

        sort_by = _last(params.get("sortBy")) or None
        if sort_by and self.config.sort_fields and sort_by not in self.config.sort_fields:
            issues.append(issue(["sortBy"], f"Cannot sort by {sort_by!r}", "invalid_enum_value"))

        sort_order = _last(params.get("sortOrder")) or None
        if sort_order is not None and sort_order not in ("asc", "desc"):
            issues.append(issue(["sortOrder"], "Expected 'asc' or 'desc'", "invalid_enum_value"))

        filters = {k: v for k, v in params.items() if k not in RESERVED_PARAMS}
        issues.extend(validate_filters(self.config.filter_fields, filters))

        if issues:
            raise BadRequestError.from_issues("Invalid query parameters", issues)
        return page, page_size, sort_by, sort_order  # type: ignore[return-value]

    async def list(self, request: Request) -> Response:
        async def _run() -> Response:
            self._require(Operation.LIST)
            params = query_params_to_dict(request.query_params)
            page, page_size, sort_by, sort_order = self._parse_list_params(params)

            builder = (
                QueryBuilder(self.config.query_options)
                .with_search(_last(params.get("search")))
                .with_filters({k: v for k, v in params.items() if k not in RESERVED_PARAMS})
                .with_sort(sort_by, sort_order)
                .with_pagination(page, page_size)
            )
            find_many = builder.build_find_many()

            rows, total = await asyncio.gather(
                self.store.find_many(self.config.model, find_many),
                self.store.count(self.config.model, CountArgs(where=find_many.where)),
            )
            items = [self._transform_response(row) for row in rows]

            if page is not None and page_size is not None:
                return success(
                    {
                        "data": items,
                        "pagination": {
                            "page": page,
                            "pageSize": page_size,
                            "total": total,
                            "totalPages": math.ceil(total / page_size),
                        },
                    }
                )
            return success(items)

        return await handle_api_error(_run, f"GET /{self.plural_name}")

    # --- Retrieve ---

    async def retrieve(self, request: Request, id: str) -> Response:
        async def _run() -> Response:
            self._require(Operation.RETRIEVE)
            args = QueryBuilder(self.config.query_options).build_find_unique(id)
            record = await self.store.find_unique(self.config.model, args)
            if record is None:
                raise NotFoundError(self.resource_name)
            return success(self._transform_response(record))

        return await handle_api_error(_run, f"GET /{self.plural_name}/{id}")

    # --- Create ---

    async def create(self, request: Request) -> Response:
        async def _run() -> Response:
            self._require(Operation.CREATE)
            body = await self._read_json(request)
            data = self._validate(body, self.config.create_input, partial=False)
            if self.config.transform_create is not None:
                data = self.config.transform_create(data)

            async with self.store.transaction() as tx:
                ctx = HookContext(resource=self.config, store=tx)
                data = await self.config.hooks.before_create(ctx, data)
                record = await tx.create(self.config.model, data, include=self.config.include)
                await self.config.hooks.after_create(ctx, record)

            return created(self._transform_response(record))

        return await handle_api_error(_run, f"POST /{self.plural_name}")

    # --- Replace / patch ---

    async def _update(self, request: Request, id: str) -> Response:
        self._require(Operation.UPDATE)
        body = await self._read_json(request)
        # Body errors win over a missing id: a bad body never reaches storage.
        data = self._validate(body, self.config.update_input, partial=True)

        async with self.store.transaction() as tx:
            await self._get_existing(tx, id)

            if self.config.transform_update is not None:
                data = self.config.transform_update(data)

            ctx = HookContext(resource=self.config, store=tx)
            data = await self.config.hooks.before_update(ctx, id, data)
            record = await tx.update(self.config.model, id, data, include=self.config.include)
            await self.config.hooks.after_update(ctx, id, record)

        return success(self._transform_response(record))

    async def replace(self, request: Request, id: str) -> Response:
        return await handle_api_error(lambda: self._update(request, id), f"PUT /{self.plural_name}/{id}")

    async def patch(self, request: Request, id: str) -> Response:
        return await handle_api_error(lambda: self._update(request, id), f"PATCH /{self.plural_name}/{id}")

    # --- Delete ---

    async def delete(self, request: Request, id: str) -> Response:
        async def _run() -> Response:
            self._require(Operation.DELETE)
            async with self.store.transaction() as tx:
                await self._get_existing(tx, id)
                ctx = HookContext(resource=self.config, store=tx)
                await self.config.hooks.before_delete(ctx, id)
                await tx.delete(self.config.model, id)
                await self.config.hooks.after_delete(ctx, id)
            return no_content()

        return await handle_api_error(_run, f"DELETE /{self.plural_name}/{id}")


def create_crud_route(config: ResourceConfig, store: ResourceStore) -> CrudOrchestrator:
    return CrudOrchestrator(config, store)
