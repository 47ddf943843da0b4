"""Async HTTP helpers for consuming one ``/api/<plural>`` resource.

A ``ResourceClient`` wraps a shared ``httpx.AsyncClient`` and keeps a small
per-resource read cache. Reads are served from the cache until they are
``stale_after`` seconds old; any successful create/update/delete drops every
cached entry of that resource.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = 5 * 60


class ApiClientError(Exception):
    """Raised for any non-2xx response, built from the error envelope."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int = 500,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.status_code = status_code

    @property
    def issues(self) -> list[dict[str, Any]]:
        return list((self.details or {}).get("issues", []))


@dataclass(frozen=True)
class Page:
    items: list[Any]
    page: int
    page_size: int
    total: int
    total_pages: int


def _encode_params(params: dict[str, Any]) -> dict[str, str]:
    """Drop unset values; booleans go out as ``true``/``false``."""
    out: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            out[key] = ",".join(str(v) for v in value)
        else:
            out[key] = str(value)
    return out


class ResourceClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        resource_name: str,
        plural_name: str | None = None,
        stale_after: float = DEFAULT_STALE_AFTER,
    ) -> None:
        self.http = http
        self.resource_name = resource_name
        self.plural_name = plural_name or f"{resource_name}s"
        self.stale_after = stale_after
        self._cache: dict[tuple[Any, ...], tuple[float, Any]] = {}

    @property
    def base_path(self) -> str:
        return f"/api/{self.plural_name}"

    # --- Cache ---

    def _cached(self, key: tuple[Any, ...]) -> tuple[bool, Any]:
        entry = self._cache.get(key)
        if entry is None:
            return False, None
        stored_at, value = entry
        if time.monotonic() - stored_at >= self.stale_after:
            del self._cache[key]
            return False, None
        return True, value

    def _remember(self, key: tuple[Any, ...], value: Any) -> Any:
        self._cache[key] = (time.monotonic(), value)
        return value

    def invalidate(self) -> None:
        self._cache.clear()

    # --- Transport ---

    @staticmethod
    def _raise_for_envelope(response: httpx.Response) -> None:
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            raise ApiClientError(
                error.get("message", "Request failed"),
                code=error.get("code"),
                details=error.get("details"),
                status_code=response.status_code,
            )
        raise ApiClientError(
            response.reason_phrase or "Request failed",
            status_code=response.status_code,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.http.request(method, path, **kwargs)
        if response.is_error:
            logger.debug("%s %s failed with %d", method, path, response.status_code)
            self._raise_for_envelope(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json().get("data")

    # --- Operations ---

    async def list(self, **params: Any) -> list[Any] | Page:
        """Fetch the collection; paginated responses come back as a ``Page``."""
        query = _encode_params(params)
        key = (self.plural_name, tuple(sorted(query.items())))
        hit, value = self._cached(key)
        if hit:
            return value

        data = await self._request("GET", self.base_path, params=query)
        if isinstance(data, dict) and "pagination" in data:
            meta = data["pagination"]
            result: list[Any] | Page = Page(
                items=data["data"],
                page=meta["page"],
                page_size=meta["pageSize"],
                total=meta["total"],
                total_pages=meta["totalPages"],
            )
        else:
            result = data
        return self._remember(key, result)

    async def get(self, id: str) -> Any:
        key = (self.plural_name, id)
        hit, value = self._cached(key)
        if hit:
            return value
        return self._remember(key, await self._request("GET", f"{self.base_path}/{id}"))

    async def create(self, data: dict[str, Any]) -> Any:
        created = await self._request("POST", self.base_path, json=data)
        self.invalidate()
        return created

    async def update(self, id: str, data: dict[str, Any]) -> Any:
        updated = await self._request("PATCH", f"{self.base_path}/{id}", json=data)
        self.invalidate()
        return updated

    async def delete(self, id: str) -> None:
        await self._request("DELETE", f"{self.base_path}/{id}")
        self.invalidate()


def create_resource_client(
    http: httpx.AsyncClient, resource_name: str, plural_name: str | None = None
) -> ResourceClient:
    return ResourceClient(http, resource_name, plural_name)
