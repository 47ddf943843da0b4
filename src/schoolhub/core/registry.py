"""Resource configuration records and the registry that owns them.

Every exposed resource is described once, at startup, by a ``ResourceConfig``.
The ``ResourceRegistry`` is built from those configs before the application
starts serving and is shared read-only by every request afterwards.

Lifecycle hooks run in a fixed order around the primary storage call::

    validate -> transform -> before_* -> storage call -> after_* -> transform_response

Each step is awaited before the next one starts. Implementations must not
schedule hooks concurrently.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from schoolhub.core.query import FilterConfig, Include, QueryOptions, SortOrder

if TYPE_CHECKING:
    from schoolhub.core.ports.storage import Record, ResourceStore


class Operation(StrEnum):
    LIST = "list"
    RETRIEVE = "retrieve"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


ALL_OPERATIONS = frozenset(Operation)
READ_ONLY = frozenset({Operation.LIST, Operation.RETRIEVE})


@dataclass(frozen=True)
class HookContext:
    """What a lifecycle hook may use: the resource's config and a transaction-bound store."""

    resource: ResourceConfig
    store: ResourceStore


class ResourceHooks:
    """Lifecycle extension points. Subclasses override the hooks they need."""

    async def before_create(self, ctx: HookContext, data: Record) -> Record:
        return data

    async def after_create(self, ctx: HookContext, record: Record) -> None:
        return None

    async def before_update(self, ctx: HookContext, id: str, data: Record) -> Record:
        return data

    async def after_update(self, ctx: HookContext, id: str, record: Record) -> None:
        return None

    async def before_delete(self, ctx: HookContext, id: str) -> None:
        return None

    async def after_delete(self, ctx: HookContext, id: str) -> None:
        return None


NO_HOOKS = ResourceHooks()

Transform = Callable[[dict[str, Any]], dict[str, Any]]
ResponseTransform = Callable[[dict[str, Any]], Any]


@dataclass(frozen=True)
class ResourceConfig:
    resource_name: str
    model: str
    plural_name: str = ""
    search_fields: tuple[str, ...] = ()
    filter_fields: Mapping[str, FilterConfig] = field(default_factory=dict)
    sort_fields: Mapping[str, str] = field(default_factory=dict)
    default_sort: str | None = None
    default_sort_order: SortOrder = "asc"
    include: Include | None = None
    select: tuple[str, ...] | None = None
    validation_schema: type[BaseModel] | None = None
    create_schema: type[BaseModel] | None = None
    update_schema: type[BaseModel] | None = None
    transform_create: Transform | None = None
    transform_update: Transform | None = None
    transform_response: ResponseTransform | None = None
    hooks: ResourceHooks = NO_HOOKS
    operations: frozenset[Operation] = ALL_OPERATIONS

    def __post_init__(self) -> None:
        if not self.plural_name:
            object.__setattr__(self, "plural_name", f"{self.resource_name}s")
        object.__setattr__(self, "filter_fields", MappingProxyType(dict(self.filter_fields)))
        object.__setattr__(self, "sort_fields", MappingProxyType(dict(self.sort_fields)))
        object.__setattr__(self, "operations", frozenset(self.operations))

    @property
    def query_options(self) -> QueryOptions:
        return QueryOptions(
            search_fields=self.search_fields,
            filter_fields=self.filter_fields,
            sort_fields=self.sort_fields,
            default_sort=self.default_sort,
            default_sort_order=self.default_sort_order,
            include=self.include,
            select=self.select,
        )

    @property
    def create_input(self) -> type[BaseModel] | None:
        return self.create_schema or self.validation_schema

    @property
    def update_input(self) -> type[BaseModel] | None:
        return self.update_schema or self.validation_schema

    def allows(self, operation: Operation) -> bool:
        return operation in self.operations


_KEBAB = re.compile(r"-([a-z0-9])")


def kebab_to_camel(segment: str) -> str:
    """``academic-years`` -> ``academicYears``."""
    return _KEBAB.sub(lambda m: m.group(1).upper(), segment)


class ResourceRegistry:
    """Immutable lookup of resource configs by name and by plural route segment."""

    def __init__(self, configs: Iterable[ResourceConfig]) -> None:
        by_name: dict[str, ResourceConfig] = {}
        by_plural: dict[str, ResourceConfig] = {}
        for config in configs:
            if config.resource_name in by_name:
                raise ValueError(f"Duplicate resource name: {config.resource_name!r}")
            if config.plural_name in by_plural:
                raise ValueError(f"Duplicate plural name: {config.plural_name!r}")
            by_name[config.resource_name] = config
            by_plural[config.plural_name] = config
        self._by_name = MappingProxyType(by_name)
        self._by_plural = MappingProxyType(by_plural)

    def get(self, resource_name: str) -> ResourceConfig | None:
        return self._by_name.get(resource_name)

    def has(self, resource_name: str) -> bool:
        return resource_name in self._by_name

    def get_by_plural_name(self, plural_name: str) -> ResourceConfig | None:
        return self._by_plural.get(plural_name)

    def resolve(self, segment: str) -> ResourceConfig | None:
        """Find the config a route segment refers to, by plural name first, then by resource name."""
        name = kebab_to_camel(segment)
        return self.get_by_plural_name(name) or self.get(name)

    def __iter__(self) -> Iterator[ResourceConfig]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)
