"""Declarative translation of raw request parameters into storage-agnostic queries.

A ``QueryBuilder`` is created per request from a resource's ``QueryOptions``.
Search terms, filter parameters, sorting and pagination are folded into an
immutable ``FindManyArgs`` (or one of its siblings) that a ``ResourceStore``
executes. The builder never touches storage.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from enum import StrEnum
from typing import Any, Literal, Union

from schoolhub.core.errors import FilterValueError, InvalidFilterConfig, issue

SortOrder = Literal["asc", "desc"]
RawValue = Union[str, Sequence[str], None]
Include = Mapping[str, Any]

UNSET_SENTINEL = "all"


class Operator(StrEnum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    IN = "in"
    BETWEEN = "between"


class ValueType(StrEnum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    ENUM = "enum"


_COMPARISONS = frozenset({Operator.GT, Operator.GTE, Operator.LT, Operator.LTE, Operator.BETWEEN})

_ALLOWED_OPERATORS: dict[ValueType, frozenset[Operator]] = {
    ValueType.STRING: frozenset({Operator.EQ, Operator.NE, Operator.IN, Operator.CONTAINS}),
    ValueType.NUMBER: frozenset({Operator.EQ, Operator.NE, Operator.IN}) | _COMPARISONS,
    ValueType.DATE: frozenset({Operator.EQ, Operator.NE, Operator.IN}) | _COMPARISONS,
    ValueType.BOOLEAN: frozenset({Operator.EQ, Operator.NE}),
    ValueType.ENUM: frozenset({Operator.EQ, Operator.NE, Operator.IN}),
}


@dataclass(frozen=True)
class FilterConfig:
    """How one query parameter maps onto one storage condition."""

    field: str
    operator: Operator = Operator.EQ
    type: ValueType = ValueType.STRING
    choices: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "operator", Operator(self.operator))
            object.__setattr__(self, "type", ValueType(self.type))
        except ValueError as exc:
            raise InvalidFilterConfig(str(exc)) from exc
        object.__setattr__(self, "choices", frozenset(self.choices))

        if self.operator not in _ALLOWED_OPERATORS[self.type]:
            raise InvalidFilterConfig(
                f"Operator {self.operator.value!r} is not valid for {self.type.value!r} field {self.field!r}"
            )
        if self.type is ValueType.ENUM and not self.choices:
            raise InvalidFilterConfig(f"Enum filter on {self.field!r} needs at least one choice")
        if self.type is not ValueType.ENUM and self.choices:
            raise InvalidFilterConfig(f"Only enum filters take choices (field {self.field!r})")


# --- Condition tree ---


@dataclass(frozen=True)
class Condition:
    field: str
    op: Operator
    value: Any


@dataclass(frozen=True)
class And:
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class Or:
    children: tuple[Node, ...] = ()


Node = Union[Condition, And, Or]

MATCH_ALL = And()


@dataclass(frozen=True)
class OrderBy:
    field: str
    direction: SortOrder = "asc"


# --- Query specifications handed to the storage collaborator ---


@dataclass(frozen=True)
class FindManyArgs:
    where: Node = MATCH_ALL
    order_by: OrderBy | None = None
    skip: int | None = None
    take: int | None = None
    include: Include | None = None
    select: tuple[str, ...] | None = None


@dataclass(frozen=True)
class FindFirstArgs:
    where: Node = MATCH_ALL
    include: Include | None = None
    select: tuple[str, ...] | None = None


@dataclass(frozen=True)
class FindUniqueArgs:
    id: str
    include: Include | None = None
    select: tuple[str, ...] | None = None


@dataclass(frozen=True)
class CountArgs:
    where: Node = MATCH_ALL


@dataclass(frozen=True)
class QueryOptions:
    search_fields: tuple[str, ...] = ()
    filter_fields: Mapping[str, FilterConfig] = field(default_factory=dict)
    sort_fields: Mapping[str, str] = field(default_factory=dict)
    default_sort: str | None = None
    default_sort_order: SortOrder = "asc"
    include: Include | None = None
    select: tuple[str, ...] | None = None


# --- Value coercion ---


def is_unset(value: RawValue) -> bool:
    """Absent, empty and ``"all"`` values mean "no constraint"."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == "" or value == UNSET_SENTINEL
    return all(is_unset(v) for v in value)


def parse_number(param: str, raw: str) -> int | float:
    text = raw.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise FilterValueError(param, raw, "expected a number") from None


def parse_date(param: str, raw: str) -> datetime:
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise FilterValueError(param, raw, "expected an ISO-8601 date") from None
    # stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _coerce(param: str, config: FilterConfig, raw: str) -> Any:
    if config.type is ValueType.NUMBER:
        return parse_number(param, raw)
    if config.type is ValueType.DATE:
        return parse_date(param, raw)
    if config.type is ValueType.BOOLEAN:
        lowered = raw.strip().lower()
        if lowered not in ("true", "false"):
            raise FilterValueError(param, raw, "expected 'true' or 'false'")
        return lowered == "true"
    if config.type is ValueType.ENUM and raw not in config.choices:
        raise FilterValueError(param, raw, f"expected one of {sorted(config.choices)}")
    return raw


def _as_list(value: str | Sequence[str]) -> list[str]:
    if isinstance(value, str):
        return [part for part in value.split(",") if part != ""]
    out: list[str] = []
    for item in value:
        out.extend(_as_list(item))
    return out


def _scalar(value: str | Sequence[str]) -> str:
    if isinstance(value, str):
        return value
    return value[-1]


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.max, tzinfo=moment.tzinfo)


def build_condition(param: str, config: FilterConfig, value: str | Sequence[str]) -> Node:
    """Build the condition one filter parameter contributes.

    Raises ``FilterValueError`` when the value does not parse as the declared type.
    """
    op = config.operator

    if op is Operator.IN:
        return Condition(config.field, op, [_coerce(param, config, v) for v in _as_list(value)])

    if op is Operator.BETWEEN:
        bounds = _as_list(value)
        if len(bounds) != 2:
            raise FilterValueError(param, value, "expected exactly two comma-separated bounds")
        start = _coerce(param, config, bounds[0])
        end = _coerce(param, config, bounds[1])
        if config.type is ValueType.DATE:
            start, end = start_of_day(start), end_of_day(end)
        return And(
            (
                Condition(config.field, Operator.GTE, start),
                Condition(config.field, Operator.LTE, end),
            )
        )

    return Condition(config.field, op, _coerce(param, config, _scalar(value)))


def validate_filters(filter_fields: Mapping[str, FilterConfig], params: Mapping[str, RawValue]) -> list[dict[str, Any]]:
    """Return one validation issue per filter parameter whose value does not parse."""
    issues: list[dict[str, Any]] = []
    for key, value in params.items():
        config = filter_fields.get(key)
        if config is None or is_unset(value):
            continue
        try:
            build_condition(key, config, value)  # type: ignore[arg-type]
        except FilterValueError as exc:
            issues.append(issue([key], exc.reason, "invalid_filter"))
    return issues


class QueryBuilder:
    """Fluent builder turning request parameters into storage query arguments."""

    def __init__(self, options: QueryOptions | None = None) -> None:
        self._options = options or QueryOptions()
        self._search: Or | None = None
        self._conditions: list[Node] = []
        self._order_by: OrderBy | None = None
        if self._options.default_sort:
            self._order_by = OrderBy(self._options.default_sort, self._options.default_sort_order)
        self._skip: int | None = None
        self._take: int | None = None
        self._include: dict[str, Any] | None = dict(self._options.include) if self._options.include else None
        self._select: tuple[str, ...] | None = self._options.select

    def with_search(self, term: str | None) -> QueryBuilder:
        if not term or not self._options.search_fields:
            return self
        self._search = Or(tuple(Condition(f, Operator.CONTAINS, term) for f in self._options.search_fields))
        return self

    def with_filters(self, params: Mapping[str, RawValue]) -> QueryBuilder:
        for key, value in params.items():
            if is_unset(value):
                continue
            config = self._options.filter_fields.get(key)
            if config is None:
                continue
            self._conditions.append(build_condition(key, config, value))  # type: ignore[arg-type]
        return self

    def with_sort(self, sort_by: str | None, sort_order: SortOrder | None = None) -> QueryBuilder:
        if sort_by:
            field_name = self._options.sort_fields.get(sort_by, sort_by)
            self._order_by = OrderBy(field_name, sort_order or "asc")
        return self

    def with_pagination(self, page: int | None, page_size: int | None) -> QueryBuilder:
        if page is not None and page_size is not None:
            self._skip = (page - 1) * page_size
            self._take = page_size
        return self

    def with_include(self, include: Include) -> QueryBuilder:
        self._include = {**(self._include or {}), **include}
        return self

    def with_select(self, fields: Sequence[str]) -> QueryBuilder:
        self._select = tuple(dict.fromkeys((*(self._select or ()), *fields)))
        return self

    @property
    def where(self) -> Node:
        parts: list[Node] = []
        if self._search is not None:
            parts.append(self._search)
        parts.extend(self._conditions)
        return And(tuple(parts))

    def build_find_many(self) -> FindManyArgs:
        return FindManyArgs(
            where=self.where,
            order_by=self._order_by,
            skip=self._skip,
            take=self._take,
            include=self._include,
            select=self._select,
        )

    def build_find_first(self) -> FindFirstArgs:
        return FindFirstArgs(where=self.where, include=self._include, select=self._select)

    def build_find_unique(self, id: str) -> FindUniqueArgs:
        return FindUniqueArgs(id=id, include=self._include, select=self._select)

    def build_count(self) -> CountArgs:
        return CountArgs(where=self.where)


def create_query_builder(options: QueryOptions | None = None) -> QueryBuilder:
    return QueryBuilder(options)
