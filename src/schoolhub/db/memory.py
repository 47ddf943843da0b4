import asyncio
import copy
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from schoolhub.core.errors import UniqueConstraintError
from schoolhub.core.ports.storage import Record
from schoolhub.core.query import (
    And,
    Condition,
    CountArgs,
    FindFirstArgs,
    FindManyArgs,
    FindUniqueArgs,
    Include,
    Node,
    Operator,
    Or,
    OrderBy,
)
from schoolhub.db.helpers import attach_relations, prepare_write, project, unique_columns
from schoolhub.db.tables import TABLES, table_for

logger = logging.getLogger(__name__)


@dataclass
class InMemoryState:
    tables: dict[str, dict[str, Record]] = field(default_factory=lambda: {name: {} for name in TABLES})
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def _field_value(model: str, row: Record, name: str) -> Any:
    if name not in row:
        raise ValueError(f"Unknown field {name!r} for model {model!r}")
    return row[name]


def matches(model: str, row: Record, node: Node) -> bool:
    if isinstance(node, And):
        return all(matches(model, row, child) for child in node.children)
    if isinstance(node, Or):
        return any(matches(model, row, child) for child in node.children)
    return _compare(_field_value(model, row, node.field), node)


def _compare(value: Any, cond: Condition) -> bool:
    target = cond.value
    if cond.op is Operator.EQ:
        return bool(value == target)
    if cond.op is Operator.NE:
        return value is not None and bool(value != target)
    if cond.op is Operator.IN:
        return value in target
    if value is None:
        return False
    if cond.op is Operator.CONTAINS:
        return str(target).lower() in str(value).lower()
    if cond.op is Operator.GT:
        return bool(value > target)
    if cond.op is Operator.GTE:
        return bool(value >= target)
    if cond.op is Operator.LT:
        return bool(value < target)
    if cond.op is Operator.LTE:
        return bool(value <= target)
    raise ValueError(f"Unsupported operator {cond.op!r}")


def _sorted(model: str, rows: list[Record], order_by: OrderBy | None) -> list[Record]:
    if order_by is None:
        return rows
    name = order_by.field
    for row in rows:
        _field_value(model, row, name)
    # NULLs sort last ascending and first descending, as PostgreSQL does.
    present = [r for r in rows if r[name] is not None]
    missing = [r for r in rows if r[name] is None]
    desc = order_by.direction == "desc"
    present.sort(key=lambda r: r[name], reverse=desc)
    return missing + present if desc else present + missing


class InMemoryResourceStore:
    """Dict-backed ``ResourceStore`` with snapshot/restore transactions."""

    def __init__(self, state: InMemoryState | None = None, *, in_transaction: bool = False) -> None:
        self._state = state or InMemoryState()
        self._in_transaction = in_transaction

    def rows(self, model: str) -> list[Record]:
        table_for(model)
        return [dict(row) for row in self._state.tables[model].values()]

    def _table(self, model: str) -> dict[str, Record]:
        table_for(model)
        return self._state.tables[model]

    async def _load(self, model: str, key: str, values: list[Any]) -> list[Record]:
        wanted = set(values)
        return [dict(row) for row in self._table(model).values() if row.get(key) in wanted]

    async def _finish(self, model: str, rows: list[Record], include: Include | None, select: tuple[str, ...] | None) -> list[Record]:
        projected = [project(row, select) for row in rows]
        if include:
            # relation keys may be projected away; resolve against the full rows
            full = [dict(row) for row in rows]
            await attach_relations(model, full, include, self._load)
            for out, loaded in zip(projected, full, strict=True):
                for name in include:
                    if name in loaded:
                        out[name] = loaded[name]
        return projected

    def _check_unique(self, model: str, values: Record, ids: list[str]) -> None:
        """Reject values that would give two rows of ``model`` the same unique column value."""
        if not ids:
            return
        table = self._table(model)
        for name in unique_columns(model):
            value = values.get(name)
            if value is None:
                continue
            taken = any(row_id not in ids and row.get(name) == value for row_id, row in table.items())
            if taken or len(ids) > 1:
                raise UniqueConstraintError(model, name, value)

    async def find_many(self, model: str, args: FindManyArgs) -> list[Record]:
        rows = [row for row in self._table(model).values() if matches(model, row, args.where)]
        rows = _sorted(model, rows, args.order_by)
        start = args.skip or 0
        rows = rows[start : start + args.take] if args.take is not None else rows[start:]
        return await self._finish(model, rows, args.include, args.select)

    async def find_first(self, model: str, args: FindFirstArgs) -> Record | None:
        for row in self._table(model).values():
            if matches(model, row, args.where):
                return (await self._finish(model, [row], args.include, args.select))[0]
        return None

    async def find_unique(self, model: str, args: FindUniqueArgs) -> Record | None:
        row = self._table(model).get(args.id)
        if row is None:
            return None
        return (await self._finish(model, [row], args.include, args.select))[0]

    async def count(self, model: str, args: CountArgs) -> int:
        return sum(1 for row in self._table(model).values() if matches(model, row, args.where))

    async def create(self, model: str, data: Record, include: Include | None = None) -> Record:
        values = prepare_write(model, data, creating=True)
        table = self._table(model)
        if values["id"] in table:
            raise ValueError(f"Duplicate id {values['id']!r} for model {model!r}")
        self._check_unique(model, values, [values["id"]])
        table[values["id"]] = values
        return (await self._finish(model, [values], include, None))[0]

    async def update(self, model: str, id: str, data: Record, include: Include | None = None) -> Record:
        table = self._table(model)
        if id not in table:
            raise LookupError(f"No {model} with id {id!r}")
        values = prepare_write(model, data, creating=False)
        self._check_unique(model, values, [id])
        table[id] = {**table[id], **values}
        return (await self._finish(model, [table[id]], include, None))[0]

    async def update_many(self, model: str, where: Node, data: Record) -> int:
        table = self._table(model)
        values = prepare_write(model, data, creating=False)
        hits = [id for id, row in table.items() if matches(model, row, where)]
        self._check_unique(model, values, hits)
        for id in hits:
            table[id] = {**table[id], **values}
        return len(hits)

    async def delete(self, model: str, id: str) -> None:
        table = self._table(model)
        if id not in table:
            raise LookupError(f"No {model} with id {id!r}")
        del table[id]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryResourceStore"]:
        if self._in_transaction:
            yield self
            return
        async with self._state.lock:
            snapshot = copy.deepcopy(self._state.tables)
            try:
                yield InMemoryResourceStore(self._state, in_transaction=True)
            except BaseException:
                logger.debug("Rolling back in-memory transaction")
                self._state.tables = snapshot
                raise

    async def ping(self) -> bool:
        return True

    async def dispose(self) -> None:
        pass
