import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from schoolhub.core.errors import ConstraintViolation, UniqueConstraintError
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
)
from schoolhub.db.helpers import attach_relations, prepare_write, unique_columns
from schoolhub.db.tables import table_for

logger = logging.getLogger(__name__)


def _column(table: sa.Table, name: str) -> sa.Column:
    try:
        return table.c[name]
    except KeyError:
        raise ValueError(f"Unknown field {name!r} for table {table.name!r}") from None


def compile_where(table: sa.Table, node: Node) -> sa.ColumnElement[bool]:
    """Translate a condition tree into a SQLAlchemy boolean expression."""
    if isinstance(node, And):
        return sa.and_(sa.true(), *(compile_where(table, child) for child in node.children))
    if isinstance(node, Or):
        return sa.or_(sa.false(), *(compile_where(table, child) for child in node.children))
    return _compile_condition(table, node)


def _compile_condition(table: sa.Table, cond: Condition) -> sa.ColumnElement[bool]:
    col = _column(table, cond.field)
    value = cond.value
    if cond.op is Operator.EQ:
        return col.is_(None) if value is None else col == value
    if cond.op is Operator.NE:
        return col != value
    if cond.op is Operator.GT:
        return col > value
    if cond.op is Operator.GTE:
        return col >= value
    if cond.op is Operator.LT:
        return col < value
    if cond.op is Operator.LTE:
        return col <= value
    if cond.op is Operator.CONTAINS:
        return col.icontains(str(value), autoescape=True)
    if cond.op is Operator.IN:
        return col.in_(list(value))
    raise ValueError(f"Unsupported operator {cond.op!r}")


def _columns(table: sa.Table, select: tuple[str, ...] | None) -> list[sa.Column]:
    if not select:
        return list(table.c)
    return [_column(table, name) for name in select]


class SqlResourceStore:
    """``ResourceStore`` over SQLAlchemy async Core (PostgreSQL via asyncpg, SQLite via aiosqlite)."""

    def __init__(self, engine: AsyncEngine, conn: AsyncConnection | None = None) -> None:
        self.engine = engine
        self._conn = conn

    @asynccontextmanager
    async def _use_conn(self, *, write: bool = False) -> AsyncIterator[AsyncConnection]:
        """Yield the bound transaction connection, or open a fresh one."""
        if self._conn is not None:
            yield self._conn
        elif write:
            async with self.engine.begin() as conn:
                yield conn
        else:
            async with self.engine.connect() as conn:
                yield conn

    async def _fetch(self, stmt: sa.Select[Any]) -> list[Record]:
        async with self._use_conn() as conn:
            result = await conn.execute(stmt)
            return [dict(row._mapping) for row in result]

    async def _load(self, model: str, key: str, values: list[Any]) -> list[Record]:
        table = table_for(model)
        return await self._fetch(sa.select(table).where(_column(table, key).in_(values)))

    async def _with_relations(
        self, model: str, rows: list[Record], include: Include | None, select: tuple[str, ...] | None
    ) -> list[Record]:
        if not include or not rows:
            return rows
        if select:
            # relation keys may be projected away; resolve against the full rows
            table = table_for(model)
            full = await self._fetch(sa.select(table).where(table.c.id.in_([r["id"] for r in rows])))
            by_id = {r["id"]: r for r in await attach_relations(model, full, include, self._load)}
            for row in rows:
                loaded = by_id.get(row.get("id"), {})
                for name in include:
                    if name in loaded:
                        row[name] = loaded[name]
            return rows
        return await attach_relations(model, rows, include, self._load)

    async def find_many(self, model: str, args: FindManyArgs) -> list[Record]:
        table = table_for(model)
        stmt = sa.select(*_columns(table, args.select)).where(compile_where(table, args.where))
        if args.order_by is not None:
            col = _column(table, args.order_by.field)
            # NULLs last ascending and first descending on every backend
            stmt = stmt.order_by(col.desc().nulls_first() if args.order_by.direction == "desc" else col.asc().nulls_last())
        if args.skip:
            stmt = stmt.offset(args.skip)
        if args.take is not None:
            stmt = stmt.limit(args.take)
        rows = await self._fetch(stmt)
        return await self._with_relations(model, rows, args.include, args.select)

    async def find_first(self, model: str, args: FindFirstArgs) -> Record | None:
        table = table_for(model)
        stmt = sa.select(*_columns(table, args.select)).where(compile_where(table, args.where)).limit(1)
        rows = await self._fetch(stmt)
        rows = await self._with_relations(model, rows, args.include, args.select)
        return rows[0] if rows else None

    async def find_unique(self, model: str, args: FindUniqueArgs) -> Record | None:
        table = table_for(model)
        stmt = sa.select(*_columns(table, args.select)).where(table.c.id == args.id)
        rows = await self._fetch(stmt)
        rows = await self._with_relations(model, rows, args.include, args.select)
        return rows[0] if rows else None

    async def count(self, model: str, args: CountArgs) -> int:
        table = table_for(model)
        stmt = sa.select(sa.func.count()).select_from(table).where(compile_where(table, args.where))
        async with self._use_conn() as conn:
            return int((await conn.execute(stmt)).scalar_one())

    async def _check_unique(self, conn: AsyncConnection, model: str, values: Record, exclude_id: str | None = None) -> None:
        table = table_for(model)
        for name in unique_columns(model):
            value = values.get(name)
            if value is None:
                continue
            stmt = sa.select(table.c.id).where(table.c[name] == value).limit(1)
            if exclude_id is not None:
                stmt = stmt.where(table.c.id != exclude_id)
            if (await conn.execute(stmt)).first() is not None:
                raise UniqueConstraintError(model, name, value)

    async def _execute_write(self, conn: AsyncConnection, model: str, stmt: Any) -> Any:
        try:
            return await conn.execute(stmt)
        except IntegrityError as exc:
            raise ConstraintViolation(model, str(exc.orig)) from exc

    async def create(self, model: str, data: Record, include: Include | None = None) -> Record:
        table = table_for(model)
        values = prepare_write(model, data, creating=True)
        async with self._use_conn(write=True) as conn:
            await self._check_unique(conn, model, values)
            await self._execute_write(conn, model, sa.insert(table).values(**values))
            created = await self._bound(conn).find_unique(model, FindUniqueArgs(id=values["id"], include=include))
        if created is None:
            raise LookupError(f"No {model} with id {values['id']!r} after insert")
        return created

    async def update(self, model: str, id: str, data: Record, include: Include | None = None) -> Record:
        table = table_for(model)
        values = prepare_write(model, data, creating=False)
        async with self._use_conn(write=True) as conn:
            await self._check_unique(conn, model, values, exclude_id=id)
            result = await self._execute_write(conn, model, sa.update(table).where(table.c.id == id).values(**values))
            if result.rowcount == 0:
                raise LookupError(f"No {model} with id {id!r}")
            updated = await self._bound(conn).find_unique(model, FindUniqueArgs(id=id, include=include))
        if updated is None:
            raise LookupError(f"No {model} with id {id!r}")
        return updated

    async def update_many(self, model: str, where: Node, data: Record) -> int:
        table = table_for(model)
        values = prepare_write(model, data, creating=False)
        async with self._use_conn(write=True) as conn:
            stmt = sa.update(table).where(compile_where(table, where)).values(**values)
            result = await self._execute_write(conn, model, stmt)
            return int(result.rowcount)

    async def delete(self, model: str, id: str) -> None:
        table = table_for(model)
        async with self._use_conn(write=True) as conn:
            result = await self._execute_write(conn, model, sa.delete(table).where(table.c.id == id))
            if result.rowcount == 0:
                raise LookupError(f"No {model} with id {id!r}")

    def _bound(self, conn: AsyncConnection) -> "SqlResourceStore":
        return SqlResourceStore(self.engine, conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlResourceStore"]:
        if self._conn is not None:
            yield self
            return
        async with self.engine.begin() as conn:
            try:
                yield self._bound(conn)
            except BaseException:
                logger.debug("Rolling back transaction")
                raise

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(sa.text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Database ping failed", exc_info=True)
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
