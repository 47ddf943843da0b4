import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from schoolhub.core.ports.storage import Record
from schoolhub.core.query import Include
from schoolhub.db.tables import relations_for, table_for

RelatedLoader = Callable[[str, str, list[Any]], Awaitable[list[Record]]]


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the ``DateTime`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def prepare_write(model: str, data: Mapping[str, Any], *, creating: bool) -> Record:
    """Turn a write payload into plain column values.

    Relation wrappers such as ``{"grade": {"connect": {"id": ...}}}`` become the
    foreign-key column; unknown fields are rejected.
    """
    table = table_for(model)
    relations = relations_for(model)
    values: Record = {}

    for key, value in data.items():
        relation = relations.get(key)
        if relation is not None and isinstance(value, Mapping):
            if relation.kind != "one":
                raise ValueError(f"Cannot write to-many relation {key!r} on {model!r}")
            if "connect" in value:
                values[relation.local_key] = value["connect"]["id"]
            elif value.get("disconnect"):
                values[relation.local_key] = None
            else:
                raise ValueError(f"Unsupported write {sorted(value)} for relation {key!r} on {model!r}")
            continue
        if key not in table.c:
            raise ValueError(f"Unknown field {key!r} for model {model!r}")
        values[key] = value

    now = utcnow()
    if not creating:
        values.pop("id", None)
        if "updated_at" in table.c:
            values["updated_at"] = now
        return values

    values.setdefault("id", new_id())
    values.setdefault("created_at", now)
    for column in table.c:
        if column.key in values:
            continue
        if column.default is not None and column.default.is_scalar:
            values[column.key] = column.default.arg
        else:
            values[column.key] = None
        if values[column.key] is None and not column.nullable:
            raise ValueError(f"Missing required field {column.key!r} for model {model!r}")
    return values


def unique_columns(model: str) -> list[str]:
    return [column.key for column in table_for(model).c if column.unique]


def project(row: Record, select: Sequence[str] | None) -> Record:
    if not select:
        return dict(row)
    return {key: row[key] for key in select if key in row}


async def attach_relations(model: str, rows: list[Record], include: Include | None, load: RelatedLoader) -> list[Record]:
    """Eager-load the relations named in ``include`` onto ``rows`` in place.

    ``include`` values are ``True`` or a mapping with a nested ``include`` key,
    e.g. ``{"children": {"include": {"grade": True}}}``.
    """
    if not include or not rows:
        return rows

    relations = relations_for(model)
    for name, spec in include.items():
        if not spec:
            continue
        relation = relations.get(name)
        if relation is None:
            raise ValueError(f"Unknown relation {name!r} on model {model!r}")
        nested = spec.get("include") if isinstance(spec, Mapping) else None

        keys = sorted({row[relation.local_key] for row in rows if row.get(relation.local_key) is not None})
        related = await load(relation.target, relation.remote_key, keys) if keys else []
        related = await attach_relations(relation.target, related, nested, load)

        if relation.kind == "one":
            by_key = {r[relation.remote_key]: r for r in related}
            for row in rows:
                row[name] = by_key.get(row.get(relation.local_key))
        else:
            grouped: dict[Any, list[Record]] = defaultdict(list)
            for r in related:
                grouped[r[relation.remote_key]].append(r)
            for row in rows:
                row[name] = grouped.get(row.get(relation.local_key), [])
    return rows
