from schoolhub.db.engine import get_engine
from schoolhub.db.helpers import new_id, prepare_write, unique_columns, utcnow
from schoolhub.db.memory import InMemoryResourceStore, InMemoryState
from schoolhub.db.sql import SqlResourceStore, compile_where
from schoolhub.db.tables import RELATIONS, TABLES, Relation, metadata

__all__ = [
    "RELATIONS",
    "TABLES",
    "InMemoryResourceStore",
    "InMemoryState",
    "Relation",
    "SqlResourceStore",
    "compile_where",
    "get_engine",
    "metadata",
    "new_id",
    "prepare_write",
    "unique_columns",
    "utcnow",
]
