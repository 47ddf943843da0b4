from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from schoolhub.config import get_database_url


def get_engine(db_url: str | None = None) -> AsyncEngine:
    return create_async_engine(db_url or get_database_url(), future=True)
