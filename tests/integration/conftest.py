"""Session-scoped fixtures for integration tests."""

from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from testcontainers.postgres import PostgresContainer

from alembic.config import Config
from schoolhub.db import SqlResourceStore
from schoolhub.db.tables import metadata
from tests.conftest import PostgresTestBase


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Start a PostgreSQL container for the session."""
    if not PostgresTestBase.docker_available():
        pytest.skip("Docker is not available")
    container = PostgresContainer(PostgresTestBase.IMAGE, driver="asyncpg")
    container.start()
    yield container
    container.stop()


@pytest.fixture(scope="session")
def test_db_url(postgres_container: PostgresContainer) -> str:
    """Async connection URL for the test database."""
    return postgres_container.get_connection_url()


@pytest.fixture(scope="session")
def alembic_config(test_db_url: str) -> Config:
    return PostgresTestBase.get_alembic_config(test_db_url)


@pytest.fixture(scope="session")
def _run_migrations(test_db_url: str) -> Generator[None, None, None]:
    """Run migrations once per session, cleanup on teardown."""
    PostgresTestBase.run_migrations(test_db_url)
    yield
    PostgresTestBase.cleanup_migrations(test_db_url)


@pytest_asyncio.fixture
async def engine(_run_migrations: None, test_db_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test engine so each event loop gets its own connection pool."""
    engine = create_async_engine(test_db_url, future=True)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(engine: AsyncEngine) -> AsyncGenerator[SqlResourceStore, None]:
    """Per-test store; every table is emptied afterwards."""
    store = SqlResourceStore(engine)
    yield store
    async with engine.begin() as conn:
        for table in reversed(metadata.sorted_tables):
            await conn.execute(table.delete())
