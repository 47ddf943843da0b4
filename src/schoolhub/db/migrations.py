from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncEngine

from alembic import command
from schoolhub.db.tables import metadata


def run_migrations(db_url: str, ini_path: str = "alembic.ini") -> None:
    alembic_cfg = Config(ini_path)
    alembic_cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(alembic_cfg, "head")


async def create_all(engine: AsyncEngine) -> None:
    """Create every table straight from the metadata, without Alembic."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
