"""Shared fixtures and helpers for tests."""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from alembic import command
from alembic.config import Config
from schoolhub.api.app import create_app
from schoolhub.core.registry import ResourceRegistry
from schoolhub.db import InMemoryResourceStore
from schoolhub.resources.configs import build_registry

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# PostgresTestBase: helpers for integration tests that need a database container
# ---------------------------------------------------------------------------


class PostgresTestBase:
    IMAGE = "postgres:16-alpine"

    @staticmethod
    def docker_available() -> bool:
        return shutil.which("docker") is not None

    @staticmethod
    def get_alembic_config(connection_url: str) -> Config:
        cfg = Config(str(_REPO_ROOT / "alembic.ini"))
        cfg.set_main_option("script_location", str(_REPO_ROOT / "alembic"))
        cfg.set_main_option("sqlalchemy.url", connection_url)
        return cfg

    @staticmethod
    def run_migrations(connection_url: str) -> None:
        logger.info("Migrating test database to head")
        command.upgrade(PostgresTestBase.get_alembic_config(connection_url), "head")

    @staticmethod
    def cleanup_migrations(connection_url: str) -> None:
        command.downgrade(PostgresTestBase.get_alembic_config(connection_url), "base")


# ---------------------------------------------------------------------------
# School fixtures
# ---------------------------------------------------------------------------


@dataclass
class School:
    """Ids of the reference rows seeded into a store."""

    grade_id: str
    other_grade_id: str
    section_id: str
    other_section_id: str
    academic_year_id: str


async def seed_school(store: Any) -> School:
    grade = await store.create("grade", {"name": "Grade 5", "order": 5})
    other_grade = await store.create("grade", {"name": "Grade 6", "order": 6})
    section = await store.create("section", {"name": "A", "grade": {"connect": {"id": grade["id"]}}})
    other_section = await store.create("section", {"name": "B", "grade": {"connect": {"id": other_grade["id"]}}})
    year = await store.create(
        "academic_year",
        {
            "name": "2024-2025",
            "start_date": datetime(2024, 8, 1),
            "end_date": datetime(2025, 6, 30),
            "is_current": True,
        },
    )
    return School(grade["id"], other_grade["id"], section["id"], other_section["id"], year["id"])


def student_payload(school: School, **overrides: Any) -> dict[str, Any]:
    """A valid wire-format student form."""
    payload: dict[str, Any] = {
        "firstName": "Asha",
        "lastName": "Verma",
        "rollNumber": "STU001",
        "gender": "female",
        "grade": school.grade_id,
        "section": school.section_id,
        "phone": "9876543210",
        "email": "",
        "guardianName": "Ravi Verma",
        "relationship": "Father",
        "guardianPhone": "9876500000",
        "address": "12 Lake Road",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def store() -> InMemoryResourceStore:
    return InMemoryResourceStore()


@pytest.fixture
def registry() -> ResourceRegistry:
    return build_registry()


@pytest.fixture
def school(store: InMemoryResourceStore) -> School:
    return asyncio.run(seed_school(store))


@pytest.fixture
def client(registry: ResourceRegistry, store: InMemoryResourceStore) -> TestClient:
    return TestClient(create_app(registry=registry, store=store))
