"""Pytest configuration and shared fixtures."""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio

# Set test environment
os.environ["DIVISION_LOG_DIR"] = ""
os.environ.setdefault("DIVISION_LOG_LEVEL", "DEBUG")

from division.core.config import Settings, clear_settings_cache  # noqa: E402
from division.knowledge.catalog import InMemoryCatalog  # noqa: E402
from division.knowledge.seed import DEMO_PROJECT_ID, default_snapshot  # noqa: E402
from helpers import RecordingEmitter  # noqa: E402

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def mock_settings() -> Generator:
    """Clear the settings cache around a test."""
    clear_settings_cache()

    yield

    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Settings with file logging off and short timeouts."""
    return Settings(
        division_log_dir=None,
        division_task_timeout=5,
        division_leader_timeout=5,
        division_max_concurrent_tasks=8,
    )


@pytest.fixture
def catalog() -> InMemoryCatalog:
    """Catalog built from the built-in seed."""
    return InMemoryCatalog(default_snapshot())


@pytest.fixture
def project_id() -> str:
    return DEMO_PROJECT_ID


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest_asyncio.fixture
async def sql_session_maker(tmp_path) -> AsyncGenerator:
    """SQLite session maker on a fresh database file, schema created."""
    from division.knowledge.database import create_engine, init_db, make_session_maker

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'division.db'}")
    await init_db(engine)

    yield make_session_maker(engine)

    await engine.dispose()


# Markers
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
