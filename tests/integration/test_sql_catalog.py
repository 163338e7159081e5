"""Integration tests for the SQL-backed catalog and task log (SQLite file per test)."""

import pytest
import pytest_asyncio

from division.core.config import Settings
from division.core.orchestrator import Division
from division.core.state import AgentRequest, SessionStatus
from division.knowledge.catalog import Catalog, RoleAssignment, TaskLogEntry, TaskLogStore
from division.knowledge.database import SqlCatalog, health_check, open_catalog, seed_db
from division.knowledge.seed import DEMO_PROJECT_ID, default_snapshot
from division.providers.echo import EchoGenerator

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def sql_catalog(sql_session_maker) -> SqlCatalog:
    await seed_db(default_snapshot(), sql_session_maker)
    return SqlCatalog(sql_session_maker)


class TestSeedDb:
    """Tests for seed_db."""

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, sql_session_maker) -> None:
        first = await seed_db(default_snapshot(), sql_session_maker)
        second = await seed_db(default_snapshot(), sql_session_maker)

        assert first > 0
        assert second == 0

    @pytest.mark.asyncio
    async def test_unknown_assignment_skipped(self, sql_session_maker) -> None:
        snapshot = default_snapshot()
        snapshot.assignments.append(
            RoleAssignment(project_id="p", role_slug="coding", provider_name="ghost")
        )

        inserted = await seed_db(snapshot, sql_session_maker)
        expected = len(snapshot.providers) + len(snapshot.roles) + len(snapshot.assignments) - 1

        assert inserted == expected

    @pytest.mark.asyncio
    async def test_health_check(self, sql_session_maker) -> None:
        assert await health_check(sql_session_maker) is True


class TestSqlCatalog:
    """Tests for SqlCatalog lookups."""

    @pytest.mark.asyncio
    async def test_implements_contracts(self, sql_catalog) -> None:
        assert isinstance(sql_catalog, Catalog)
        assert isinstance(sql_catalog, TaskLogStore)

    @pytest.mark.asyncio
    async def test_role_and_provider(self, sql_catalog) -> None:
        role = await sql_catalog.get_role("deep-research")
        provider = await sql_catalog.get_provider("sonar-pro")

        assert role.id == "role-deep-research"
        assert role.name == "Deep Research"
        assert provider.display_name == "Sonar Pro (Perplexity)"
        assert await sql_catalog.get_role("translate") is None
        assert await sql_catalog.get_provider("ghost") is None

    @pytest.mark.asyncio
    async def test_bindings_by_priority(self, sql_session_maker) -> None:
        snapshot = default_snapshot()
        snapshot.assignments.append(
            RoleAssignment(
                project_id=DEMO_PROJECT_ID, role_slug="coding", provider_name="gpt-4.1", priority=5
            )
        )
        await seed_db(snapshot, sql_session_maker)
        catalog = SqlCatalog(sql_session_maker)

        bindings = await catalog.get_bindings(DEMO_PROJECT_ID, "coding")

        assert [p.name for p in bindings] == ["gpt-4.1", "claude-sonnet-4.5"]
        assert await catalog.get_bindings("other", "coding") == []

    @pytest.mark.asyncio
    async def test_task_log_round_trip(self, sql_catalog) -> None:
        entry = TaskLogEntry(
            project_id=DEMO_PROJECT_ID,
            role_id="role-search",
            provider_id="prov-sonar-pro",
            input="Find facts",
            output="facts",
            status="success",
            duration_ms=42,
        )

        await sql_catalog.log_completed_task(entry)

        assert await sql_catalog.list_task_logs(DEMO_PROJECT_ID) == [entry]
        assert await sql_catalog.list_task_logs("other") == []


class TestSqlSession:
    """Tests for a full session on the SQL catalog."""

    @pytest.mark.asyncio
    async def test_session_writes_task_logs(self, sql_catalog, settings) -> None:
        division = Division(settings=settings, catalog=sql_catalog, generator=EchoGenerator())

        result = await division.run(
            AgentRequest(project_id=DEMO_PROJECT_ID, input="Compare three CSS frameworks")
        )

        assert result.status == SessionStatus.SUCCESS
        logs = await sql_catalog.list_task_logs(DEMO_PROJECT_ID)
        assert sorted(e.role_id for e in logs) == sorted(
            f"role-{t.role}" for t in result.tasks
        )
        assert all(e.status == "success" for e in logs)


class TestOpenCatalog:
    """Tests for open_catalog."""

    @pytest.mark.asyncio
    async def test_memory_without_database(self) -> None:
        catalog, uses_db = await open_catalog(Settings(database_url=None))

        assert uses_db is False
        assert (await catalog.get_role("coding")).slug == "coding"
