"""Async database connection management and the SQL-backed catalog."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from division.core.config import Settings, get_settings
from division.knowledge.catalog import Catalog, CatalogSnapshot, TaskLogEntry, load_catalog
from division.knowledge.models import Base, Provider, Role, RoleAssignmentRow, TaskLog
from division.providers.base import ProviderDescriptor, RoleDescriptor

# Global engine instance
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; pooling options only apply to server databases."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
    )


def get_engine() -> AsyncEngine:
    """Get or create the async database engine.

    Returns:
        AsyncEngine instance.

    Raises:
        RuntimeError: If DATABASE_URL is not configured.
    """
    global _engine

    if _engine is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is not configured")

        _engine = create_engine(settings.database_url, echo=settings.division_debug)
        logger.info("Database engine created")

    return _engine


def make_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session maker.

    Returns:
        async_sessionmaker instance.
    """
    global _session_maker

    if _session_maker is None:
        _session_maker = make_session_maker(get_engine())
        logger.debug("Session maker created")

    return _session_maker


@asynccontextmanager
async def get_db_session(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get an async database session.

    Commits on success and rolls back on error.

    Yields:
        AsyncSession instance.

    Example:
        >>> async with get_db_session() as session:
        ...     result = await session.execute(query)
    """
    maker = session_maker or get_session_maker()

    async with maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables that don't exist yet."""
    engine = engine or get_engine()

    logger.info("Initializing database schema")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database schema initialized")


async def close_db() -> None:
    """Close database connections."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None
        logger.info("Database connections closed")


async def health_check(session_maker: async_sessionmaker[AsyncSession] | None = None) -> bool:
    """
    Check database connectivity.

    Returns:
        True if database is reachable.
    """
    try:
        async with get_db_session(session_maker) as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def seed_db(
    snapshot: CatalogSnapshot,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> int:
    """
    Insert catalog contents that are not present yet.

    Providers match by name, roles by slug; existing rows are left alone.

    Args:
        snapshot: Catalog contents to load.
        session_maker: Session factory; the global one if omitted.

    Returns:
        Number of rows inserted.
    """
    inserted = 0

    async with get_db_session(session_maker) as session:
        providers = {p.name: p for p in (await session.scalars(select(Provider))).all()}
        for descriptor in snapshot.providers:
            if descriptor.name in providers:
                continue
            row = Provider(
                id=descriptor.id,
                name=descriptor.name,
                display_name=descriptor.display_name,
                api_base_url=descriptor.api_base_url,
                api_type=descriptor.api_type,
                model_id=descriptor.model_id,
                description=descriptor.description,
                is_enabled=descriptor.is_enabled,
            )
            session.add(row)
            providers[row.name] = row
            inserted += 1

        roles = {r.slug: r for r in (await session.scalars(select(Role))).all()}
        for descriptor in snapshot.roles:
            if descriptor.slug in roles:
                continue
            row = Role(
                id=descriptor.id,
                slug=descriptor.slug,
                name=descriptor.name,
                description=descriptor.description,
            )
            session.add(row)
            roles[row.slug] = row
            inserted += 1

        await session.flush()

        existing = {
            (a.project_id, a.role_id, a.provider_id)
            for a in (await session.scalars(select(RoleAssignmentRow))).all()
        }
        for assignment in snapshot.assignments:
            role = roles.get(assignment.role_slug)
            provider = providers.get(assignment.provider_name)
            if role is None or provider is None:
                logger.warning(
                    f"Skipping assignment {assignment.role_slug} -> {assignment.provider_name}: "
                    f"unknown role or provider"
                )
                continue
            key = (assignment.project_id, role.id, provider.id)
            if key in existing:
                continue
            session.add(
                RoleAssignmentRow(
                    project_id=assignment.project_id,
                    role_id=role.id,
                    provider_id=provider.id,
                    priority=assignment.priority,
                )
            )
            existing.add(key)
            inserted += 1

    logger.info(f"Seeded database with {inserted} rows")
    return inserted


# =============================================================================
# SQL CATALOG
# =============================================================================


class SqlCatalog:
    """
    Catalog and task log backed by SQLAlchemy.

    Example:
        >>> catalog = SqlCatalog()
        >>> role = await catalog.get_role("coding")
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_maker = session_maker

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        return self._session_maker or get_session_maker()

    async def get_role(self, slug: str) -> RoleDescriptor | None:
        async with get_db_session(self.session_maker) as session:
            role = await session.scalar(select(Role).where(Role.slug == slug))
            return role.to_descriptor() if role else None

    async def get_provider(self, name: str) -> ProviderDescriptor | None:
        async with get_db_session(self.session_maker) as session:
            provider = await session.scalar(select(Provider).where(Provider.name == name))
            return provider.to_descriptor() if provider else None

    async def get_bindings(self, project_id: str, role_slug: str) -> list[ProviderDescriptor]:
        query = (
            select(Provider)
            .join(RoleAssignmentRow, RoleAssignmentRow.provider_id == Provider.id)
            .join(Role, Role.id == RoleAssignmentRow.role_id)
            .where(
                RoleAssignmentRow.project_id == project_id,
                Role.slug == role_slug,
                Provider.is_enabled.is_(True),
            )
            .order_by(RoleAssignmentRow.priority.desc())
        )
        async with get_db_session(self.session_maker) as session:
            rows = (await session.scalars(query)).all()
            return [row.to_descriptor() for row in rows]

    async def log_completed_task(self, entry: TaskLogEntry) -> None:
        async with get_db_session(self.session_maker) as session:
            session.add(
                TaskLog(
                    project_id=entry.project_id,
                    role_id=entry.role_id,
                    provider_id=entry.provider_id,
                    input=entry.input,
                    output=entry.output,
                    status=entry.status,
                    error_msg=entry.error_msg,
                    duration_ms=entry.duration_ms,
                )
            )

    async def list_task_logs(self, project_id: str) -> list[TaskLogEntry]:
        """Logged tasks for a project, ordered by creation time."""
        query = (
            select(TaskLog)
            .where(TaskLog.project_id == project_id)
            .order_by(TaskLog.created_at)
        )
        async with get_db_session(self.session_maker) as session:
            rows = (await session.scalars(query)).all()
            return [
                TaskLogEntry(
                    project_id=row.project_id,
                    role_id=row.role_id,
                    provider_id=row.provider_id,
                    input=row.input,
                    output=row.output,
                    status=row.status,
                    error_msg=row.error_msg,
                    duration_ms=row.duration_ms or 0,
                )
                for row in rows
            ]


async def open_catalog(settings: Settings, path: str | None = None) -> tuple[Catalog, bool]:
    """
    Catalog for the configured storage.

    Without DATABASE_URL the JSON catalog (or the built-in seed) is served
    from memory. With it, the schema is created, seeded from that same
    snapshot, and the SQL catalog is returned.

    Args:
        settings: Application settings.
        path: JSON catalog file, overriding ``division_catalog_path``.

    Returns:
        The catalog, and whether it is database-backed.
    """
    snapshot_catalog = load_catalog(path or settings.division_catalog_path)
    if not settings.database_url:
        return snapshot_catalog, False

    await init_db()
    await seed_db(snapshot_catalog.snapshot())
    return SqlCatalog(), True
