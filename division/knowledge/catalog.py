"""Catalog of roles, providers and per-project bindings, plus the task log.

The coordinator only needs a narrow lookup contract. ``InMemoryCatalog``
serves it from a snapshot (the built-in seed or a JSON file);
``division.knowledge.database.SqlCatalog`` serves it from SQL.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger
from pydantic import Field

from division.providers.base import ProviderDescriptor, RoleDescriptor, WireModel

# =============================================================================
# CONTRACTS
# =============================================================================


class RoleAssignment(WireModel):
    """Binds a provider to a role within a project."""

    project_id: str
    role_slug: str
    provider_name: str
    priority: int = 0


class TaskLogEntry(WireModel):
    """One completed sub-task, as persisted by the task log."""

    project_id: str
    role_id: str
    provider_id: str
    input: str
    output: str | None = None
    status: str
    error_msg: str | None = None
    duration_ms: int = 0


@runtime_checkable
class Catalog(Protocol):
    """Read-only lookup of roles, providers and bindings."""

    async def get_role(self, slug: str) -> RoleDescriptor | None: ...

    async def get_provider(self, name: str) -> ProviderDescriptor | None: ...

    async def get_bindings(self, project_id: str, role_slug: str) -> list[ProviderDescriptor]:
        """Enabled providers bound to the role, highest priority first."""
        ...


@runtime_checkable
class TaskLogStore(Protocol):
    """Sink for completed sub-task records."""

    async def log_completed_task(self, entry: TaskLogEntry) -> None: ...


# =============================================================================
# IN-MEMORY CATALOG
# =============================================================================


class CatalogSnapshot(WireModel):
    """Serializable catalog contents."""

    providers: list[ProviderDescriptor] = Field(default_factory=list)
    roles: list[RoleDescriptor] = Field(default_factory=list)
    assignments: list[RoleAssignment] = Field(default_factory=list)


class InMemoryCatalog:
    """
    Catalog and task log kept in memory.

    Example:
        >>> catalog = InMemoryCatalog(default_snapshot())
        >>> [p.name for p in await catalog.get_bindings("demo-project-001", "coding")]
        ['claude-sonnet-4.5']
    """

    def __init__(self, snapshot: CatalogSnapshot | None = None) -> None:
        snapshot = snapshot or CatalogSnapshot()
        self._providers = {p.name: p for p in snapshot.providers}
        self._roles = {r.slug: r for r in snapshot.roles}
        self._assignments = list(snapshot.assignments)
        self.task_logs: list[TaskLogEntry] = []

    async def get_role(self, slug: str) -> RoleDescriptor | None:
        return self._roles.get(slug)

    async def get_provider(self, name: str) -> ProviderDescriptor | None:
        return self._providers.get(name)

    async def get_bindings(self, project_id: str, role_slug: str) -> list[ProviderDescriptor]:
        matches = sorted(
            (
                a
                for a in self._assignments
                if a.project_id == project_id and a.role_slug == role_slug
            ),
            key=lambda a: a.priority,
            reverse=True,
        )
        providers = []
        for assignment in matches:
            provider = self._providers.get(assignment.provider_name)
            if provider is None:
                logger.warning(
                    f"Assignment for {role_slug} references unknown provider "
                    f"{assignment.provider_name}"
                )
                continue
            if provider.is_enabled:
                providers.append(provider)
        return providers

    async def log_completed_task(self, entry: TaskLogEntry) -> None:
        self.task_logs.append(entry)

    def snapshot(self) -> CatalogSnapshot:
        """Export the current contents."""
        return CatalogSnapshot(
            providers=list(self._providers.values()),
            roles=list(self._roles.values()),
            assignments=list(self._assignments),
        )


def load_catalog(path: str | Path | None = None) -> InMemoryCatalog:
    """
    Load a catalog from a JSON file, or the built-in seed.

    Args:
        path: JSON file holding a CatalogSnapshot (camelCase keys).

    Returns:
        InMemoryCatalog instance.
    """
    if path is None:
        from division.knowledge.seed import default_snapshot

        return InMemoryCatalog(default_snapshot())

    catalog_path = Path(path)
    snapshot = CatalogSnapshot.model_validate_json(catalog_path.read_text(encoding="utf-8"))
    logger.info(
        f"Loaded catalog from {catalog_path}: {len(snapshot.providers)} providers, "
        f"{len(snapshot.roles)} roles, {len(snapshot.assignments)} assignments"
    )
    return InMemoryCatalog(snapshot)
