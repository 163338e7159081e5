"""Role to provider resolution.

A per-request override map (role slug -> provider name) wins over the
project's role bindings; among bindings the highest priority wins.
"""

from loguru import logger

from division.core.errors import ProviderUnassignedError, RoleNotFoundError
from division.knowledge.catalog import Catalog
from division.providers.base import ProviderDescriptor, RoleDescriptor

LEADER_ROLE = "leader"


class RoleProviderResolver:
    """
    Resolve which provider handles a role for a project.

    Example:
        >>> resolver = RoleProviderResolver(catalog)
        >>> role, provider = await resolver.resolve("demo", "coding", {"coding": "gpt-4.1"})
        >>> provider.name
        'gpt-4.1'
    """

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    async def resolve_role(self, slug: str) -> RoleDescriptor:
        """
        Look up a role by slug.

        Raises:
            RoleNotFoundError: If the catalog has no such role.
        """
        role = await self.catalog.get_role(slug) if slug else None
        if role is None:
            raise RoleNotFoundError(slug)
        return role

    async def resolve_provider(
        self,
        project_id: str,
        role: RoleDescriptor,
        overrides: dict[str, str] | None = None,
    ) -> ProviderDescriptor:
        """
        Pick the provider for a role: override first, then bindings.

        Args:
            project_id: Project whose bindings apply.
            role: Resolved role.
            overrides: Role slug -> provider name for this request.

        Returns:
            The provider.

        Raises:
            ProviderUnassignedError: If nothing resolves.
        """
        override_name = (overrides or {}).get(role.slug)
        if override_name:
            provider = await self.catalog.get_provider(override_name)
            if provider is not None and provider.is_enabled:
                logger.debug(f"Override for role {role.slug}: {provider.name}")
                return provider
            logger.warning(
                f"Override provider {override_name!r} for role {role.slug} "
                f"not found or disabled, falling back to bindings"
            )

        bindings = await self.catalog.get_bindings(project_id, role.slug)
        if not bindings:
            raise ProviderUnassignedError(role.slug)

        return bindings[0]

    async def resolve(
        self,
        project_id: str,
        role_slug: str,
        overrides: dict[str, str] | None = None,
    ) -> tuple[RoleDescriptor, ProviderDescriptor]:
        """Resolve both the role and its provider."""
        role = await self.resolve_role(role_slug)
        provider = await self.resolve_provider(project_id, role, overrides)
        return role, provider
