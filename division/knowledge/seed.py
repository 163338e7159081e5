"""Built-in catalog: the standard roles and a demo project wired to them."""

from division.knowledge.catalog import CatalogSnapshot, RoleAssignment
from division.providers.base import ProviderDescriptor, RoleDescriptor

DEMO_PROJECT_ID = "demo-project-001"

ROLES: list[RoleDescriptor] = [
    RoleDescriptor(id="role-leader", slug="leader", name="Leader",
                   description="Decomposes requests into sub-tasks"),
    RoleDescriptor(id="role-search", slug="search", name="Search",
                   description="Web search and information gathering"),
    RoleDescriptor(id="role-deep-research", slug="deep-research", name="Deep Research",
                   description="Thorough multi-angle investigation and reports"),
    RoleDescriptor(id="role-planning", slug="planning", name="Planning",
                   description="Planning, design and strategy"),
    RoleDescriptor(id="role-coding", slug="coding", name="Coding",
                   description="Code generation and debugging"),
    RoleDescriptor(id="role-writing", slug="writing", name="Writing",
                   description="Prose and documentation"),
    RoleDescriptor(id="role-review", slug="review", name="Review",
                   description="Review and quality checks"),
]

PROVIDERS: list[ProviderDescriptor] = [
    ProviderDescriptor(
        id="prov-claude-sonnet-4.5",
        name="claude-sonnet-4.5",
        display_name="Claude Sonnet 4.5 (Anthropic)",
        api_base_url="https://api.anthropic.com",
        api_type="anthropic",
        model_id="claude-sonnet-4-5-20250929",
        description="Balanced speed & intelligence for coding & writing",
    ),
    ProviderDescriptor(
        id="prov-gemini-2.5-pro",
        name="gemini-2.5-pro",
        display_name="Gemini 2.5 Pro (Google)",
        api_base_url="https://generativelanguage.googleapis.com",
        api_type="google",
        model_id="gemini-2.5-pro",
        description="Advanced reasoning & 1M context",
    ),
    ProviderDescriptor(
        id="prov-gpt-4.1",
        name="gpt-4.1",
        display_name="GPT-4.1 (OpenAI)",
        api_base_url="https://api.openai.com",
        api_type="openai",
        model_id="gpt-4.1",
        description="1M context window",
    ),
    ProviderDescriptor(
        id="prov-sonar-pro",
        name="sonar-pro",
        display_name="Sonar Pro (Perplexity)",
        api_base_url="https://api.perplexity.ai",
        api_type="perplexity",
        model_id="sonar-pro",
        description="Search-grounded answers with citations",
    ),
    ProviderDescriptor(
        id="prov-sonar-deep-research",
        name="sonar-deep-research",
        display_name="Sonar Deep Research (Perplexity)",
        api_base_url="https://api.perplexity.ai",
        api_type="perplexity",
        model_id="sonar-deep-research",
        description="Exhaustive research reports",
    ),
]

# role slug -> provider name for the demo project
DEMO_BINDINGS: dict[str, str] = {
    "leader": "claude-sonnet-4.5",
    "search": "sonar-pro",
    "deep-research": "sonar-deep-research",
    "planning": "gemini-2.5-pro",
    "coding": "claude-sonnet-4.5",
    "writing": "claude-sonnet-4.5",
    "review": "gpt-4.1",
}


def default_snapshot(project_id: str = DEMO_PROJECT_ID) -> CatalogSnapshot:
    """Build the seed catalog, binding every role for ``project_id``."""
    return CatalogSnapshot(
        providers=list(PROVIDERS),
        roles=list(ROLES),
        assignments=[
            RoleAssignment(project_id=project_id, role_slug=slug, provider_name=name)
            for slug, name in DEMO_BINDINGS.items()
        ],
    )
