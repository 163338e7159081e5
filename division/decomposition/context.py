"""Context enricher - prepends dependency outputs to a sub-task's instruction."""

from collections.abc import Mapping

from division.decomposition.models import DependencyOutput, SubTask

CONTEXT_HEADER = "## Results from other agents so far:"
INSTRUCTIONS_HEADER = "## Your instructions:"


def format_dependency(dependency: DependencyOutput) -> str:
    """Render one dependency's output block."""
    return f"### {dependency.role_name} ({dependency.provider_name}):\n{dependency.output}\n"


def enrich_input(task: SubTask, dependency_outputs: Mapping[int, DependencyOutput]) -> str:
    """
    Build the text actually sent to a sub-task's provider.

    Dependencies are listed in ascending index order. Indices without a
    recorded output (failed or empty dependencies) are skipped; if none of
    the task's dependencies recorded anything, the raw input is returned.

    Args:
        task: Sub-task about to run.
        dependency_outputs: Outputs recorded so far, keyed by task index.

    Returns:
        Enriched instruction.

    Example:
        >>> enrich_input(task, {})  # no outputs recorded
        'Write the summary'
    """
    blocks = [
        format_dependency(dependency_outputs[index])
        for index in sorted(task.depends_on)
        if index in dependency_outputs
    ]
    if not blocks:
        return task.input

    context = "".join(f"\n{block}" for block in blocks)
    return f"{CONTEXT_HEADER}\n{context}\n\n{INSTRUCTIONS_HEADER}\n{task.input}"
