"""Main CLI entry point using Typer."""

from pathlib import Path

import anyio
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from division import __version__
from division.core.state import SessionResult, SessionStatus
from division.events.types import EventType, StreamEvent

app = typer.Typer(
    name="division",
    help="Division - multi-AI coordinator",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]Division[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Division - split one request across several specialised AI models.

    A leader model decomposes the request; sub-tasks run in dependency
    waves on the providers bound to their roles.
    """
    pass


def parse_overrides(values: list[str]) -> dict[str, str]:
    """Turn ``role=provider`` pairs into an override map."""
    overrides: dict[str, str] = {}
    for value in values:
        role, sep, provider = value.partition("=")
        if not sep or not role.strip() or not provider.strip():
            raise typer.BadParameter(f"Expected role=provider, got {value!r}")
        overrides[role.strip()] = provider.strip()
    return overrides


def print_event(event: StreamEvent) -> None:
    """One progress line per lifecycle event; chunks and heartbeats are skipped."""
    if event.type == EventType.LEADER_START:
        console.print(f"[bold cyan]Leader[/bold cyan] {event.provider} is decomposing...")
    elif event.type == EventType.LEADER_DONE:
        console.print(f"[cyan]Leader produced {event.task_count} tasks[/cyan]")
    elif event.type == EventType.LEADER_ERROR:
        console.print(f"[bold red]Leader failed:[/bold red] {escape(event.error)}")
    elif event.type == EventType.WAVE_START:
        forced = " [yellow](forced)[/yellow]" if event.forced else ""
        console.print(f"[bold]Wave {event.wave_index}[/bold]: {', '.join(event.task_ids)}{forced}")
    elif event.type == EventType.TASK_START:
        role = escape(f"[{event.role}]")
        console.print(f"  [dim]>[/dim] {event.task_id} {role} -> {escape(event.provider)}")
    elif event.type == EventType.TASK_DONE:
        console.print(f"  [green]done[/green] {event.task_id} ({event.duration_ms}ms)")
    elif event.type == EventType.TASK_ERROR:
        console.print(f"  [red]error[/red] {event.task_id}: {escape(event.error)}")


def print_result(result: SessionResult) -> None:
    """Render the task table and final output."""
    table = Table(title="Tasks")
    table.add_column("#", style="cyan")
    table.add_column("Role")
    table.add_column("Provider")
    table.add_column("Wave")
    table.add_column("Status")
    table.add_column("Duration")

    for task in result.tasks:
        status = "[green]success[/green]" if task.is_success else "[red]error[/red]"
        table.add_row(
            str(task.index),
            task.role,
            task.provider,
            "-" if task.wave is None else str(task.wave),
            status,
            f"{task.duration_ms}ms",
        )

    if result.tasks:
        console.print(table)

    colour = {
        SessionStatus.SUCCESS: "green",
        SessionStatus.PARTIAL: "yellow",
        SessionStatus.ERROR: "red",
    }[result.status]

    body = escape(result.final_output or result.error or "No output")
    console.print(
        Panel(
            body,
            title=f"[bold {colour}]{result.status.value}[/bold {colour}] "
            f"in {result.total_duration_ms}ms",
            border_style=colour,
        )
    )


@app.command()
def run(
    request: str = typer.Argument(..., help="Request text or path to a file holding it"),
    project: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Project whose role bindings apply (defaults to DIVISION_DEFAULT_PROJECT)",
    ),
    override: list[str] = typer.Option(
        [],
        "--override",
        "-o",
        help="Route a role to a provider for this run: role=provider (repeatable)",
    ),
    catalog_path: Path | None = typer.Option(
        None,
        "--catalog",
        "-c",
        help="JSON catalog file",
    ),
    ndjson: bool = typer.Option(
        False,
        "--ndjson",
        help="Print raw events as newline-delimited JSON",
    ),
) -> None:
    """
    Run one request through the coordinator.

    Example:
        division run "Compare three CSS frameworks" -o review=gpt-4.1
    """
    from division.core.config import get_settings
    from division.core.logging import configure_logging
    from division.core.orchestrator import Division
    from division.core.state import AgentRequest
    from division.events.emitter import EventEmitter

    request_path = Path(request)
    if len(request) < 256 and "\n" not in request and request_path.is_file():
        request = request_path.read_text(encoding="utf-8")
        if not ndjson:
            console.print(f"[dim]Loaded request from {request_path}[/dim]")

    overrides = parse_overrides(override)
    settings = get_settings()
    configure_logging(settings)

    if not ndjson:
        console.print(
            Panel(
                f"[bold]Request:[/bold]\n{escape(request[:200])}{'...' if len(request) > 200 else ''}",
                title="[bold blue]Division[/bold blue]",
                border_style="blue",
            )
        )

    async def execute() -> SessionResult:
        from division.api.streaming import format_ndjson
        from division.knowledge.database import close_db, open_catalog

        catalog, uses_db = await open_catalog(
            settings,
            str(catalog_path) if catalog_path else None,
        )
        try:
            division = Division(settings=settings, catalog=catalog)
            emitter = EventEmitter()
            if ndjson:
                emitter.subscribe(lambda event: typer.echo(format_ndjson(event), nl=False))
            else:
                emitter.subscribe(print_event)

            return await division.run(
                AgentRequest(
                    project_id=project or settings.division_default_project,
                    input=request,
                    overrides=overrides,
                ),
                emitter,
            )
        finally:
            if uses_db:
                await close_db()

    result = anyio.run(execute)

    if not ndjson:
        print_result(result)

    if result.status == SessionStatus.ERROR:
        raise typer.Exit(1)


@app.command()
def plan(
    file: Path = typer.Argument(..., help="File holding a saved leader response"),
) -> None:
    """
    Parse a leader response and show the waves it would run in.

    Example:
        division plan leader_output.txt
    """
    from division.decomposition.leader import ParseErr, parse_leader_response
    from division.decomposition.scheduler import plan_waves

    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    parsed = parse_leader_response(file.read_text(encoding="utf-8"))
    if isinstance(parsed, ParseErr):
        console.print(f"[bold red]Could not parse leader response:[/bold red] {escape(parsed.reason)}")
        raise typer.Exit(1)

    table = Table(title="Task Breakdown")
    table.add_column("#", style="cyan")
    table.add_column("Role", style="green")
    table.add_column("Title")
    table.add_column("Depends On")

    for task in parsed.tasks:
        deps = ", ".join(str(d) for d in sorted(task.depends_on)) or "-"
        table.add_row(str(task.index), task.role, task.title, deps)

    console.print(table)

    for wave in plan_waves(parsed.tasks):
        forced = " [yellow](dependencies unsatisfiable, forced)[/yellow]" if wave.forced else ""
        console.print(f"[bold]Wave {wave.number}:[/bold] {', '.join(wave.task_ids)}{forced}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
) -> None:
    """
    Start the HTTP API server.

    Example:
        division serve --port 3000
    """
    import uvicorn

    from division.api.main import app as api_app

    console.print(
        Panel(
            f"[bold]API:[/bold]    http://{host}:{port}/api/agent\n"
            f"[bold]Docs:[/bold]   http://{host}:{port}/docs\n"
            f"[bold]Health:[/bold] http://{host}:{port}/health",
            title="[bold cyan]Division API[/bold cyan]",
            border_style="cyan",
        )
    )

    uvicorn.run(api_app, host=host, port=port, log_level="info")


@app.command()
def config() -> None:
    """Show the current configuration."""
    from division.core.config import get_settings

    settings = get_settings()

    table = Table(title="Current Configuration")
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Log Level", settings.division_log_level)
    table.add_row("Debug Mode", str(settings.division_debug))
    table.add_row("Log Dir", settings.division_log_dir or "(disabled)")
    table.add_row("Heartbeat Interval", f"{settings.division_heartbeat_interval}s")
    table.add_row("Max Concurrent Tasks", str(settings.division_max_concurrent_tasks))
    table.add_row("Task Timeout", f"{settings.division_task_timeout}s")
    table.add_row("Leader Timeout", f"{settings.division_leader_timeout}s")
    table.add_row("Cancel On Disconnect", str(settings.division_cancel_on_disconnect))
    table.add_row("Default Project", settings.division_default_project)
    table.add_row("Catalog", settings.division_catalog_path or "(built-in seed)")
    table.add_row("Generator", settings.division_generator)
    table.add_row("Database", "configured" if settings.database_url else "(none)")

    console.print(table)


if __name__ == "__main__":
    app()
