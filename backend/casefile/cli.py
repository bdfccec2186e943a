"""Typer CLI for casefile.

Commands
--------
- ``casefile init``    -- interactive first-time setup
- ``casefile start``   -- launch the FastAPI server
- ``casefile status``  -- display current runtime / configuration status
- ``casefile extract`` -- extract a document into a subject's profile
- ``casefile enrich``  -- run the enrichment lookups over a subject's profile
"""

from __future__ import annotations

import asyncio
import socket
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from casefile.config import DEFAULT_MODELS, DEFAULT_PORT, get_base_dir, get_port, reload_env
from casefile.enrichment.orchestrator import EnrichmentOrchestrator, EnrichmentRunResult, build_clients
from casefile.extraction.jobs import ExtractionJobManager, JobSnapshot, JobState
from casefile.session import close_session, open_session
from casefile.storage.filesystem import (
    ensure_directories,
    get_env_path,
    get_profile_store,
    list_documents,
    validate_subject_id,
)

app = typer.Typer(
    name="casefile",
    help="Profile extraction, merge and enrichment pipeline",
    add_completion=False,
)
console = Console()

PROVIDERS = tuple(DEFAULT_MODELS)

API_KEY_ENV_MAP: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "bedrock": "AWS_PROFILE",
}

API_KEY_PROMPTS: dict[str, str] = {
    "anthropic": "Enter your Anthropic API key",
    "openai": "Enter your OpenAI API key",
    "bedrock": "Enter your AWS profile name (or press Enter for 'default')",
}

# Optional lookup credentials asked for during init: (env var, prompt)
LOOKUP_KEYS: tuple[tuple[str, str], ...] = (
    ("HIBP_API_KEY", "HaveIBeenPwned API key (breach checks)"),
    ("MAPBOX_TOKEN", "Mapbox token (address geocoding)"),
    ("GITHUB_TOKEN", "GitHub token (social verification, optional)"),
)


def _is_port_in_use(port: int) -> bool:
    """Return True if *port* on localhost is currently accepting connections."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(1)
        return sock.connect_ex(("127.0.0.1", port)) == 0


def _write_env_file(
    path: Path, provider: str, api_key: str, port: int, lookup_keys: dict[str, str]
) -> None:
    """Write a minimal .env file for casefile."""
    env_var = API_KEY_ENV_MAP[provider]
    lines = [
        "# casefile configuration",
        f"CASEFILE_MODEL_PROVIDER={provider}",
        f"{env_var}={api_key}",
        f"CASEFILE_PORT={port}",
    ]
    lines.extend(f"{name}={value}" for name, value in lookup_keys.items() if value)
    lines.append("")
    path.write_text("\n".join(lines), encoding="utf-8")


def _check_subject_id(subject_id: str) -> None:
    try:
        validate_subject_id(subject_id)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.command()
def init() -> None:
    """Create the ~/.casefile/ directory structure and write initial config."""

    console.print(
        Panel(
            "[bold cyan]casefile[/bold cyan] -- first-time setup",
            subtitle="Profile extraction & enrichment",
        )
    )

    base = get_base_dir()

    console.print("\n[bold]1.[/bold] Creating directory structure ...")
    ensure_directories()
    console.print(f"   [green]✓[/green] {base / 'documents'}")
    console.print(f"   [green]✓[/green] {base / 'subjects'}")

    console.print()
    provider = Prompt.ask(
        "[bold]2.[/bold] Select a model provider",
        choices=list(PROVIDERS),
        default="anthropic",
    )

    prompt_text = API_KEY_PROMPTS[provider]
    default_value = "default" if provider == "bedrock" else ""
    api_key = Prompt.ask(
        f"[bold]3.[/bold] {prompt_text}",
        default=default_value if default_value else None,
    )
    if not api_key:
        console.print("[red]No key provided. Aborting.[/red]")
        raise typer.Exit(code=1)

    console.print("\n[bold]4.[/bold] Lookup credentials (press Enter to skip)")
    lookup_keys = {
        name: Prompt.ask(f"   {label}", default="", show_default=False).strip()
        for name, label in LOOKUP_KEYS
    }

    port_str = Prompt.ask(
        "[bold]5.[/bold] Server port",
        default=str(DEFAULT_PORT),
    )
    try:
        port = int(port_str)
    except ValueError:
        console.print(f"[red]Invalid port: {port_str}. Using default {DEFAULT_PORT}.[/red]")
        port = DEFAULT_PORT

    env_path = get_env_path()
    _write_env_file(env_path, provider, api_key, port, lookup_keys)
    console.print(f"\n   [green]✓[/green] Configuration written to [bold]{env_path}[/bold]")

    reload_env()

    configured = ", ".join(name for name, value in lookup_keys.items() if value) or "none"
    console.print(
        Panel(
            f"[bold green]Setup complete![/bold green]\n\n"
            f"  Base dir : {base}\n"
            f"  Provider : {provider}\n"
            f"  Lookups  : {configured}\n"
            f"  Port     : {port}\n\n"
            f"Drop documents (PDF, DOCX, TXT, CSV, MD) into:\n"
            f"  [cyan]{base / 'documents'}[/cyan]\n\n"
            f"Then run [bold]casefile start[/bold] to launch the server.",
            title="Done",
        )
    )


@app.command()
def start(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int | None = typer.Option(None, help="Override configured port"),
    reload: bool = typer.Option(False, help="Enable auto-reload (development)"),
) -> None:
    """Load configuration and start the casefile server."""

    import uvicorn

    reload_env()

    effective_port = port if port is not None else get_port()

    if not get_env_path().exists():
        console.print(
            "[red]Configuration not found.[/red] Run [bold]casefile init[/bold] first."
        )
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"Starting [bold cyan]casefile[/bold cyan] server\n"
            f"  Address : http://{host}:{effective_port}\n"
            f"  Reload  : {'on' if reload else 'off'}",
            title="casefile",
        )
    )

    uvicorn.run(
        "casefile.server:app",
        host=host,
        port=effective_port,
        reload=reload,
    )


@app.command()
def status() -> None:
    """Show the current status of casefile."""

    reload_env()

    base = get_base_dir()
    port = get_port()
    env_exists = get_env_path().exists()
    server_running = _is_port_in_use(port)
    documents = list_documents()
    store = get_profile_store()
    subjects = store.list_subjects()

    table = Table(title="casefile status", show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row("Base directory", str(base))
    table.add_row(
        "Configuration",
        "[green]found[/green]" if env_exists else "[red]missing -- run casefile init[/red]",
    )
    table.add_row(
        "Server",
        f"[green]running[/green] on port {port}"
        if server_running
        else f"[yellow]stopped[/yellow] (port {port})",
    )
    table.add_row("Documents", str(len(documents)))
    table.add_row("Subjects", str(len(subjects)))

    console.print()
    console.print(table)
    console.print()

    if subjects:
        subject_table = Table(title="Subjects", show_header=True)
        subject_table.add_column("Subject")
        subject_table.add_column("Name")
        subject_table.add_column("Completeness", justify="right")
        subject_table.add_column("Updated")
        for subject_id in subjects:
            record = store.load_raw(subject_id) or {}
            identity = (record.get("profile_data") or {}).get("identity") or {}
            subject_table.add_row(
                subject_id,
                identity.get("full_name") or "-",
                f"{record.get('data_completeness', 0)}%",
                record.get("updated_at") or "-",
            )
        console.print(subject_table)
        console.print()


def _print_job(snapshot: JobSnapshot) -> None:
    if snapshot.state == JobState.ERROR:
        code = snapshot.error_code.value if snapshot.error_code else "error"
        console.print(f"[red]Extraction failed ({code}):[/red] {snapshot.error}")
        return
    if snapshot.result is None:
        console.print(f"[yellow]Extraction state: {snapshot.state.value}[/yellow]")
        return
    summary = snapshot.result.summary
    console.print(
        Panel(
            "\n".join(f"  • {line}" for line in summary.counts) or "  (nothing found)",
            title=f"{snapshot.result.file_name}: {summary.total} data points",
        )
    )


@app.command()
def extract(
    subject_id: str = typer.Argument(..., help="Subject to extract into"),
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="Document to extract"),
    apply: bool = typer.Option(False, "--apply", help="Merge the result into the profile"),
) -> None:
    """Extract structured profile data from a document."""

    reload_env()
    _check_subject_id(subject_id)
    data = document.read_bytes()

    async def run() -> list[str] | None:
        manager = ExtractionJobManager()
        manager.submit(subject_id, document.name, data)
        snapshot = await manager.wait(subject_id)
        _print_job(snapshot)
        if not apply or snapshot.state != JobState.REVIEW:
            return None

        instruction = manager.apply(subject_id)
        session = open_session(subject_id)
        tagged: list[str] = []

        def merge(profile):
            result = instruction.merge(profile)
            tagged.extend(sorted(result.tagged_paths))
            return result.merged

        session.apply_update(merge)
        close_session(subject_id)
        return tagged

    with console.status("Extracting ..."):
        tagged = asyncio.run(run())

    if tagged is not None:
        console.print(f"[green]✓[/green] Merged into [bold]{subject_id}[/bold]: {', '.join(tagged) or 'no new data'}")


def _print_enrichment(result: EnrichmentRunResult) -> None:
    table = Table(title="Enrichment", show_header=False, padding=(0, 2))
    table.add_column("Task", style="bold")
    table.add_column("Result")
    table.add_row("Addresses geocoded", str(result.geocoded))
    table.add_row("Emails checked", str(result.breaches))
    table.add_row("Socials verified", str(result.socials))
    table.add_row("Company data", "yes" if result.company else "no")
    table.add_row("Broker checks queued", str(result.brokers))
    table.add_row("Errors", f"[red]{result.errors}[/red]" if result.errors else "0")
    console.print(table)
    for failure in result.failures:
        console.print(f"  [red]✗[/red] {failure.task} {failure.item or ''}: {failure.reason}")
    console.print(f"\n{result.summary}")


@app.command()
def enrich(subject_id: str = typer.Argument(..., help="Subject to enrich")) -> None:
    """Run geocoding, breach checks, social verification, company lookup and
    broker URL generation over a subject's profile."""

    reload_env()
    _check_subject_id(subject_id)

    async def run() -> EnrichmentRunResult:
        session = open_session(subject_id)
        orchestrator = EnrichmentOrchestrator(build_clients())
        try:
            return await orchestrator.run_all(session.profile, session.apply_update)
        finally:
            close_session(subject_id)

    with console.status("Enriching ..."):
        result = asyncio.run(run())
    _print_enrichment(result)


if __name__ == "__main__":
    app()
