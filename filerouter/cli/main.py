"""Command line interface for filerouter.

Commands:
- filerouter route <file> --template LUNGO [--project P-001]
- filerouter report <record-id> <folder>
- filerouter history [project]
- filerouter patterns
- filerouter forget <signature> | --all
- filerouter templates [template]
- filerouter stats
- filerouter test-classifier
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from filerouter import __logo__, __version__
from filerouter.config.loader import load_config
from filerouter.config.schema import Config
from filerouter.errors import FileRoutingError
from filerouter.factory import create_classifier, create_router
from filerouter.router.arbiter import FileRouter
from filerouter.router.models import FileDescriptor, FolderTemplate, as_leaf_path, format_leaf_path
from filerouter.router.templates import TemplateResolver
from filerouter.utils.logging import configure_logging

app = typer.Typer(
    name="filerouter",
    help=f"{__logo__} filerouter - suggests where project files belong",
    no_args_is_help=True,
)

console = Console()

_state: dict = {"config_path": None}


def _load() -> Config:
    return load_config(_state["config_path"])


def _get_router() -> FileRouter:
    return create_router(_load())


def _format_confidence(confidence: int) -> str:
    if confidence >= 80:
        return f"[green]{confidence}%[/green]"
    if confidence >= 50:
        return f"[yellow]{confidence}%[/yellow]"
    return f"[red]{confidence}%[/red]"


def _fail(error: Exception) -> None:
    console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(1)


@app.callback()
def main(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Configure logging and remember the config location for subcommands."""
    _state["config_path"] = config
    configure_logging(load_config(config).logging, verbose=verbose)


@app.command("version")
def version():
    """Show the installed version."""
    console.print(f"{__logo__} filerouter v{__version__}")


@app.command("route")
def route(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to place"),
    template: Optional[str] = typer.Option(None, "--template", "-t", help="Template id (LUNGO, BREVE)"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project id"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Classifier timeout"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Suggest a folder for a file."""
    if not template and not project:
        console.print("[red]Give --template or --project[/red]")
        raise typer.Exit(2)

    config = _load()
    router = create_router(config)
    # Content only feeds the classifier preview; never load more than it can use
    preview_bytes = config.classifier.max_preview_bytes if config.classifier.enabled else 0
    descriptor = FileDescriptor.from_path(file, max_bytes=preview_bytes)
    try:
        if template:
            result = asyncio.run(router.route(descriptor, template, project_id=project, timeout_ms=timeout_ms))
        else:
            result = asyncio.run(router.route_project(descriptor, project, timeout_ms=timeout_ms))
    except FileRoutingError as e:
        _fail(e)

    if as_json:
        console.print_json(json.dumps(result.to_dict()))
        return

    console.print(f"\n{__logo__} [bold]{file.name}[/bold]")
    console.print(f"  Folder:     [cyan]{result.path}/[/cyan]")
    console.print(f"  Confidence: {_format_confidence(result.confidence)}")
    console.print(f"  Method:     {result.method.value}")
    if result.reasoning:
        console.print(f"  Reasoning:  [dim]{result.reasoning}[/dim]")
    for alternative in result.alternatives:
        console.print(f"  Alternative: {format_leaf_path(alternative)}/")
    console.print(f"  Record:     [dim]{result.record_id}[/dim]")


@app.command("report")
def report(
    record_id: str = typer.Argument(..., help="Record id printed by 'route'"),
    folder: str = typer.Argument(..., help="Folder the file was actually filed in, e.g. 3_PROGETTO/ARC"),
):
    """Report where a routed file actually went (feeds learning)."""
    router = _get_router()
    try:
        record = router.report_actual(record_id, as_leaf_path(folder))
    except (FileRoutingError, ValueError) as e:
        _fail(e)

    if record.actual_path == record.suggested_path:
        console.print(f"[green]✓[/green] Suggestion accepted for {record.file_name}")
    else:
        console.print(
            f"[green]✓[/green] Correction recorded for {record.file_name}: "
            f"{format_leaf_path(record.suggested_path)} → {format_leaf_path(record.actual_path or ())}"
        )


@app.command("history")
def history(
    project: Optional[str] = typer.Argument(None, help="Project id (omit for records without a project)"),
):
    """List routing records for a project."""
    records = _get_router().list_by_project(project)
    if not records:
        console.print(f"[yellow]No routing records for {project or 'unassigned files'}[/yellow]")
        return

    table = Table(title=f"Routing history: {project or 'no project'}")
    table.add_column("Created", style="dim")
    table.add_column("File")
    table.add_column("Suggested", style="cyan")
    table.add_column("Actual")
    table.add_column("Conf.", justify="right")
    table.add_column("Method")
    table.add_column("Id", style="dim")
    for record in records:
        table.add_row(
            record.created_at[:19],
            record.file_name,
            format_leaf_path(record.suggested_path),
            format_leaf_path(record.actual_path) if record.actual_path else "-",
            _format_confidence(record.confidence),
            record.method.value,
            record.id,
        )
    console.print(table)


@app.command("patterns")
def patterns():
    """List learned patterns."""
    router = _get_router()
    learned = router.patterns.all()
    if not learned:
        console.print("[yellow]No learned patterns yet[/yellow]")
        return

    table = Table(title=f"Learned patterns ({len(learned)})")
    table.add_column("Signature")
    table.add_column("Folder", style="cyan")
    table.add_column("Confirmed", justify="right")
    table.add_column("Confidence", justify="right")
    for pattern in learned:
        confidence = round(router.patterns.confidence_for(pattern) * 100)
        table.add_row(
            pattern.signature,
            format_leaf_path(pattern.leaf_path),
            str(pattern.times_confirmed),
            _format_confidence(confidence),
        )
    console.print(table)


@app.command("forget")
def forget(
    signature: Optional[str] = typer.Argument(None, help="Signature to remove, as shown by 'patterns'"),
    all_patterns: bool = typer.Option(False, "--all", help="Remove every learned pattern"),
    confirm: bool = typer.Option(False, "--confirm", "-y", help="Skip confirmation"),
):
    """Remove learned patterns (administrative cleanup)."""
    router = _get_router()
    if all_patterns:
        if not confirm and not typer.confirm("Remove ALL learned patterns?"):
            raise typer.Abort()
        count = router.patterns.clear_all()
        console.print(f"[green]Removed {count} learned patterns[/green]")
        return

    if not signature:
        console.print("[red]Give a signature or --all[/red]")
        raise typer.Exit(2)
    if router.patterns.clear(signature):
        console.print(f"[green]Removed pattern {signature}[/green]")
    else:
        console.print(f"[yellow]No pattern {signature}[/yellow]")


def _template_tree(template: FolderTemplate) -> Tree:
    tree = Tree(f"[bold]{template.template_id}[/bold] - {template.name}")
    branches: dict[tuple, Tree] = {(): tree}
    for path in template.iter_paths():
        label = f"{path[-1]}/"
        description = template.descriptions.get(format_leaf_path(path))
        if description:
            label += f" [dim]{description}[/dim]"
        branches[path] = branches[path[:-1]].add(label)
    return tree


@app.command("templates")
def templates(
    template_id: Optional[str] = typer.Argument(None, help="Template to show (all when omitted)"),
):
    """Show folder templates."""
    resolver = TemplateResolver()
    ids = [template_id] if template_id else resolver.template_ids
    for tid in ids:
        try:
            console.print(_template_tree(resolver.resolve(tid)))
        except FileRoutingError as e:
            _fail(e)


@app.command("stats")
def stats():
    """Show routing statistics."""
    data = _get_router().stats()
    console.print(f"\n{__logo__} [bold]Routing statistics[/bold]")
    console.print(f"Learned patterns: {data['learned_patterns']:,}")
    console.print(f"Routing records:  {data['total_routings']:,}")
    console.print(f"AI classifier:    {'enabled' if data['ai_enabled'] else 'disabled'}")
    console.print(f"Templates:        {', '.join(data['templates'])}")


@app.command("test-classifier")
def test_classifier():
    """Check that the configured classifier model is reachable."""
    adapter = create_classifier(_load())
    if adapter is None:
        console.print("[yellow]Classifier is disabled in config[/yellow]")
        raise typer.Exit(1)

    with console.status("[cyan]Contacting classifier...[/cyan]", spinner="dots"):
        ok = asyncio.run(adapter.classifier.test_connection())

    if ok:
        console.print("[green]✓ Classifier reachable[/green]")
    else:
        console.print("[red]✗ Classifier not reachable[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
