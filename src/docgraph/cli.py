"""CLI entry point for docgraph."""

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_config
from .errors import AnalysisError, DocgraphError

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.pass_context
def cli(ctx, config_path):
    """docgraph - Extract themes from documents and map how they connect."""
    ctx.ensure_object(dict)
    config = load_config(config_path)
    _setup_logging(config.get("log_level", "INFO"))
    ctx.obj["config"] = config


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.option("--out", "-o", default="graph.json", help="Where to write the graph JSON")
@click.option("--snapshot", default=None, help="Also write a system-state snapshot here")
@click.option("--no-semantic", is_flag=True, help="Skip embedding-based analysis")
@click.option("--threshold", type=float, default=None, help="Minimum document-document edge strength")
@click.pass_context
def analyze(ctx, paths, out, snapshot, no_semantic, threshold):
    """Analyze documents and build their thematic graph."""
    from .ingest import load_documents
    from .pipeline import AnalysisOrchestrator

    config = ctx.obj["config"]
    try:
        documents = load_documents(paths)
        if not documents:
            console.print("[yellow]No supported documents found.[/]")
            return

        console.print(f"[blue]Analyzing {len(documents)} document(s)...[/]")
        orchestrator = AnalysisOrchestrator(config)
        overrides = {"connection_strength_threshold": threshold}
        if no_semantic:
            overrides["enable_semantic_analysis"] = False
        result = orchestrator.process_documents(documents, **overrides)
    except AnalysisError as e:
        console.print(f"[red]{e}[/]")
        if e.original_error is not None:
            console.print(f"  [dim]caused by {type(e.original_error).__name__}[/]")
        raise SystemExit(1)
    except (DocgraphError, ValueError) as e:
        console.print(f"[red]{e}[/]")
        raise SystemExit(1)

    Path(out).write_text(json.dumps(result.graph.to_dict(), indent=2, default=str))
    console.print(f"[green]✓ Wrote graph to {out}[/]")
    if snapshot:
        Path(snapshot).write_text(json.dumps(orchestrator.export_system_state(), indent=2, default=str))
        console.print(f"[green]✓ Wrote snapshot to {snapshot}[/]")

    overview = result.report["overview"]
    connectivity = result.report["connectivity"]
    table = Table(title="Analysis Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Documents", str(overview["total_documents"]))
    table.add_row("Themes", str(overview["total_themes"]))
    table.add_row("Definitions", str(overview["total_definitions"]))
    table.add_row("Shared themes", str(overview["shared_themes"]))
    table.add_row("Graph density", f"{connectivity['graph_density']:.2f}")
    table.add_row("Avg. connection strength", f"{connectivity['average_connection_strength']:.2f}")
    table.add_row("Semantic analysis", "yes" if result.semantic_analysis else "no")
    table.add_row("Time", f"{result.processing_time:.2f}s")
    console.print(table)

    for rec in result.report["recommendations"]:
        colour = "red" if rec["priority"] == "high" else "yellow"
        console.print(f"  [{colour}]{rec['priority']}[/] {rec['message']}")


@cli.command()
@click.argument("snapshot")
@click.pass_context
def report(ctx, snapshot):
    """Show statistics and connectivity for a saved snapshot."""
    from .pipeline import AnalysisOrchestrator

    path = Path(snapshot)
    if not path.is_file():
        console.print(f"[red]Snapshot not found: {snapshot}[/]")
        raise SystemExit(1)

    orchestrator = AnalysisOrchestrator(ctx.obj["config"])
    try:
        orchestrator.import_system_state(json.loads(path.read_text()))
    except (DocgraphError, KeyError, ValueError) as e:
        console.print(f"[red]Could not load snapshot: {e}[/]")
        raise SystemExit(1)

    store = orchestrator.store
    stats = store.stats()
    console.print(
        f"[bold]{stats['documents']}[/] documents, [bold]{stats['themes']}[/] themes, "
        f"[bold]{stats['definitions']}[/] definitions"
    )

    connections = store.get_document_connectivity_map()
    if not connections:
        console.print("[yellow]No connections between documents.[/]")
        return

    table = Table(title="Document Connections")
    table.add_column("Source", style="cyan")
    table.add_column("Target", style="cyan")
    table.add_column("Strength", justify="right", style="green")
    table.add_column("Shared themes", max_width=50)

    for conn in connections:
        labels = ", ".join(sorted(conn.shared_themes))
        table.add_row(
            store.get_document(conn.source).title,
            store.get_document(conn.target).title,
            f"{conn.strength:.2f}",
            labels,
        )
    console.print(table)


if __name__ == "__main__":
    cli()
