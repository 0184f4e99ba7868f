"""Arborist CLI - typer application entry point."""

from __future__ import annotations

import atexit
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from arborist.config import ArboristConfig, load_config
from arborist.observability import close_file_logging, configure_logging, get_logger
from arborist.tree.errors import NodeNotFoundError, TreeError
from arborist.tree.service import TreeService
from arborist.tree.sqlite_store import SqliteNodeStore

if TYPE_CHECKING:
    from arborist.tree.models import TreeNode

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="arborist",
    help="Arborist: store and query forests of labelled trees.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

# Exit codes for rejected operations
EXIT_NOT_FOUND = 1
EXIT_BAD_INPUT = 2
EXIT_INVALID_STRUCTURE = 3


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    db: Annotated[
        str | None,
        typer.Option(
            "--db",
            help="SQLite database file (overrides config; ':memory:' for a throwaway store).",
            envvar="ARBORIST_DB",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file (default: ./arborist.yaml if present).",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            help="Append every log event to this JSONL file.",
        ),
    ] = None,
) -> None:
    """Arborist: store and query forests of labelled trees."""
    configure_logging(verbosity=verbose, log_file=log_file)
    if log_file is not None:
        atexit.register(close_file_logging)

    try:
        settings = load_config(config)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_BAD_INPUT) from e

    if db is not None:
        settings.db_path = db
    log.debug("cli_configured", db_path=settings.db_path, max_depth=settings.max_depth)
    ctx.obj = settings


def _settings(ctx: typer.Context) -> ArboristConfig:
    settings: ArboristConfig = ctx.obj
    return settings


def _open_service(ctx: typer.Context) -> TreeService:
    """Open a TreeService over the configured SQLite database."""
    settings = _settings(ctx)
    store = SqliteNodeStore(settings.db_path)
    return TreeService(store, max_depth=settings.max_depth)


def _emit(data: Any) -> None:
    """Write machine-readable JSON to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(error: TreeError) -> typer.Exit:
    """Report a rejected operation and build the matching exit."""
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    if isinstance(error, NodeNotFoundError):
        return typer.Exit(EXIT_NOT_FOUND)
    return typer.Exit(EXIT_BAD_INPUT)


def _render_tree(trees: list[TreeNode], title: str) -> Tree:
    """Build a rich Tree for display, children in id order."""
    display = Tree(f"[bold]{escape(title)}[/bold]")
    pending: list[tuple[Tree, TreeNode]] = [(display, t) for t in trees]
    while pending:
        parent_branch, node = pending.pop(0)
        branch = parent_branch.add(f"{escape(node.label)} [dim]#{node.id}[/dim]")
        pending[0:0] = [(branch, child) for child in node.children]
    return display


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from arborist import __version__

    console.print(f"Arborist v{__version__}")


@app.command()
def init(
    ctx: typer.Context,
    seed: Annotated[
        bool | None,
        typer.Option(
            "--seed/--no-seed",
            help="Populate an empty store with the sample forest (default: from config).",
        ),
    ] = None,
) -> None:
    """Create the database schema, optionally with sample data."""
    settings = _settings(ctx)
    should_seed = settings.seed_sample_data if seed is None else seed

    with _open_service(ctx) as service:
        seeded = service.seed_sample_data() if should_seed else False
        count = service.store.node_count()

    console.print(f"[green]✓[/green] Store ready: [bold]{escape(settings.db_path)}[/bold]")
    if seeded:
        console.print(f"  Seeded sample forest ({count} nodes)")
    elif should_seed:
        console.print(f"  Store already has {count} nodes, skipped seeding")


@app.command("list")
def list_trees(
    ctx: typer.Context,
    pretty: Annotated[
        bool,
        typer.Option("--pretty", help="Render as a tree instead of JSON."),
    ] = False,
) -> None:
    """List every tree in the store."""
    with _open_service(ctx) as service:
        trees = service.list_all_trees()

    if pretty:
        console.print(_render_tree(trees, "Forest"))
        return
    _emit([tree.to_json_dict() for tree in trees])


@app.command()
def create(
    ctx: typer.Context,
    label: Annotated[str, typer.Argument(help="Label for the new node")],
    parent: Annotated[
        int | None,
        typer.Option("--parent", "-p", help="Parent node id (omit for a new root)."),
    ] = None,
) -> None:
    """Create a node under an existing parent, or a new root."""
    with _open_service(ctx) as service:
        try:
            node = service.create_node(label, parent)
        except TreeError as e:
            raise _fail(e) from e
    _emit(node.to_json_dict())


@app.command("import")
def import_nodes(
    ctx: typer.Context,
    file: Annotated[
        Path,
        typer.Argument(help="JSON file with a list of {label, parentId} objects"),
    ],
) -> None:
    """Create many nodes at once; nothing is kept if any node fails."""
    try:
        with file.open(encoding="utf-8") as f:
            specs = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] Cannot read {escape(str(file))}: {escape(str(e))}")
        raise typer.Exit(EXIT_BAD_INPUT) from e

    if not isinstance(specs, list) or not all(isinstance(s, dict) for s in specs):
        console.print("[red]Error:[/red] Expected a JSON list of objects")
        raise typer.Exit(EXIT_BAD_INPUT)

    with _open_service(ctx) as service:
        try:
            created = service.create_nodes(specs)
        except TreeError as e:
            raise _fail(e) from e
    _emit([node.model_dump(mode="json") for node in created])


@app.command()
def tree(
    ctx: typer.Context,
    node_id: Annotated[int, typer.Argument(help="Node to root the tree at")],
    pretty: Annotated[
        bool,
        typer.Option("--pretty", help="Render as a tree instead of JSON."),
    ] = False,
) -> None:
    """Show one node with its full subtree."""
    with _open_service(ctx) as service:
        try:
            result = service.get_tree(node_id)
        except TreeError as e:
            raise _fail(e) from e

    if pretty:
        console.print(_render_tree([result], f"Tree #{node_id}"))
        return
    _emit(result.to_json_dict())


@app.command()
def path(
    ctx: typer.Context,
    node_id: Annotated[int, typer.Argument(help="Target node")],
) -> None:
    """Show the path from the root to a node."""
    with _open_service(ctx) as service:
        try:
            result = service.get_path(node_id)
        except TreeError as e:
            raise _fail(e) from e
    _emit(result.to_json_dict())


@app.command()
def stats(
    ctx: typer.Context,
    detailed: Annotated[
        bool,
        typer.Option("--detailed", help="Include depth and subtree-size breakdown."),
    ] = False,
    pretty: Annotated[
        bool,
        typer.Option("--pretty", help="Render a summary table instead of JSON."),
    ] = False,
) -> None:
    """Show store statistics."""
    with _open_service(ctx) as service:
        summary = service.get_stats()
        breakdown = service.get_detailed_stats() if detailed else None

    if pretty:
        table = Table(title="Trees")
        table.add_column("Root", style="cyan")
        table.add_column("Label")
        table.add_column("Nodes", justify="right")
        for structure in summary.trees.structures:
            table.add_row(str(structure.root_id), structure.root_label, str(structure.node_count))
        console.print(table)
        console.print(f"Total nodes: {summary.database.total_nodes}")
        if breakdown is not None:
            console.print(f"Max depth: {breakdown.max_depth}")
        return

    data: dict[str, Any] = summary.to_json_dict()
    if breakdown is not None:
        data["detailed"] = breakdown.to_json_dict()
    _emit(data)


@app.command()
def validate(
    ctx: typer.Context,
    node: Annotated[
        int | None,
        typer.Option("--node", "-n", help="Audit only this node's subtree."),
    ] = None,
) -> None:
    """Audit the store for orphaned nodes and cycles.

    Exits with code 3 when problems are found.
    """
    with _open_service(ctx) as service:
        try:
            report = service.validate(node_id=node)
        except TreeError as e:
            raise _fail(e) from e

    _emit(report.to_dict())
    if not report.is_valid:
        raise typer.Exit(EXIT_INVALID_STRUCTURE)


@app.command()
def move(
    ctx: typer.Context,
    source: Annotated[int, typer.Argument(help="Node to move (its subtree moves with it)")],
    to: Annotated[
        int | None,
        typer.Option("--to", "-t", help="New parent node id."),
    ] = None,
    root: Annotated[
        bool,
        typer.Option("--root", help="Detach the node as a new root."),
    ] = False,
) -> None:
    """Move a node and its whole subtree under a new parent."""
    if (to is not None) == root:
        console.print("[red]Error:[/red] Give exactly one of --to ID or --root")
        raise typer.Exit(EXIT_BAD_INPUT)

    with _open_service(ctx) as service:
        try:
            moved = service.move_node(source, None if root else to)
        except TreeError as e:
            raise _fail(e) from e
    _emit(moved.model_dump(mode="json"))


@app.command()
def rename(
    ctx: typer.Context,
    node_id: Annotated[int, typer.Argument(help="Node to relabel")],
    label: Annotated[str, typer.Argument(help="New label")],
) -> None:
    """Change a node's label."""
    with _open_service(ctx) as service:
        try:
            node = service.update_label(node_id, label)
        except TreeError as e:
            raise _fail(e) from e
    _emit(node.model_dump(mode="json"))


@app.command()
def delete(
    ctx: typer.Context,
    node_id: Annotated[int, typer.Argument(help="Node to delete with all its descendants")],
) -> None:
    """Delete a node and its whole subtree."""
    with _open_service(ctx) as service:
        try:
            removed = service.delete_node(node_id)
        except TreeError as e:
            raise _fail(e) from e
    console.print(f"[green]✓[/green] Deleted {removed} node(s)")
