"""CLI for code_canvas - rendering scripts and inspecting lineage.

Usage:
    python -m code_canvas.cli render drawing.py --size 512 --output out.png
    python -m code_canvas.cli docs
    python -m code_canvas.cli thread list OWNER_ID
    python -m code_canvas.cli thread show THREAD_ID
    python -m code_canvas.cli db init
"""

import asyncio
from pathlib import Path as FilePath

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from code_canvas.logging_config import setup_logging_from_settings
from code_canvas.types import GenerationKind, GenerationNode, ThreadRecord

app = typer.Typer(
    name="code-canvas",
    help="CLI for code_canvas",
    add_completion=False,
)
console = Console()


@app.callback()
def main() -> None:
    """Render drawing code and inspect generation lineage."""
    setup_logging_from_settings()


# =============================================================================
# Rendering Commands
# =============================================================================


@app.command("render")
def render(
    script: FilePath = typer.Argument(..., exists=True, dir_okay=False, help="Drawing script"),
    size: int = typer.Option(512, "--size", "-s", min=1, help="Canvas size in pixels"),
    output: FilePath = typer.Option(
        FilePath("output.png"), "--output", "-o", help="Where to write the PNG"
    ),
) -> None:
    """Run a drawing script in the sandbox and write the PNG.

    Examples:
        code-canvas render logo.py
        code-canvas render logo.py -s 1024 -o logo.png
    """
    from code_canvas.sandbox import ExecutionError, execute_code

    code = script.read_text(encoding="utf-8")
    outcome = asyncio.run(execute_code(code, size))

    if isinstance(outcome, ExecutionError):
        console.print(f"[red]Execution failed ({outcome.kind.value}):[/red] {escape(outcome.message)}")
        raise typer.Exit(1)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(outcome.png)
    console.print(
        f"[green]Wrote {output}[/green] "
        f"({size}x{size}, {outcome.primitive_count} primitives, {outcome.scene.layer_count} layers)"
    )


@app.command("docs")
def docs() -> None:
    """Print the Drawing API documentation."""
    from code_canvas.prompts import get_interface_documentation

    console.print(get_interface_documentation(), markup=False, highlight=False)


# =============================================================================
# Thread Commands
# =============================================================================

thread_app = typer.Typer(help="Inspect threads and their generation trees")
app.add_typer(thread_app, name="thread")


async def _list_threads_async(owner_id: str) -> list[ThreadRecord]:
    from code_canvas.db import SqlLineageStore

    return await SqlLineageStore().list_threads(owner_id)


async def _load_thread_async(thread_id: str) -> tuple[ThreadRecord | None, list[GenerationNode]]:
    from code_canvas.db import SqlLineageStore

    store = SqlLineageStore()
    thread = await store.get_thread(thread_id)
    if thread is None:
        return None, []
    return thread, await store.list_nodes(thread_id)


@thread_app.command("list")
def thread_list(
    owner_id: str = typer.Argument(..., help="Owner whose threads to list"),
) -> None:
    """List an owner's threads, newest first."""
    try:
        threads = asyncio.run(_list_threads_async(owner_id))
    except Exception as e:
        console.print(f"[red]Failed to list threads: {e}[/red]")
        raise typer.Exit(1) from e

    if not threads:
        console.print("[yellow]No threads found[/yellow]")
        return

    table = Table(title=f"Threads for {owner_id}", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Status", style="yellow")
    table.add_column("Created", style="green")
    table.add_column("Prompt")

    for thread in threads:
        prompt = thread.prompt if len(thread.prompt) <= 60 else thread.prompt[:57] + "..."
        table.add_row(
            thread.id,
            thread.status.value,
            thread.created_at.strftime("%Y-%m-%d %H:%M"),
            escape(prompt),
        )

    console.print(table)


def _node_label(node: GenerationNode) -> str:
    kind = "[green]final[/green]" if node.kind == GenerationKind.FINAL else "[dim]debug[/dim]"
    created = node.created_at.strftime("%Y-%m-%d %H:%M:%S")
    return f"[cyan]{node.id}[/cyan] {kind} {created}"


@thread_app.command("show")
def thread_show(
    thread_id: str = typer.Argument(..., help="Thread ID"),
) -> None:
    """Show a thread's generation tree."""
    from code_canvas.lineage import LineageTree

    try:
        thread, nodes = asyncio.run(_load_thread_async(thread_id))
    except Exception as e:
        console.print(f"[red]Failed to load thread: {e}[/red]")
        raise typer.Exit(1) from e

    if thread is None:
        console.print(f"[red]Thread not found: {thread_id}[/red]")
        raise typer.Exit(1)

    deleted = " [red](deleted)[/red]" if thread.is_deleted else ""
    root = Tree(f"[bold]{thread.id}[/bold] {thread.status.value}{deleted}: {escape(thread.prompt)}")
    lineage = LineageTree(nodes)

    def add_branch(branch: Tree, node: GenerationNode) -> None:
        child_branch = branch.add(_node_label(node))
        for child in lineage.children(node.id):
            add_branch(child_branch, child)

    for node in lineage.roots():
        label = _node_label(node)
        if node.parent_id is not None:
            label += f" [dim](from {node.parent_id})[/dim]"
        branch = root.add(label)
        for child in lineage.children(node.id):
            add_branch(branch, child)

    console.print(root)
    console.print(f"{len(lineage)} generations, {len(lineage.finals())} final")


# =============================================================================
# Database Commands
# =============================================================================

db_app = typer.Typer(help="Manage the lineage database")
app.add_typer(db_app, name="db")


async def _init_db_async() -> None:
    from code_canvas.db import Base, create_engine_instance

    engine = create_engine_instance()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


@db_app.command("init")
def db_init() -> None:
    """Create the lineage tables (use alembic for upgrades)."""
    from code_canvas.config import settings

    if settings.database_url.startswith("sqlite") and ":///" in settings.database_url:
        db_path = settings.database_url.split(":///", 1)[1]
        if db_path and db_path != ":memory:":
            FilePath(db_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        asyncio.run(_init_db_async())
    except Exception as e:
        console.print(f"[red]Failed to initialize database: {e}[/red]")
        raise typer.Exit(1) from e

    console.print("[green]Database initialized[/green]")


# Entry point
if __name__ == "__main__":
    app()
