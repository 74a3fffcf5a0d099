"""Command-line interface for inspecting stored save history."""

from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import EngineConfig, load_config
from .observability import configure_logging
from .persistence import SQLiteSaveStore, create_store
from .persistence.store import SaveStore
from .utils.exceptions import SaveDataError

app = typer.Typer(
    name="savepoints",
    help="Save-point history tool - inspect, validate and delete stored save data",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"
    ),
    log_filter: str | None = typer.Option(
        None, "--log-filter", help="Only log from these modules (e.g., engine,file_store)"
    ),
) -> None:
    """Load configuration shared by every command."""
    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR: Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=log_level or config.logging.level,
        json_logs=config.logging.format == "json",
        log_file=config.logging.file,
        log_filter=log_filter,
    )
    ctx.obj = config


def _open_store(ctx: typer.Context) -> SaveStore:
    config: EngineConfig = ctx.obj
    return create_store(config.store)


@app.command("list")
def list_saves(ctx: typer.Context) -> None:
    """
    List stored save data.

    Examples:
        savepoints list
        savepoints --config savepoints.yaml list
    """
    with _open_store(ctx) as store:
        ids = store.list_ids()

        if not ids:
            console.print("[yellow]No save data found[/yellow]")
            return

        updated: dict[str, str] = {}
        if isinstance(store, SQLiteSaveStore):
            updated = {s["save_data_key"]: s["updated_at"] for s in store.get_slot_summaries()}

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Save Data Key", style="cyan")
        table.add_column("Saved At")
        table.add_column("Save Points", justify="right")
        table.add_column("Latest")
        table.add_column("Status")

        for save_data_key in ids:
            try:
                snapshot = store.read(save_data_key)
            except SaveDataError as e:
                logger.debug("Unreadable save data", save_data_key=save_data_key, error=str(e))
                table.add_row(
                    save_data_key, updated.get(save_data_key, "N/A")[:19], "-", "-", "[red]corrupt[/red]"
                )
                continue

            table.add_row(
                save_data_key,
                snapshot.saved_at[:19],
                str(len(snapshot.save_points)),
                snapshot.save_points[-1].key,
                "[green]ok[/green]",
            )

        console.print(table)
        console.print("\n[dim]To see details: savepoints show <save_data_key>[/dim]")


@app.command()
def show(
    ctx: typer.Context,
    save_data_key: str = typer.Argument(..., help="Save data key to show"),
) -> None:
    """
    Show the save points stored under a key.

    Examples:
        savepoints show save_data
    """
    with _open_store(ctx) as store:
        try:
            snapshot = store.read(save_data_key)
        except SaveDataError as e:
            console.print(f"[red]ERROR:[/red] {e}")
            raise typer.Exit(code=1) from e

    console.print(f"\n[bold blue]Save Data:[/bold blue] [cyan]{save_data_key}[/cyan]")
    console.print(f"Saved at: {snapshot.saved_at}\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Key", style="cyan")
    table.add_column("Description")
    table.add_column("Created At")
    table.add_column("Payload", justify="right")

    for record in snapshot.save_points:
        table.add_row(
            str(record.sequence),
            record.key,
            record.description,
            record.created_at[:19],
            f"{len(record.payload)} chars",
        )

    console.print(table)


@app.command()
def validate(
    ctx: typer.Context,
    save_data_key: str = typer.Argument(..., help="Save data key to validate"),
) -> None:
    """
    Check that stored save data can be loaded.

    Exits with code 1 if the record is missing or corrupt.

    Examples:
        savepoints validate save_data
    """
    with _open_store(ctx) as store:
        try:
            snapshot = store.read(save_data_key)
        except SaveDataError as e:
            console.print(f"[red]FAIL:[/red] {e}")
            raise typer.Exit(code=1) from e

    console.print(
        f"[green]PASS:[/green] '{save_data_key}' is valid "
        f"({len(snapshot.save_points)} save points)"
    )


@app.command()
def delete(
    ctx: typer.Context,
    save_data_key: str = typer.Argument(..., help="Save data key to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Delete without confirmation"),
) -> None:
    """
    Delete stored save data. Deleting a missing record is not an error.

    Examples:
        savepoints delete save_data
        savepoints delete slot2 --yes
    """
    if not yes:
        if not typer.confirm(f"Delete save data '{save_data_key}'?"):
            console.print("[yellow]Aborted.[/yellow]")
            raise typer.Exit()

    with _open_store(ctx) as store:
        try:
            store.delete(save_data_key)
        except SaveDataError as e:
            console.print(f"[red]ERROR:[/red] {e}")
            raise typer.Exit(code=1) from e

    console.print(f"[green]Deleted save data '{save_data_key}'[/green]")


@app.command()
def version() -> None:
    """Show version information and features."""
    from . import __version__

    console.print(
        Panel.fit(
            "[bold]Save-Point History[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]\n"
            "Python: 3.11+\n\n"
            "[bold]Core Features:[/bold]\n"
            "- Rewind / fast-forward through save points\n"
            "- Branch discard on new save points\n"
            "- File, SQLite, diskcache and memory stores\n"
            "- Atomic writes and validated loads\n"
            "- Structured logging and metrics",
            title="About",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
