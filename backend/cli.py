"""
Tableside CLI.

Command-line interface for schema setup and a quick look at the table colors.
"""

import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="tableside",
    help="Tableside QR ordering CLI",
    add_completion=False,
)
console = Console()

COLOR_STYLES = {"ash": "grey50", "yellow": "yellow", "green": "green"}


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_check():
    """Verify the database schema contract."""
    from shared.infrastructure.db import engine
    from shared.infrastructure.schema import SCHEMA_VERSION, verify_schema
    from rest_api.models import Base

    problems = verify_schema(engine, Base.metadata)
    if problems:
        for problem in problems:
            console.print(f"[red]✗ {problem}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Schema version {SCHEMA_VERSION} verified[/green]")


@app.command()
def db_init(
    force: bool = typer.Option(False, "--force", "-f", help="Allow in production"),
):
    """Create missing tables and stamp the schema version."""
    from shared.config.settings import settings
    from shared.infrastructure.db import engine
    from shared.infrastructure.schema import ensure_schema
    from rest_api.models import Base

    if settings.is_production and not force:
        console.print("[red]Cannot initialize a production schema without --force[/red]")
        raise typer.Exit(1)

    try:
        ensure_schema(engine, Base.metadata, auto_create=True)
    except RuntimeError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Schema ready[/green]")


# =============================================================================
# Dashboard Commands
# =============================================================================

@app.command()
def overview(
    tenant_id: int = typer.Argument(..., help="Tenant to inspect"),
    mode: str = typer.Option("eat_later", help="Display policy: eat_later or pay_first"),
):
    """Show the color of every table of a tenant."""
    from shared.infrastructure.db import get_db_context
    from shared.utils.exceptions import AppException
    from rest_api.services.domain import DiningService

    with get_db_context() as db:
        try:
            verdicts = DiningService(db).overview(tenant_id, mode.lower())
        except AppException as e:
            console.print(f"[red]✗ {e.detail}[/red]")
            raise typer.Exit(1)

        table = Table(title=f"Tables of tenant {tenant_id} ({mode.lower()})")
        table.add_column("Table", style="cyan")
        table.add_column("Session")
        table.add_column("Color")
        table.add_column("Reason")
        table.add_column("Orders / Unpaid", style="yellow")

        for v in verdicts:
            style = COLOR_STYLES.get(v.color, "white")
            table.add_row(
                v.table_label,
                str(v.session_id or "-"),
                f"[{style}]{v.color}[/{style}]",
                v.reason,
                f"{v.counters.orders_count} / {v.counters.unpaid_count}",
            )

        console.print(table)


@app.command()
def version():
    """Show version information."""
    table = Table(title="Tableside Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "0.1.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
