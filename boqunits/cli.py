"""boqunits CLI - operator jobs for the BOQ unit registry.

Commands:
- init: Initialize database schema
- seed-sample: Insert the sample BOQ with a legacy free-text unit
- migrate-units: One-shot migration of free-text units to unit_id references
- normalize-units: Fill missing unit abbreviations (safe to run nightly)
- cleanup-legacy-units: Remove legacy unit/unit_name fields from migrated items
- audit-units: Report BOQs with legacy or incomplete unit data
- export-units: Write every BOQ item's unit reference to CSV
- units: List/add/update/delete a company's units
- show-boq / render-boq: View a BOQ or render it to PDF
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import select

from boqunits.config import AppConfig, get_config
from boqunits.core.errors import BatchJobError
from boqunits.core.logging import configure_logging
from boqunits.db.connection import close_db, get_session, init_db
from boqunits.db.models import BoqModel
from boqunits.db.seed import seed_sample
from boqunits.jobs import (
    BatchResult,
    LegacyUnitCleanupJob,
    UnitMigrationJob,
    UnitNormalizationJob,
    execute_job,
)
from boqunits.jobs.base import BoqBatchJob
from boqunits.models import UnitState
from boqunits.reporting.audit import audit_units
from boqunits.reporting.csv_export import write_units_csv
from boqunits.reporting.viewer import boq_rows, subtotal
from boqunits.units import registry

T = TypeVar("T")

app = typer.Typer(
    name="boqunits",
    help="Unit registry and BOQ unit normalization jobs",
    no_args_is_help=True,
)
units_cli = typer.Typer(help="Unit registry maintenance")
app.add_typer(units_cli, name="units")

console = Console()


def _load_config() -> AppConfig:
    """Load configuration or stop before any work is done."""
    try:
        config = get_config()
    except (KeyError, ValueError) as exc:
        console.print(f"[bold red]✗ Configuration error:[/bold red] {exc}")
        raise typer.Exit(1) from exc
    configure_logging(config)
    return config


def _run(main: Callable[[], Awaitable[T]]) -> T:
    """Run a coroutine, always disposing the engine; any failure exits 1."""

    async def _wrapped() -> T:
        try:
            return await main()
        finally:
            await close_db()

    try:
        return asyncio.run(_wrapped())
    except typer.Exit:
        raise
    except BatchJobError as exc:
        console.print(f"[bold red]✗[/bold red] {exc}")
        raise typer.Exit(1) from exc
    except Exception as exc:
        console.print(f"[bold red]✗ Failed:[/bold red] {exc}")
        raise typer.Exit(1) from exc


def _print_result(result: BatchResult) -> None:
    if result.dry_run:
        console.print("[yellow]DRY RUN - all changes rolled back[/yellow]")

    table = Table(title=f"{result.job} summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Companies scanned", str(result.companies_scanned))
    table.add_row("BOQs scanned", str(result.boqs_scanned))
    table.add_row("BOQs updated", str(result.boqs_updated))
    table.add_row("Items updated", str(result.items_updated))
    table.add_row("Units created", str(result.units_created))
    table.add_row("Malformed BOQs skipped", str(result.anomalies_skipped))
    console.print(table)

    for ref in result.updated_boqs:
        console.print(f"  • {ref.number} ({ref.id})", style="dim")
    console.print(f"[bold green]✓[/bold green] {result.job} completed in {result.duration_seconds:.1f}s")


def _run_job(job: BoqBatchJob, dry_run: bool) -> None:
    if dry_run:
        console.print("[yellow]DRY RUN MODE - No changes will be made[/yellow]")
    result = _run(lambda: execute_job(job, dry_run=dry_run))
    _print_result(result)


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = _load_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")
    _run(lambda: init_db(drop=drop))
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command(name="seed-sample")
def seed_sample_cmd():
    """Insert the sample BOQ (idempotent)."""
    _load_config()

    async def _seed():
        async with get_session() as session:
            boq, created = await seed_sample(session)
            return boq.number, created

    number, created = _run(_seed)
    if created:
        console.print(f"[bold green]✓[/bold green] Inserted sample BOQ: {number}")
    else:
        console.print(f"Sample BOQ already exists: {number}")


@app.command(name="migrate-units")
def migrate_units_cmd(
    dry_run: bool = typer.Option(False, "--dry-run", help="Roll back instead of committing"),
):
    """Resolve every free-text BOQ unit to a unit_id, creating missing units."""
    config = _load_config()
    settings = config.normalization
    job = UnitMigrationJob(
        created_by=settings.created_by,
        tie_break=settings.tie_break,
        advisory_lock=settings.advisory_lock,
    )
    _run_job(job, dry_run)


@app.command(name="normalize-units")
def normalize_units_cmd(
    dry_run: bool = typer.Option(False, "--dry-run", help="Roll back instead of committing"),
):
    """Fill missing unit abbreviations and derivable unit_ids (never creates units)."""
    config = _load_config()
    settings = config.normalization
    job = UnitNormalizationJob(tie_break=settings.tie_break, advisory_lock=settings.advisory_lock)
    _run_job(job, dry_run)


@app.command(name="cleanup-legacy-units")
def cleanup_legacy_units_cmd(
    dry_run: bool = typer.Option(False, "--dry-run", help="Roll back instead of committing"),
    require_abbreviation: bool | None = typer.Option(
        None,
        "--require-abbreviation/--no-require-abbreviation",
        help="Only strip legacy fields from items that already have unit_abbreviation",
    ),
):
    """Delete legacy unit/unit_name fields from items that have a unit_id (DESTRUCTIVE)."""
    config = _load_config()
    settings = config.normalization
    if require_abbreviation is None:
        require_abbreviation = settings.cleanup_require_abbreviation
    job = LegacyUnitCleanupJob(
        require_abbreviation=require_abbreviation,
        advisory_lock=settings.advisory_lock,
    )
    _run_job(job, dry_run)


@app.command(name="audit-units")
def audit_units_cmd():
    """Print counts and samples of BOQs with legacy or incomplete unit data."""
    config = _load_config()
    sample_size = config.normalization.audit_sample_size

    async def _audit():
        async with get_session() as session:
            return await audit_units(session, sample_size=sample_size)

    report = _run(_audit)

    console.print(f"Total BOQs: {report.total_boqs}")
    if report.malformed:
        console.print(f"BOQs without a sections list: {report.malformed}")
    if report.item_states:
        states = ", ".join(
            f"{state.value}={report.item_states[state]}" for state in UnitState if report.item_states[state]
        )
        console.print(f"Items by unit state: {states}")
    for category in report.categories:
        console.print(f"{category.label}: {category.count}")
        if category.sample:
            console.print(f"  Sample (first {len(category.sample)}):", style="dim")
            for ref in category.sample:
                console.print(f"    • {ref.number} ({ref.id})", style="dim")


@app.command(name="export-units")
def export_units_cmd(
    output: Path | None = typer.Option(None, "--out", "-o", help="Output CSV file"),
):
    """Export every BOQ item's unit reference to CSV."""
    config = _load_config()
    path = output or config.normalization.export_path

    async def _export():
        async with get_session() as session:
            return await write_units_csv(session, path)

    rows = _run(_export)
    console.print(f"[green]✓[/green] Wrote {rows} rows to {path}")


@units_cli.command("list")
def units_list_cmd(
    company_id: UUID = typer.Option(..., "--company", help="Company ID"),
):
    """List a company's units."""
    _load_config()

    async def _list():
        async with get_session() as session:
            return await registry.load_company_units(session, company_id)

    units = _run(_list)
    if not units:
        console.print("[yellow]No units found for company[/yellow]")
        return

    table = Table(title="Units")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Abbreviation", style="green")
    for unit in units:
        table.add_row(str(unit.id), unit.name, unit.abbreviation or "")
    console.print(table)


@units_cli.command("add")
def units_add_cmd(
    name: str = typer.Argument(..., help="Unit name, e.g. 'Cubic Meters'"),
    company_id: UUID = typer.Option(..., "--company", help="Company ID"),
    abbreviation: str | None = typer.Option(None, "--abbr", help="Display abbreviation, e.g. 'm³'"),
):
    """Create a unit for a company."""
    _load_config()

    async def _add():
        async with get_session() as session:
            return await registry.create_unit(
                session, company_id, name, abbreviation, created_by="cli"
            )

    unit = _run(_add)
    console.print(f"[bold green]✓[/bold green] Created unit {unit.name} ({unit.display}): {unit.id}")


@units_cli.command("update")
def units_update_cmd(
    unit_id: UUID = typer.Argument(..., help="Unit ID"),
    name: str | None = typer.Option(None, "--name", help="New name"),
    abbreviation: str | None = typer.Option(None, "--abbr", help="New abbreviation"),
    clear_abbreviation: bool = typer.Option(False, "--clear-abbr", help="Remove the abbreviation"),
):
    """Rename a unit or change its abbreviation."""
    _load_config()
    changes = {}
    if name is not None:
        changes["name"] = name
    if clear_abbreviation:
        changes["abbreviation"] = None
    elif abbreviation is not None:
        changes["abbreviation"] = abbreviation

    async def _update():
        async with get_session() as session:
            return await registry.update_unit(session, unit_id, **changes)

    unit = _run(_update)
    if unit is None:
        console.print(f"[red]Unit not found: {unit_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[bold green]✓[/bold green] Updated unit {unit.name} ({unit.display})")
    console.print("Run normalize-units to refresh cached abbreviations on new items.", style="dim")


@units_cli.command("delete")
def units_delete_cmd(
    unit_id: UUID = typer.Argument(..., help="Unit ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a unit. BOQ items that reference it keep a dangling unit_id."""
    _load_config()
    if not yes and not typer.confirm("Delete unit? BOQ items referencing it are not updated."):
        console.print("[yellow]Cancelled[/yellow]")
        return

    async def _delete():
        async with get_session() as session:
            return await registry.delete_unit(session, unit_id)

    if not _run(_delete):
        console.print(f"[red]Unit not found: {unit_id}[/red]")
        raise typer.Exit(1)
    console.print("[bold green]✓[/bold green] Unit deleted")


async def _load_boq(number: str, company_id: UUID):
    async with get_session() as session:
        boq = (
            await session.execute(
                select(BoqModel).where(
                    BoqModel.company_id == company_id,
                    BoqModel.number == number,
                )
            )
        ).scalar_one_or_none()
        units = await registry.load_company_units(session, company_id)
        return boq, units


@app.command(name="show-boq")
def show_boq_cmd(
    number: str = typer.Argument(..., help="BOQ number"),
    company_id: UUID = typer.Option(..., "--company", help="Company ID"),
):
    """Print a BOQ's rows with resolved display units."""
    _load_config()
    boq, units = _run(lambda: _load_boq(number, company_id))
    if boq is None:
        console.print(f"[red]BOQ not found: {number}[/red]")
        raise typer.Exit(1)

    rows = boq_rows(boq.data, units)
    table = Table(title=f"BOQ {boq.number}")
    table.add_column("Description", style="cyan")
    table.add_column("Qty", justify="right")
    table.add_column("Unit")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right", style="green")
    for row in rows:
        if row.is_section:
            table.add_row(f"[bold]{row.description}[/bold]", "", "", "", "")
        else:
            table.add_row(
                row.description,
                f"{row.quantity:g}",
                row.unit,
                f"{row.rate:,.2f}",
                f"{row.amount:,.2f}",
            )
    console.print(table)
    console.print(f"Total: {boq.currency} {subtotal(rows):,.2f}")


@app.command(name="render-boq")
def render_boq_cmd(
    number: str = typer.Argument(..., help="BOQ number"),
    company_id: UUID = typer.Option(..., "--company", help="Company ID"),
    output: Path = typer.Option(..., "--out", "-o", help="Output PDF file"),
):
    """Render a BOQ to PDF."""
    from boqunits.reporting.pdf_export import generate_boq_pdf  # Local import to avoid reportlab at startup

    _load_config()
    boq, units = _run(lambda: _load_boq(number, company_id))
    if boq is None:
        console.print(f"[red]BOQ not found: {number}[/red]")
        raise typer.Exit(1)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(generate_boq_pdf(boq, units).getvalue())
    console.print(f"[green]✓[/green] PDF saved to: {output}")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
