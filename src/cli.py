"""Command Line Interface for Ward-Census.

This module provides a CLI using Typer for running the cohort analytics over
an exported record-store snapshot, rendering the same figures the ward
dashboard shows as Rich tables (or JSON for exports).
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from src.adapters.snapshot import get_adapter
from src.dashboard.api.logging_config import setup_logging
from src.domain.enums import AdmissionTypeFilter, Dimension, Unit
from src.domain.periods import PeriodSelector
from src.domain.ports import InvalidArgumentError, Snapshot, SnapshotError
from src.domain.services.analytics_engine import CohortAnalyticsEngine, DashboardQuery
from src.domain.services.cohort_filter import ShiftWindow
from src.infrastructure.settings import APP_VERSION, settings

logger = logging.getLogger(__name__)

# Initialize Typer app and Rich console
app = typer.Typer(
    name="wardstats",
    help="Ward-Census: cohort analytics for hospital ward dashboards",
    add_completion=False
)
console = Console()
err_console = Console(stderr=True)

DATE_FORMATS = ["%Y-%m-%d"]

SnapshotArg = typer.Argument(None, help="Snapshot file (JSON or CSV); defaults to WARD_SNAPSHOT_PATH")
UnitOpt = typer.Option(None, "--unit", "-u", help="Unit (NICU, PICU, SNCU, HDU, GeneralWard)")
PeriodOpt = typer.Option(None, "--period", "-p", help="All Time, Today, This Week, This Month, Custom or YYYY-MM")
StartOpt = typer.Option(None, "--start", formats=DATE_FORMATS, help="Custom range start (YYYY-MM-DD)")
EndOpt = typer.Option(None, "--end", formats=DATE_FORMATS, help="Custom range end (YYYY-MM-DD)")
AdmissionOpt = typer.Option("All", "--admission-type", "-a", help="All, Inborn or Outborn")
ShiftStartOpt = typer.Option(None, "--shift-start", help="Shift start HH:MM")
ShiftEndOpt = typer.Option(None, "--shift-end", help="Shift end HH:MM")
JsonOpt = typer.Option(False, "--json", help="Print JSON instead of tables")
VerboseOpt = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")


def _configure_logging(verbose: bool) -> None:
    # Logs go to stderr so --json output stays parseable
    setup_logging(use_json=settings.json_logs, log_level="DEBUG" if verbose else "WARNING", stream=sys.stderr)


def _fail(message: str) -> None:
    err_console.print(f"[red]✗[/red] {message}")
    raise typer.Exit(code=1)


def load_snapshot(snapshot_file: Optional[Path]) -> Snapshot:
    """Load the snapshot named on the command line or in configuration."""
    source = str(snapshot_file) if snapshot_file else settings.get_snapshot_path()
    if not source:
        _fail("No snapshot given (pass a file or set WARD_SNAPSHOT_PATH)")
    try:
        snapshot = get_adapter(source).load(source)
    except SnapshotError as e:
        _fail(str(e))
    if snapshot.rejected_count:
        err_console.print(f"[yellow]⚠[/yellow] {snapshot.rejected_count} record(s) rejected during load")
    return snapshot


def build_query(
    unit: Optional[str],
    period: Optional[str],
    start: Optional[datetime],
    end: Optional[datetime],
    admission_type: str,
    shift_start: Optional[str],
    shift_end: Optional[str],
) -> DashboardQuery:
    """Translate command-line options into a dashboard query.

    Raises:
        InvalidArgumentError: If an option cannot be interpreted
    """
    if (shift_start is None) != (shift_end is None):
        raise InvalidArgumentError("--shift-start and --shift-end must be given together")
    try:
        return DashboardQuery(
            unit=Unit(unit) if unit else None,
            admission_type=AdmissionTypeFilter(admission_type),
            period=PeriodSelector.parse(
                period,
                start=start.date() if start else None,
                end=end.date() if end else None,
                first_day_of_week=settings.engine_config.first_day_of_week,
            ),
            shift=ShiftWindow.between(shift_start, shift_end) if shift_start else None,
        )
    except InvalidArgumentError:
        raise
    except ValueError as e:
        raise InvalidArgumentError(str(e)) from e


def create_engine() -> CohortAnalyticsEngine:
    return CohortAnalyticsEngine(settings.engine_config.to_engine_options())


def _query_or_exit(*args) -> DashboardQuery:
    try:
        return build_query(*args)
    except InvalidArgumentError as e:
        _fail(str(e))


@app.command()
def summary(
    snapshot_file: Optional[Path] = SnapshotArg,
    unit: Optional[str] = UnitOpt,
    period: Optional[str] = PeriodOpt,
    start: Optional[datetime] = StartOpt,
    end: Optional[datetime] = EndOpt,
    admission_type: str = AdmissionOpt,
    shift_start: Optional[str] = ShiftStartOpt,
    shift_end: Optional[str] = ShiftEndOpt,
    as_json: bool = JsonOpt,
    verbose: bool = VerboseOpt,
) -> None:
    """Outcome counts, rates and length of stay for a cohort.

    Examples:
        wardstats summary ward_export.json --unit NICU --period "This Month"
        wardstats summary ward_export.csv --period Custom --start 2024-03-01 --end 2024-03-31
    """
    _configure_logging(verbose)
    query = _query_or_exit(unit, period, start, end, admission_type, shift_start, shift_end)
    snapshot = load_snapshot(snapshot_file)
    result = create_engine().outcomes(snapshot.records, query)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    console.print(f"\n[bold blue]{unit or 'All units'}[/bold blue] - {query.period.label}")
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_row("Patients:", f"[bold]{result.counts.total:,}[/bold]")
    table.add_row("In progress:", f"{result.counts.in_progress:,} ({result.rates.in_progress_rate}%)")
    table.add_row("Discharged:", f"[green]{result.counts.discharged:,}[/green] ({result.rates.discharge_rate}%)")
    table.add_row("Referred:", f"{result.counts.referred:,} ({result.rates.referral_rate}%)")
    table.add_row("Step down:", f"{result.counts.step_down:,} ({result.rates.step_down_rate}%)")
    table.add_row("Deceased:", f"[red]{result.counts.deceased:,}[/red] ({result.rates.mortality_rate}%)")
    table.add_row("Mean stay:", f"{result.length_of_stay.mean} days")
    table.add_row("Median stay:", f"{result.length_of_stay.median} days")
    console.print(table)
    if not result.quality.is_clean:
        console.print(f"[yellow]⚠[/yellow] {result.quality.issue_count} record(s) with date issues")


@app.command()
def distribution(
    dimension: str = typer.Argument(..., help=f"One of: {', '.join(d.value for d in Dimension)}"),
    snapshot_file: Optional[Path] = SnapshotArg,
    top_n: Optional[int] = typer.Option(None, "--top", "-n", min=1, help="Keep only the N largest groups"),
    unit: Optional[str] = UnitOpt,
    period: Optional[str] = PeriodOpt,
    start: Optional[datetime] = StartOpt,
    end: Optional[datetime] = EndOpt,
    admission_type: str = AdmissionOpt,
    shift_start: Optional[str] = ShiftStartOpt,
    shift_end: Optional[str] = ShiftEndOpt,
    as_json: bool = JsonOpt,
    verbose: bool = VerboseOpt,
) -> None:
    """Breakdown of a cohort along one dimension, with per-group mortality.

    Examples:
        wardstats distribution diagnosis ward_export.json --top 5
        wardstats distribution birth_weight ward_export.json --unit NICU
    """
    _configure_logging(verbose)
    query = _query_or_exit(unit, period, start, end, admission_type, shift_start, shift_end)
    try:
        selected = Dimension(dimension.lower())
    except ValueError:
        _fail(f"Unknown dimension: {dimension}. Supported: {', '.join(d.value for d in Dimension)}")
    snapshot = load_snapshot(snapshot_file)
    result = create_engine().distribution(snapshot.records, query, selected, top_n=top_n)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    table = Table(show_header=True, header_style="bold", title=f"{selected.value} ({result.total} records)")
    table.add_column("Group", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Deaths", justify="right")
    table.add_column("Mortality", justify="right")
    for group in result.groups:
        table.add_row(group.name, f"{group.total:,}", f"{group.deceased:,}", f"{group.mortality_rate}%")
    console.print(table)
    if result.truncated:
        console.print("[dim]Smaller groups omitted[/dim]")


@app.command()
def risk(
    snapshot_file: Optional[Path] = SnapshotArg,
    unit: Optional[str] = UnitOpt,
    admission_type: str = AdmissionOpt,
    show_members: bool = typer.Option(False, "--members", "-m", help="List the patients in each tier"),
    as_json: bool = JsonOpt,
    verbose: bool = VerboseOpt,
) -> None:
    """Risk tiers of the patients currently on the ward.

    Examples:
        wardstats risk ward_export.json --unit NICU --members
    """
    _configure_logging(verbose)
    query = _query_or_exit(unit, None, None, None, admission_type, None, None)
    snapshot = load_snapshot(snapshot_file)
    result = create_engine().risk(snapshot.records, query)

    if as_json:
        typer.echo(json.dumps({
            "total": result.total,
            "counts": {tier.value: count for tier, count in result.tier_counts.items()},
            "members": {
                tier.value: [record.id for record in records]
                for tier, records in result.tier_members.items()
            },
        }, indent=2))
        return

    table = Table(show_header=True, header_style="bold", title=f"Active patients: {result.total}")
    table.add_column("Tier", style="cyan")
    table.add_column("Patients", justify="right")
    for tier, count in result.tier_counts.items():
        table.add_row(tier.value, f"{count:,}")
    console.print(table)

    if show_members:
        for assessment in result.assessments:
            console.print(
                f"  {assessment.tier.value:<6} {assessment.record.id}  "
                f"[dim]{', '.join(assessment.factors) or '-'}[/dim]"
            )


@app.command()
def census(
    snapshot_file: Optional[Path] = SnapshotArg,
    granularity: str = typer.Option("day", "--granularity", "-g", help="day, month or hour"),
    last_n: Optional[int] = typer.Option(None, "--last", "-l", min=1, help="Show only the most recent N buckets"),
    unit: Optional[str] = UnitOpt,
    period: Optional[str] = PeriodOpt,
    start: Optional[datetime] = StartOpt,
    end: Optional[datetime] = EndOpt,
    admission_type: str = AdmissionOpt,
    as_json: bool = JsonOpt,
    verbose: bool = VerboseOpt,
) -> None:
    """Admissions, discharges, deaths and running census over time.

    Examples:
        wardstats census ward_export.json --last 30
        wardstats census ward_export.json --granularity month
    """
    _configure_logging(verbose)
    query = _query_or_exit(unit, period, start, end, admission_type, None, None)
    snapshot = load_snapshot(snapshot_file)
    try:
        result = create_engine().time_series(snapshot.records, query, granularity, truncate_to_last_n=last_n)
    except InvalidArgumentError as e:
        _fail(str(e))

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column(result.granularity.value.title(), style="cyan")
    table.add_column("Admissions", justify="right")
    table.add_column("Discharges", justify="right")
    table.add_column("Deaths", justify="right")
    table.add_column("Census", justify="right")
    for point in result.points:
        table.add_row(
            point.bucket,
            str(point.admissions),
            str(point.discharges),
            str(point.deaths),
            f"[bold]{point.census}[/bold]",
        )
    console.print(table)


@app.command()
def info() -> None:
    """Display configuration."""
    config = settings.engine_config
    console.print("[bold blue]Configuration[/bold blue]\n")

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", settings.app_name)
    info_table.add_row("Time zone:", config.timezone or "system local")
    info_table.add_row("First day of week:", str(config.first_day_of_week))
    info_table.add_row("Top N:", str(config.top_n))
    info_table.add_row("Census window:", f"{config.census_window} days")
    info_table.add_row("Units:", ", ".join(unit.value for unit in config.enabled_units))
    info_table.add_row("Snapshot:", config.snapshot_path or "-")

    console.print(info_table)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version information")
) -> None:
    """Ward-Census: cohort analytics for hospital ward dashboards."""
    if version:
        console.print(f"Ward-Census v{APP_VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
