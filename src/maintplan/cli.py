"""Command-line interface for maintplan."""

from __future__ import annotations

import csv
from datetime import date
from pathlib import Path
from typing import Annotated

import typer

from .config import SchedulerConfig, discover_config
from .costing import estimate_spares_cost
from .exceptions import MaintplanError
from .loader import PlanDocument, load_plan_document
from .logger import setup_logger
from .scheduler.service import PlanningResult, PlanningService
from .validator import ValidationVerdict

app = typer.Typer(
    name="maintplan",
    help="Maintenance plan scheduling - place tasks on a work calendar and check readiness",
    add_completion=False,
)

_TIME_FORMAT = "%Y-%m-%d %H:%M"


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to config file (default: maintplan_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for maintplan commands."""
    setup_logger(verbose)
    ctx.ensure_object(dict)["config_path"] = config


def _load(ctx: typer.Context, file: Path) -> tuple[PlanDocument, SchedulerConfig]:
    """Load the configuration and the plan document, exiting on error.

    An explicit ``--config`` given to the top-level command wins over discovery.
    """
    explicit = ctx.ensure_object(dict).get("config_path")
    try:
        config = discover_config(file, explicit).scheduler
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(1) from None

    try:
        document = load_plan_document(file, config)
    except MaintplanError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    return document, config


def _parse_date_option(date_str: str | None, option_name: str) -> date | None:
    """Parse a YYYY-MM-DD date given on the command line."""
    if date_str is None:
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        typer.echo(
            f"Error: Invalid {option_name} '{date_str}'. Use YYYY-MM-DD format.",
            err=True,
        )
        raise typer.Exit(1) from None


def _show_warnings(result: PlanningResult) -> None:
    if result.warnings:
        typer.echo("\nWarnings:", err=True)
        for warning in result.warnings:
            typer.echo(f"  - {warning}", err=True)


@app.command()
def schedule(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Path to the plan YAML file")] = Path("plan.yaml"),
    output_csv: Annotated[
        Path | None,
        typer.Option("--output-csv", help="Export the schedule to a CSV file"),
    ] = None,
) -> None:
    """Schedule the tasks of a plan and display the timeline."""
    document, config = _load(ctx, file)
    result = PlanningService(document, config).run()

    if output_csv:
        _export_schedule_csv(result, output_csv)
        typer.echo(f"Schedule exported to {output_csv}")
    else:
        _display_schedule(document, result)

    _show_warnings(result)


def _display_schedule(document: PlanDocument, result: PlanningResult) -> None:
    plan = document.plan
    typer.echo(f"Schedule for {plan.plan_id} {plan.name}".rstrip())
    typer.echo("=" * 80)
    typer.echo(
        f"Window: {plan.plan_start:{_TIME_FORMAT}} to {plan.plan_end:{_TIME_FORMAT}} "
        f"(work {plan.work_start_time}-{plan.work_end_time})"
    )
    typer.echo("")

    for st in result.scheduled_tasks:
        marker = "*" if st.id in result.critical_path or st.task.is_critical else " "
        assignees = ", ".join(a.name for a in st.assigned_to) or "unassigned"
        typer.echo(
            f"{marker} {st.gantt_start:{_TIME_FORMAT}} -> {st.gantt_end:{_TIME_FORMAT}}  "
            f"{st.task.task_id}  {st.task.task_name}  [{assignees}]"
        )

    typer.echo("")
    typer.echo("* on the critical path")


def _export_schedule_csv(result: PlanningResult, output_path: Path) -> None:
    """Export the placements to CSV."""
    with output_path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "id",
                "task_id",
                "task_name",
                "start",
                "end",
                "preceding_task_id",
                "assigned_to",
                "is_safety_task",
                "critical",
            ]
        )
        for st in result.scheduled_tasks:
            writer.writerow(
                [
                    st.id,
                    st.task.task_id,
                    st.task.task_name,
                    st.gantt_start.isoformat(),
                    st.gantt_end.isoformat(),
                    st.preceding_task_id or "",
                    ";".join(a.uid for a in st.assigned_to),
                    st.task.is_safety_task,
                    st.id in result.critical_path,
                ]
            )


@app.command()
def validate(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Path to the plan YAML file")] = Path("plan.yaml"),
    today: Annotated[
        str | None,
        typer.Option("--today", help="Reference date for spares delivery (YYYY-MM-DD)"),
    ] = None,
) -> None:
    """Check whether a plan is ready to be committed.

    Exits with status 1 when the plan cannot be committed.
    """
    parsed_today = _parse_date_option(today, "today")
    document, config = _load(ctx, file)
    result = PlanningService(document, config, parsed_today).run()

    _display_verdict(result.verdict)
    _show_warnings(result)

    if not result.verdict.can_commit:
        raise typer.Exit(1)


def _display_verdict(verdict: ValidationVerdict) -> None:
    checks = [
        ("Plan dates", verdict.dates_valid),
        ("Work orders linked", verdict.has_work_orders),
        ("Spares in stock (warning only)", verdict.spares_stock_valid),
        ("Spares delivered in time", verdict.spares_delay_valid),
        ("No double-booked resources", not verdict.resource_overlap),
        ("No overloaded resources", not verdict.resource_overloaded),
        ("External services confirmed", verdict.services_valid),
        ("Risks reduced to tolerable", verdict.safety_valid),
        ("Plan not yet committed", not verdict.is_committed),
    ]
    typer.echo("Readiness Checklist")
    typer.echo("=" * 80)
    for label, ok in checks:
        typer.echo(f"  [{'OK' if ok else '!!'}] {label}")

    if verdict.issues:
        typer.echo("")
        typer.echo("Issues:")
        for issue in verdict.issues:
            typer.echo(f"  - {issue}")

    typer.echo("")
    typer.echo(f"Can commit: {'yes' if verdict.can_commit else 'no'}")


@app.command()
def resources(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Path to the plan YAML file")] = Path("plan.yaml"),
) -> None:
    """Show per-resource loading and double allocation."""
    document, config = _load(ctx, file)
    result = PlanningService(document, config).run()

    typer.echo("Resource Loading")
    typer.echo("=" * 80)
    typer.echo("")
    for load in result.resources:
        typer.echo(f"{load.name} ({load.uid})")
        typer.echo(
            f"  Assigned: {load.assigned_hours:g}h of {load.capacity_hours:g}h "
            f"({load.utilisation:.0%})"
        )
        if load.double_allocated:
            typer.echo("  DOUBLE ALLOCATED")
        for seg in load.segments:
            if seg.kind != "work":
                continue
            flag = " critical" if seg.critical else ""
            typer.echo(
                f"  {seg.start:{_TIME_FORMAT}} -> {seg.end:{_TIME_FORMAT}}  "
                f"{seg.count} task(s){flag}: {', '.join(seg.task_ids)}"
            )
        typer.echo("")

    _show_warnings(result)


@app.command()
def cost(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Path to the plan YAML file")] = Path("plan.yaml"),
) -> None:
    """Estimate the spares cost of a plan."""
    document, _ = _load(ctx, file)
    estimate = estimate_spares_cost(document.tasks, document.stock)

    typer.echo("Estimated Spares Cost")
    typer.echo("=" * 80)
    for line in estimate.lines:
        typer.echo(
            f"  {line.task_id:<12} {line.material_name:<30} "
            f"{line.quantity:g} {line.uom} x {line.unit_price:.2f} = {line.total:.2f}"
        )
    typer.echo("-" * 80)
    typer.echo(f"  Total: {estimate.total:.2f}")


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()
