#!/usr/bin/env python3
"""CLI for the college attendance tracker.

Commands:
    init-db      Create or reset the database
    add-student  Register a student for attendance checks
    parse        Parse a cached attendance page (record parser)
    extract      Run the multi-pattern extractor on a saved page
    calc         Sufficiency maths for a total/attended pair
    check        Full check of a saved page: parse, store, summarize
    scrape       Load the live attendance page and check it
    history      Show a student's check history
    status       Show database status and student overview
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from current directory if available
load_dotenv()

import click  # noqa: E402
from rich.console import Console  # noqa: E402
from rich.panel import Panel  # noqa: E402
from rich.table import Table  # noqa: E402

from src.attendance.calculator import DEFAULT_REQUIRED_PERCENTAGE, AttendanceCalculator  # noqa: E402
from src.attendance.models import SubjectAttendance, status_tier_for  # noqa: E402
from src.attendance.report import (  # noqa: E402
    analyze_subjects,
    format_attendance_summary,
    format_subject_lines,
    generate_alerts,
    generate_recommendations,
)
from src.attendance.service import AttendanceService, CheckResult  # noqa: E402
from src.database.connection import DB_PATH, init_database, verify_database  # noqa: E402
from src.database.models import Student  # noqa: E402
from src.database.repository import Repository  # noqa: E402
from src.scraper.errors import ParseStructureInvalid  # noqa: E402
from src.scraper.parsers.attendance import parse_attendance_html  # noqa: E402
from src.scraper.parsers.extractor import STRATEGIES, run_strategies  # noqa: E402

console = Console()

STATUS_STYLES = {"safe": "green", "warning": "yellow", "critical": "red"}


def _db_path(ctx: click.Context) -> Path:
    return ctx.obj["db_path"]


def _read_html(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")


@click.group()
@click.version_option(version="0.1.0", prog_name="attendance")
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Database file (default: DATABASE_PATH or attendance.db)",
)
@click.pass_context
def cli(ctx: click.Context, db_path: Optional[Path]):
    """College attendance tracker - extract, calculate and store attendance."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path or DB_PATH


@cli.command()
@click.option("--force", is_flag=True, help="Force reset existing database")
@click.pass_context
def init_db(ctx: click.Context, force: bool):
    """Initialize or reset the database."""
    db_path = _db_path(ctx)
    if db_path.exists() and not force:
        if not click.confirm("Database exists. Reset it?", default=False):
            console.print("[yellow]Aborted.[/yellow]")
            return
        force = True

    console.print("[blue]Initializing database...[/blue]")
    init_database(db_path, force=force)
    info = verify_database(db_path)

    console.print("[green]✓ Database initialized[/green]")
    console.print(f"  Tables: {', '.join(info.get('tables', []))}")


@cli.command("add-student")
@click.argument("student_id")
@click.option("--name", "-n", help="Display name used in reports")
@click.option("--inactive", is_flag=True, help="Register without enabling checks")
@click.pass_context
def add_student(ctx: click.Context, student_id: str, name: Optional[str], inactive: bool):
    """Register or update a student."""
    repo = Repository(_db_path(ctx))
    repo.upsert_student(student_id, name=name, is_active=not inactive)
    console.print(f"[green]✓ Student {student_id} saved[/green]")


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--required", "-r", default=DEFAULT_REQUIRED_PERCENTAGE, show_default=True, type=float)
def parse(html_file: str, required: float):
    """Parse a cached attendance page with the record parser."""
    try:
        parsed = parse_attendance_html(_read_html(html_file))
    except ParseStructureInvalid as e:
        console.print(f"[red]Parse failed: {e}[/red]")
        sys.exit(1)

    table = Table(title="Subject Attendance")
    table.add_column("#", justify="right")
    table.add_column("Code")
    table.add_column("Attended", justify="right")
    table.add_column("Conducted", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Status")

    for subject in parsed.subjects:
        detail = subject.detailed_status
        table.add_row(
            str(subject.serial_no),
            subject.subject_code,
            str(subject.classes_attended),
            str(subject.total_conducted),
            f"{subject.attendance_percent:.2f}",
            f"[{detail.color}]{detail.display_status}[/{detail.color}]",
        )

    console.print(table)
    summary = parsed.summary
    console.print(
        f"\n[bold]Overall: {summary.overall_percentage:.2f}%[/bold] "
        f"({summary.total_classes_attended}/{summary.total_classes_conducted} classes, "
        f"{summary.total_subjects} subjects)"
    )
    if parsed.timetable:
        console.print(f"Timetable: {len(parsed.timetable)} day(s)")

    subjects = [
        SubjectAttendance.create(
            code=s.subject_code,
            classes_conducted=s.total_conducted,
            classes_attended=s.classes_attended,
            percentage=s.attendance_percent,
        )
        for s in parsed.subjects
    ]
    for alert in generate_alerts(subjects, required):
        style = "red" if alert.type == "danger" else "yellow"
        console.print(f"[{style}]⚠ {alert.message}[/{style}]")
    for recommendation in generate_recommendations(analyze_subjects(subjects, required), required):
        console.print(f"  → {recommendation.message}")


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False))
def extract(html_file: str):
    """Run the multi-pattern extractor on a saved page."""
    pattern, subjects = run_strategies(_read_html(html_file))

    if not subjects:
        console.print(f"[red]No attendance data found ({len(STRATEGIES)} patterns tried)[/red]")
        sys.exit(1)

    table = Table(title=f"Extracted via {pattern}")
    table.add_column("Subject")
    table.add_column("%", justify="right")
    table.add_column("Attended", justify="right")
    table.add_column("Conducted", justify="right")

    for subject in subjects:
        table.add_row(
            subject.name,
            f"{subject.percentage:.2f}",
            "-" if subject.attended is None else str(subject.attended),
            "-" if subject.conducted is None else str(subject.conducted),
        )
    console.print(table)


@cli.command()
@click.argument("total", type=click.IntRange(min=0))
@click.argument("attended", type=click.IntRange(min=0))
@click.option("--required", "-r", default=DEFAULT_REQUIRED_PERCENTAGE, show_default=True, type=float)
def calc(total: int, attended: int, required: float):
    """Sufficiency for TOTAL conducted and ATTENDED classes."""
    report = AttendanceCalculator(total, attended, required).get_report()

    table = Table(show_header=False)
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    table.add_row("Attended / Total", f"{report.attended_classes} / {report.total_classes}")
    table.add_row("Missed", str(report.missed_classes))
    table.add_row("Current", f"{report.current_percentage:.2f}%")
    table.add_row("Required", f"{report.required_percentage:g}%")
    table.add_row("Status", report.status)
    if report.is_sufficient:
        table.add_row("Can miss", str(report.classes_can_miss))
    elif report.classes_need_to_attend is None:
        table.add_row("Need to attend", "unreachable")
    else:
        table.add_row("Need to attend", str(report.classes_need_to_attend))
    console.print(table)


def _print_result(result: CheckResult, student_name: Optional[str], required: float) -> None:
    if not result.success:
        console.print(f"[red]Check failed: {result.error}[/red]")
        console.print(f"  Error record #{result.record_id} saved")
        return

    console.print(Panel(format_attendance_summary(student_name, result.snapshot, result.overall_projection)))
    for line in format_subject_lines(result.snapshot, required):
        console.print(f"  {line}")
    console.print(f"\n[dim]Record #{result.record_id} ({result.snapshot.extraction_pattern})[/dim]")


@cli.command()
@click.option("--student", "-s", required=True, help="Student ID")
@click.option("--html", "html_file", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--parser",
    type=click.Choice(["extractor", "html"]),
    default="extractor",
    show_default=True,
    help="extractor: multi-pattern page extractor; html: cached record parser",
)
@click.option("--required", "-r", default=DEFAULT_REQUIRED_PERCENTAGE, show_default=True, type=float)
@click.pass_context
def check(ctx: click.Context, student: str, html_file: str, parser: str, required: float):
    """Check a saved attendance page and store the result."""
    repo = Repository(_db_path(ctx))
    service = AttendanceService(repo, required_percentage=required)
    known = repo.get_student(student)
    name = known["name"] if known else None

    html = _read_html(html_file)
    if parser == "html":
        result = service.check_from_html(student, html, student_name=name)
    else:
        result = service.check_from_page(student, html, student_name=name)

    _print_result(result, name, required)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.option("--student", "-s", required=True, help="Student ID")
@click.pass_context
def scrape(ctx: click.Context, student: str):
    """Load the live attendance page (saved portal session) and check it."""
    from src.scraper.config import PortalConfig
    from src.scraper.core import PortalScraper

    try:
        config = PortalConfig.from_env()
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)

    async def fetch() -> tuple[str, dict[str, str]]:
        async with PortalScraper(config) as scraper:
            names = await scraper.fetch_subject_names()
            html = await scraper.fetch_attendance_html()
            return html, names

    repo = Repository(_db_path(ctx))
    known = repo.get_student(student)
    name = known["name"] if known else None
    service = AttendanceService(repo, required_percentage=config.required_percentage)

    console.print("[blue]Loading attendance page...[/blue]")
    try:
        html, names = asyncio.run(fetch())
    except Exception as e:
        result = service.record_fetch_failure(student, e)
    else:
        result = service.check_from_page(student, html, student_name=name, names=names)

    _print_result(result, name, config.required_percentage)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.option("--student", "-s", required=True, help="Student ID")
@click.option("--limit", "-l", default=30, show_default=True, type=click.IntRange(min=1))
@click.pass_context
def history(ctx: click.Context, student: str, limit: int):
    """Show a student's recent attendance checks."""
    records = Repository(_db_path(ctx)).get_attendance_history(student, limit)

    if not records:
        console.print(f"[yellow]No attendance history for {student}[/yellow]")
        return

    table = Table(title=f"Attendance History - {student}")
    table.add_column("Date")
    table.add_column("Status")
    table.add_column("Overall", justify="right")
    table.add_column("Weighted", justify="right")
    table.add_column("Classes", justify="right")
    table.add_column("Pattern")
    table.add_column("Notified", justify="center")

    for record in records:
        if record["status"] == "error":
            table.add_row(
                record["recorded_at"][:16],
                "[red]error[/red]",
                "-",
                "-",
                "-",
                record["error_message"] or "",
                "",
            )
            continue
        table.add_row(
            record["recorded_at"][:16],
            "[green]success[/green]",
            f"{record['overall_percentage']:.2f}%",
            f"{record['weighted_percentage']:.2f}%",
            f"{record['total_attended']}/{record['total_classes']}",
            record["extraction_pattern"] or "",
            "✓" if record["notification_sent"] else "",
        )

    console.print(table)


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Show database status and student overview."""
    db_path = _db_path(ctx)
    info = verify_database(db_path)

    if not info.get("exists"):
        console.print("[red]Database not found. Run 'attendance init-db' first.[/red]")
        return

    console.print(Panel("[bold]Database Status[/bold]"))
    table = Table(show_header=False)
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    table.add_row("Path", info.get("path", ""))
    for name, count in info.get("row_counts", {}).items():
        table.add_row(name, str(count))
    console.print(table)

    repo = Repository(db_path)
    students = repo.get_students(active_only=False)
    if not students:
        return

    console.print("\n[bold]Students[/bold]")
    for row in students:
        student = Student(**row)
        latest = repo.get_latest_attendance(student.student_id)
        label = student.display_name
        if not student.is_active:
            label += " [dim](inactive)[/dim]"
        if latest:
            style = STATUS_STYLES[status_tier_for(latest["overall_percentage"]).value]
            console.print(
                f"  • {label}: [{style}]{latest['overall_percentage']:.2f}%[/{style}] "
                f"(checked {latest['recorded_at'][:16]})"
            )
        else:
            console.print(f"  • {label}: [dim]no successful check yet[/dim]")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
