"""Command-line interface for spend sentinel."""

import argparse
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from spend_sentinel import __version__
from spend_sentinel.config import Config, ConfigError, load_config
from spend_sentinel.models.alert import Alert
from spend_sentinel.models.category import Category
from spend_sentinel.models.record import PaymentMode, RawRecord, Record, RiskLevel
from spend_sentinel.models.report import InsightSummary
from spend_sentinel.parsers import CSVParser, ParseError, generate_sample_csv
from spend_sentinel.processing import SpendingEngine
from spend_sentinel.storage import AlertStateError, LocalStore, StorageError
from spend_sentinel.utils.date_utils import format_timestamp, parse_timestamp
from spend_sentinel.utils.decimal_utils import format_currency, parse_amount, to_float_amount
from spend_sentinel.utils.logging_config import get_logger, setup_logging

# Load environment variables from .env file (if it exists)
load_dotenv()

console = Console()
logger = get_logger(__name__)

RISK_STYLES = {
    RiskLevel.GREEN: "green",
    RiskLevel.AMBER: "yellow",
    RiskLevel.RED: "red",
}


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="spend-sentinel",
        description="Score personal expenses for risk and explain unusual spending",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s add --amount 450 --merchant Swiggy --mode UPI
  %(prog)s import expenses.csv
  %(prog)s alerts --unread
  %(prog)s summary --balance 12000
  %(prog)s export --format xlsx -o report.xlsx
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to settings.yaml (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=Path("config"),
        help="Configuration directory (default: config/)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Data directory (overrides settings and SPEND_SENTINEL_DATA_DIR)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    add = subparsers.add_parser("add", help="Add and score a single expense")
    add.add_argument("--amount", required=True, help="Amount spent")
    add.add_argument("--merchant", required=True, help="Merchant name")
    add.add_argument(
        "--mode",
        required=True,
        help="Payment mode (UPI, Cash, Card, Subscription)",
    )
    add.add_argument(
        "--date",
        default=None,
        help="Timestamp, e.g. '2025-12-28 14:30' (default: now)",
    )
    add.add_argument("--category", default=None, help="Category (default: auto-detect)")
    add.add_argument("--note", default=None, help="Free-text note")

    imp = subparsers.add_parser("import", help="Import and score expenses from a CSV file")
    imp.add_argument("file", type=Path, help="CSV file to import")
    imp.add_argument(
        "--strict",
        action="store_true",
        help="Fail on the first invalid row instead of skipping it",
    )

    subparsers.add_parser(
        "rebuild",
        help="Rebuild the spending fingerprint and rescore every record",
    )

    alerts = subparsers.add_parser("alerts", help="List and manage risk alerts")
    alerts.add_argument("--unread", action="store_true", help="Only unread alerts")
    alerts.add_argument("--all", action="store_true", help="Include dismissed alerts")
    alerts.add_argument(
        "--level",
        choices=[level.value for level in RiskLevel],
        default=None,
        help="Only alerts at this risk level",
    )
    alerts.add_argument("--mark-read", metavar="ID", default=None, help="Mark an alert read")
    alerts.add_argument("--dismiss", metavar="ID", default=None, help="Dismiss an alert")

    summary = subparsers.add_parser("summary", help="Show the spending summary")
    summary.add_argument(
        "--balance",
        default=None,
        help="Current balance for days-remaining and safe-to-spend figures",
    )

    export = subparsers.add_parser("export", help="Export records, alerts and summary")
    export.add_argument(
        "--format",
        choices=["csv", "xlsx"],
        default="csv",
        help="Output format (default: csv)",
    )
    export.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output directory for csv or file path for xlsx "
        "(default: exports/YYYYMMDD_HHMMSS)",
    )
    export.add_argument("--balance", default=None, help="Balance for the summary figures")

    sample = subparsers.add_parser("sample-csv", help="Write a sample import CSV")
    sample.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="File to write (default: print to stdout)",
    )

    subparsers.add_parser("validate-config", help="Validate configuration files and exit")

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level.

    Args:
        verbosity: Number of -v flags.

    Returns:
        Log level string.
    """
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def generate_default_export_path(fmt: str) -> Path:
    """Generate default export path with timestamp.

    Returns:
        exports/YYYYMMDD_HHMMSS for csv, exports/YYYYMMDD_HHMMSS/report.xlsx for xlsx.
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base = Path(f"exports/{timestamp}")
    return base / "report.xlsx" if fmt == "xlsx" else base


def validate_output_path(path: Path, base_dir: Path | None = None) -> Path:
    """Validate that output path is within allowed directory.

    Args:
        path: The path to validate.
        base_dir: Base directory to constrain paths within (default: cwd).

    Returns:
        The resolved, validated path.

    Raises:
        ValueError: If the path escapes the allowed directory.
    """
    if base_dir is None:
        base_dir = Path.cwd()

    resolved_base = base_dir.resolve()
    resolved_path = (base_dir / path).resolve()

    try:
        resolved_path.relative_to(resolved_base)
    except ValueError:
        raise ValueError(
            f"Invalid path: '{path}' escapes the allowed directory. "
            f"Paths must be within '{resolved_base}'"
        ) from None

    return resolved_path


def parse_balance(raw: str | None) -> float | None:
    if raw is None:
        return None
    return to_float_amount(parse_amount(raw))


def create_progress() -> Progress:
    """Create a progress display.

    Returns:
        Rich Progress instance.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
    )


def money(amount: float, config: Config) -> str:
    return format_currency(amount, config.output.currency_symbol, config.output.decimal_places)


def display_record(record: Record, config: Config) -> None:
    """Print one scored record with its risk level and reasons."""
    style = RISK_STYLES[record.risk_level]
    console.print(
        f"[{style}]{record.risk_level.value.upper()}[/{style}] "
        f"{record.merchant} {money(record.amount, config)} "
        f"({record.category.value}, score {record.risk_score:.2f})"
    )
    if record.risk_reason:
        console.print(f"  [dim]{record.risk_reason}[/dim]")


def display_alerts(alerts: list[Alert], records: list[Record], config: Config) -> None:
    """Print alerts as a table."""
    if not alerts:
        console.print("[green]No alerts.[/green]")
        return

    by_id = {r.id: r for r in records}
    table = Table(title=f"Alerts ({len(alerts)})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Detected", no_wrap=True)
    table.add_column("Level")
    table.add_column("Type")
    table.add_column("Merchant")
    table.add_column("Amount", justify="right")
    table.add_column("Reason")

    for alert in alerts:
        record = by_id.get(alert.record_id)
        style = RISK_STYLES[alert.risk_level]
        status = "" if alert.is_read else " *"
        table.add_row(
            alert.id[:8],
            format_timestamp(alert.detected_at, config.output.date_format),
            f"[{style}]{alert.risk_level.value}[/{style}]{status}",
            alert.alert_type.title,
            record.merchant if record else "?",
            money(record.amount, config) if record else "",
            alert.reason,
        )

    console.print(table)


def display_summary(summary: InsightSummary, config: Config) -> None:
    """Print the spending summary."""
    table = Table(title="Spending by category")
    table.add_column("Category")
    table.add_column("Total", justify="right")
    for category, total in sorted(
        summary.category_spending.items(), key=lambda item: item[1], reverse=True
    ):
        table.add_row(category.value, money(total, config))
    table.add_row("[bold]Total[/bold]", f"[bold]{money(summary.total_spend, config)}[/bold]")
    console.print(table)

    console.print("\n[bold]Burn rate[/bold]")
    console.print(f"  Last 7 days: {money(summary.weekly_spend, config)}")
    console.print(f"  Last 30 days: {money(summary.monthly_spend, config)}")
    console.print(f"  Daily burn rate: {money(summary.daily_burn_rate, config)}")
    if summary.days_remaining is not None:
        console.print(f"  Days remaining: {summary.days_remaining}")

    console.print("\n[bold]Subscriptions[/bold]")
    console.print(
        f"  Monthly recurring: {money(summary.total_subscriptions, config)} "
        f"(≈ {summary.meal_equivalent} meals)"
    )
    if summary.safe_to_spend is not None:
        console.print(f"  Safe to spend: {money(summary.safe_to_spend, config)}")


def resolve_alert_id(store: LocalStore, prefix: str) -> str:
    """Expand a (possibly shortened) alert id to the full id.

    Raises:
        AlertStateError: If no alert or more than one alert matches.
    """
    matches = [a.id for a in store.list_alerts(include_dismissed=True) if a.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise AlertStateError(f"Unknown alert id: {prefix}")
    raise AlertStateError(f"Alert id '{prefix}' is ambiguous ({len(matches)} matches)")


def carry_alert_state(previous: list[Alert], regenerated: list[Alert]) -> list[Alert]:
    """Keep read and dismissed flags for alerts that survive a rescore."""
    state = {(a.record_id, a.alert_type): a for a in previous}
    for alert in regenerated:
        old = state.get((alert.record_id, alert.alert_type))
        if old is None:
            continue
        if old.is_read:
            alert.mark_read()
        if old.is_dismissed:
            alert.dismiss()
    return regenerated


def add_command(args: argparse.Namespace, config: Config, store: LocalStore) -> int:
    """Score a single expense and store it."""
    raw = RawRecord(
        amount=to_float_amount(parse_amount(args.amount)),
        merchant=args.merchant.strip(),
        timestamp=parse_timestamp(args.date) if args.date else datetime.now(),
        payment_mode=PaymentMode.parse(args.mode),
        category=Category.parse(args.category) if args.category else None,
        note=args.note,
    )
    if not raw.merchant:
        raise ValueError("Merchant must not be empty")

    engine = SpendingEngine(config)
    result = engine.process_record(raw, store.load_fingerprint(), store.list_records())

    store.add_records([result.record])
    store.save_fingerprint(result.fingerprint)
    store.add_alerts(result.alerts)

    display_record(result.record, config)
    for alert in result.alerts:
        console.print(f"[bold]{alert.alert_type.title}:[/bold] {alert.reason}")
        console.print(f"  [dim]{alert.suggested_action}[/dim]")
    return 0


def import_command(args: argparse.Namespace, config: Config, store: LocalStore) -> int:
    """Import a CSV file through the batch pipeline."""
    parser = CSVParser(strict=args.strict)
    raw_records = parser.parse(args.file)

    if parser.row_errors:
        console.print(f"[yellow]Skipped {len(parser.row_errors)} invalid rows:[/yellow]")
        for error in parser.row_errors[:10]:
            console.print(f"  - {error}")
        if len(parser.row_errors) > 10:
            console.print(f"  ... and {len(parser.row_errors) - 10} more")

    if not raw_records:
        console.print("[yellow]No valid rows to import.[/yellow]")
        return 0

    engine = SpendingEngine(config)
    with create_progress() as progress:
        task = progress.add_task("Scoring expenses...", total=len(raw_records))
        result = engine.batch_process(
            raw_records,
            store.load_fingerprint(),
            on_progress=lambda done, total: progress.update(task, completed=done),
        )

    store.add_records(result.records)
    store.save_fingerprint(result.fingerprint)
    store.add_alerts(result.alerts)

    console.print(
        f"[green]Imported {len(result.records)} expenses[/green] "
        f"({result.flagged_count} flagged, {len(result.alerts)} alerts)"
    )
    return 0


def rebuild_command(args: argparse.Namespace, config: Config, store: LocalStore) -> int:
    """Recalibrate the fingerprint from all stored records."""
    records = store.list_records()
    engine = SpendingEngine(config)
    result = engine.rebuild_and_rescore(records)

    previous = store.list_alerts(include_dismissed=True)
    alerts = carry_alert_state(previous, result.alerts)

    store.replace_records(result.records)
    store.save_fingerprint(result.fingerprint)
    store.replace_alerts(alerts)

    fp = result.fingerprint
    console.print(f"[green]Rebuilt fingerprint from {fp.total_transactions} records[/green]")
    console.print(f"  Weekly burn rate: {money(fp.weekly_burn_rate, config)}")
    console.print(f"  Recurring costs: {len(fp.recurring_costs)}")
    console.print(f"  Risk tolerance: {fp.risk_tolerance:.1f}")
    console.print(f"  Flagged records: {result.flagged_count}")
    return 0


def alerts_command(args: argparse.Namespace, config: Config, store: LocalStore) -> int:
    """List alerts or change an alert's state."""
    if args.mark_read:
        alert = store.mark_alert_read(resolve_alert_id(store, args.mark_read))
        console.print(f"[green]Marked alert {alert.id[:8]} as read[/green]")
        return 0

    if args.dismiss:
        alert = store.dismiss_alert(resolve_alert_id(store, args.dismiss))
        console.print(f"[green]Dismissed alert {alert.id[:8]}[/green]")
        return 0

    alerts = store.list_alerts(
        unread_only=args.unread,
        include_dismissed=args.all,
        risk_level=RiskLevel(args.level) if args.level else None,
    )
    display_alerts(alerts, store.list_records(), config)

    counts = store.alert_counts_by_level()
    if counts:
        parts = [f"{level.value}: {counts[level]}" for level in RiskLevel if level in counts]
        console.print(f"[dim]Open alerts by level - {', '.join(parts)}[/dim]")
    return 0


def summary_command(args: argparse.Namespace, config: Config, store: LocalStore) -> int:
    engine = SpendingEngine(config)
    summary = engine.summarize(
        store.list_records(), store.load_fingerprint(), parse_balance(args.balance)
    )
    display_summary(summary, config)
    return 0


def export_command(args: argparse.Namespace, config: Config, store: LocalStore) -> int:
    """Export stored data to CSV files or an Excel workbook."""
    from spend_sentinel.output import CSVExporter, ExcelWriter

    output = args.output or generate_default_export_path(args.format)
    output = validate_output_path(output)

    records = store.list_records()
    alerts = store.list_alerts(include_dismissed=True)
    summary = SpendingEngine(config).summarize(
        records, store.load_fingerprint(), parse_balance(args.balance)
    )

    if args.format == "xlsx":
        ExcelWriter(config).write(output, records, alerts, summary)
        console.print(f"[green]Workbook written to {output}[/green]")
    else:
        created = CSVExporter(config).export(output, records, alerts, summary)
        console.print(f"[green]Exported {len(created)} CSV files to {output}[/green]")
    return 0


def sample_csv_command(args: argparse.Namespace) -> int:
    content = generate_sample_csv()
    if args.output is None:
        sys.stdout.write(content)
        return 0

    output = validate_output_path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    console.print(f"[green]Sample CSV written to {output}[/green]")
    return 0


def validate_config(args: argparse.Namespace) -> int:
    """Validate configuration files.

    Args:
        args: Parsed command-line arguments.

    Returns:
        0 if valid, 1 if errors found.
    """
    console.print("[bold]Validating configuration files...[/bold]\n")

    errors = []
    warnings = []

    config_dir = args.config_dir
    if not config_dir.exists():
        warnings.append(f"Config directory not found: {config_dir}")

    settings_path = args.config or (config_dir / "settings.yaml")
    if settings_path.exists():
        console.print(f"[green]✓[/green] Settings: {settings_path}")
    else:
        warnings.append(f"Settings file not found: {settings_path}")

    try:
        config = load_config(settings_path=args.config, config_dir=config_dir)
        console.print("\n[green]✓[/green] Configuration loaded successfully")
        console.print(f"  - data directory: {config.storage.data_dir}")
        console.print(
            f"  - {sum(len(k) for k in config.categories.keywords.values())} category keywords"
        )
        console.print(f"  - currency symbol: {config.output.currency_symbol}")
    except (ConfigError, ValueError, OSError) as e:
        errors.append(f"Failed to load configuration: {e}")

    if warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for w in warnings:
            console.print(f"  - {w}")

    if errors:
        console.print("\n[red]Errors:[/red]")
        for err in errors:
            console.print(f"  - {err}")
        return 1

    console.print("\n[green]Configuration is valid.[/green]")
    return 0


COMMANDS = {
    "add": add_command,
    "import": import_command,
    "rebuild": rebuild_command,
    "alerts": alerts_command,
    "summary": summary_command,
    "export": export_command,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = get_log_level(args.verbose)
    setup_logging(level=log_level, console_output=args.verbose > 0)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "validate-config":
        return validate_config(args)

    if args.command == "sample-csv":
        try:
            return sample_csv_command(args)
        except (ValueError, OSError) as e:
            console.print(f"[red]Error: {e}[/red]")
            return 1

    try:
        config = load_config(settings_path=args.config, config_dir=args.config_dir)
    except (ConfigError, ValueError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("Run 'spend-sentinel validate-config' to check configuration files.")
        return 1

    if args.verbose == 0:
        setup_logging(level=config.logging.level, log_file=config.logging.file, console_output=False)

    if args.data_dir is not None:
        config.storage.data_dir = args.data_dir
    store = LocalStore(config.storage.data_dir)

    try:
        return COMMANDS[args.command](args, config, store)
    except (ParseError, StorageError, AlertStateError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
