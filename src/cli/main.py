"""Main CLI entry point using Typer."""

import logging
from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..catalog.aws import AWSResourceCatalog
from ..catalog.base import ResourceCatalog
from ..catalog.memory import InMemoryCatalog
from ..cleanup.engine import CleanupEngine
from ..cleanup.executor import CleanupExecutor
from ..errors import CatalogUnavailable, ConfigInvalid
from ..models.cleanup_report import RunMode, RunStatus
from ..models.resource import Environment, ResourceKind
from ..policy.rules import RuleSet
from ..reporting.reporter import CleanupReporter, format_bytes
from ..reporting.sinks import AuditSink, JsonFileSink, LoggingSink, ReportSink
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="awsclean",
    help="AWS Cleanup - retention policy enforcement for build and deploy artifacts",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None

# Exit code for a run cancelled by --timeout
EXIT_CANCELLED = 3


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region"),
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        help="Config file (default: ~/.awsclean/config.yaml or $AWSCLEAN_CONFIG)",
    ),
    storage_path: Optional[str] = typer.Option(
        None,
        "--storage-path",
        help="Custom path for audit log storage (default: ~/.awsclean/audit-logs or $AWSCLEAN_STORAGE_PATH)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """AWS Cleanup - retention policy enforcement for build and deploy artifacts."""
    global config

    # Load configuration
    try:
        config = Config.load(config_file)
    except ConfigInvalid as e:
        console.print(f"✗ Invalid configuration: {e}", style="bold red")
        raise typer.Exit(code=1)

    # Override with CLI options
    if profile:
        config.aws_profile = profile
    if region:
        config.region = region
    if storage_path:
        config.storage_path = storage_path

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    console.print(f"awsclean version {__version__}")


def parse_kinds(values: Optional[List[str]]) -> Optional[List[ResourceKind]]:
    """Parse --kind options, exiting on unknown values."""
    if not values:
        return None
    try:
        return [ResourceKind.parse(v) for v in values]
    except ValueError as e:
        valid = ", ".join(k.value for k in ResourceKind)
        console.print(f"✗ {e}. Must be one of: {valid}", style="bold red")
        raise typer.Exit(code=1)


def parse_environments(values: Optional[List[str]]) -> Optional[List[Environment]]:
    """Parse --env options, exiting on unknown values."""
    if not values:
        return None
    try:
        return [Environment.parse(v) for v in values]
    except ValueError as e:
        valid = ", ".join(env.value for env in Environment)
        console.print(f"✗ {e}. Must be one of: {valid}", style="bold red")
        raise typer.Exit(code=1)


def load_rule_set(rules: Optional[str]) -> RuleSet:
    """Load the rule set from --rules or the configured rules path."""
    rules_path = rules or config.rules_path
    if not rules_path:
        console.print("✗ Error: No rule file given. Use --rules or set rules_path in config", style="bold red")
        raise typer.Exit(code=1)
    return RuleSet.load(rules_path)


def build_catalog(inventory: Optional[str]) -> ResourceCatalog:
    """Build the catalog: a YAML inventory file if given, AWS otherwise."""
    if inventory:
        return InMemoryCatalog.from_yaml(inventory)

    return AWSResourceCatalog(
        region=config.region,
        aws_profile=config.aws_profile,
        environment_tag=config.environment_tag,
        repositories=config.environment_map("repositories"),
        buckets=config.environment_map("buckets"),
        task_families=config.environment_map("task_families"),
    )


def build_engine(
    rule_set: RuleSet,
    catalog: ResourceCatalog,
    sinks: Optional[List[ReportSink]] = None,
) -> CleanupEngine:
    """Build the engine with executor limits from config."""
    executor = CleanupExecutor(
        catalog,
        max_attempts=config.max_attempts,
        max_workers=config.max_workers,
    )
    return CleanupEngine(
        catalog=catalog,
        rule_set=rule_set,
        executor=executor,
        sinks=sinks,
        max_parallel_pairs=config.max_parallel_pairs,
    )


rules_app = typer.Typer(help="Retention rule commands")


@rules_app.command("validate")
def rules_validate(
    rules: Optional[str] = typer.Option(None, "--rules", help="Retention rules YAML file"),
):
    """Validate a retention rule file."""
    try:
        rule_set = load_rule_set(rules)
    except ConfigInvalid as e:
        console.print(f"✗ Invalid rules: {e}", style="bold red")
        raise typer.Exit(code=1)

    console.print(f"✓ {len(rule_set)} retention rule(s) valid", style="bold green")


@rules_app.command("show")
def rules_show(
    rules: Optional[str] = typer.Option(None, "--rules", help="Retention rules YAML file"),
):
    """Show configured retention rules."""
    try:
        rule_set = load_rule_set(rules)
    except ConfigInvalid as e:
        console.print(f"✗ Invalid rules: {e}", style="bold red")
        raise typer.Exit(code=1)

    if not len(rule_set):
        console.print("No retention rules defined - every resource is retained.")
        return

    table = Table(title="Retention Rules", show_header=True, header_style="bold magenta")
    table.add_column("Kind", style="cyan")
    table.add_column("Environment")
    table.add_column("Max Age (days)", justify="right")
    table.add_column("Max Count", justify="right")
    table.add_column("Protected Patterns")

    for kind, environment in rule_set.pairs():
        rule = rule_set.rule_for(kind, environment)
        table.add_row(
            kind.value,
            environment.value,
            "-" if rule.max_age_days is None else str(rule.max_age_days),
            "-" if rule.max_count is None else str(rule.max_count),
            ", ".join(rule.protected_patterns) or "-",
        )

    console.print(table)


app.add_typer(rules_app, name="rules")


@app.command()
def preview(
    rules: Optional[str] = typer.Option(None, "--rules", help="Retention rules YAML file"),
    kind: Optional[List[str]] = typer.Option(None, "--kind", "-k", help="Resource kind (repeatable)"),
    env: Optional[List[str]] = typer.Option(None, "--env", "-e", help="Environment (repeatable)"),
    inventory: Optional[str] = typer.Option(None, "--inventory", help="YAML inventory file instead of AWS"),
    show_retained: bool = typer.Option(False, "--all", help="Also list retained resources"),
):
    """Show what a cleanup run would delete, without deleting anything.

    Examples:
        # Preview every configured rule
        awsclean preview --rules retention.yaml

        # Preview images in dev only, including retained ones
        awsclean preview --rules retention.yaml --kind image --env dev --all
    """
    kinds = parse_kinds(kind)
    environments = parse_environments(env)

    try:
        rule_set = load_rule_set(rules)
        engine = build_engine(rule_set, build_catalog(inventory))
        evaluations = engine.preview(kinds=kinds, environments=environments)
    except typer.Exit:
        raise
    except ConfigInvalid as e:
        console.print(f"✗ Invalid rules: {e}", style="bold red")
        raise typer.Exit(code=1)
    except CatalogUnavailable as e:
        console.print(f"✗ Catalog unavailable: {e}", style="bold red")
        raise typer.Exit(code=2)
    except Exception as e:
        console.print(f"✗ Error during preview: {e}", style="bold red")
        logger.exception("Error in preview command")
        raise typer.Exit(code=2)

    CleanupReporter(console).display_preview(evaluations, show_retained=show_retained)


@app.command()
def run(
    rules: Optional[str] = typer.Option(None, "--rules", help="Retention rules YAML file"),
    kind: Optional[List[str]] = typer.Option(None, "--kind", "-k", help="Resource kind (repeatable)"),
    env: Optional[List[str]] = typer.Option(None, "--env", "-e", help="Environment (repeatable)"),
    inventory: Optional[str] = typer.Option(None, "--inventory", help="YAML inventory file instead of AWS"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Evaluate and report without deleting"),
    confirm: bool = typer.Option(False, "--confirm", help="Confirm deletion (required unless --dry-run)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Cancel the run after this many seconds"),
    export: Optional[str] = typer.Option(None, "--export", help="Write the JSON report to this file"),
    no_audit: bool = typer.Option(False, "--no-audit", help="Do not write the YAML audit log"),
):
    """Run retention cleanup.

    A run that deletes some resources but fails others is reported as
    partial and still exits 0. The exit code is 2 when the run failed and
    3 when --timeout cancelled it before every pair was processed.

    Examples:
        # Dry run against AWS
        awsclean run --rules retention.yaml --dry-run

        # Delete, exporting the report
        awsclean run --rules retention.yaml --confirm --export report.json
    """
    kinds = parse_kinds(kind)
    environments = parse_environments(env)

    # Require confirmation for destructive operations
    if not dry_run and not confirm:
        console.print(
            "✗ Deletion requires explicit confirmation. Use --confirm, or --dry-run to preview.",
            style="bold red",
        )
        raise typer.Exit(code=1)

    try:
        rule_set = load_rule_set(rules)

        sinks: List[ReportSink] = [LoggingSink()]
        if not no_audit:
            sinks.append(AuditSink(config.storage_path))
        if export:
            sinks.append(JsonFileSink(export))

        engine = build_engine(rule_set, build_catalog(inventory), sinks)
        report = engine.run(kinds=kinds, environments=environments, dry_run=dry_run, timeout=timeout)
    except typer.Exit:
        raise
    except ConfigInvalid as e:
        console.print(f"✗ Invalid rules, nothing was deleted: {e}", style="bold red")
        raise typer.Exit(code=1)
    except CatalogUnavailable as e:
        console.print(f"✗ Catalog unavailable: {e}", style="bold red")
        raise typer.Exit(code=2)
    except Exception as e:
        console.print(f"✗ Error during cleanup run: {e}", style="bold red")
        logger.exception("Error in run command")
        raise typer.Exit(code=2)

    CleanupReporter(console).display(report)

    if export:
        console.print(f"\n✓ Exported report to: [cyan]{export}[/cyan] (JSON)")

    if report.status == RunStatus.CANCELLED:
        raise typer.Exit(code=EXIT_CANCELLED)
    if not report.is_successful:
        raise typer.Exit(code=2)


report_app = typer.Typer(help="Cleanup report commands")


def parse_date(value: Optional[str], option: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        console.print(f"✗ Invalid {option}: {value}. Use YYYY-MM-DD", style="bold red")
        raise typer.Exit(code=1)


@report_app.command("list")
def report_list(
    since: Optional[str] = typer.Option(None, "--since", help="Only runs started on/after (YYYY-MM-DD)"),
    until: Optional[str] = typer.Option(None, "--until", help="Only runs started on/before (YYYY-MM-DD)"),
):
    """List audited cleanup runs."""
    since_dt = parse_date(since, "--since")
    until_dt = parse_date(until, "--until")
    if until_dt:
        until_dt = until_dt.replace(hour=23, minute=59, second=59)

    reports = AuditSink(config.storage_path).query_reports(since=since_dt, until=until_dt)
    if not reports:
        console.print("No cleanup runs found.")
        return

    table = Table(title="Cleanup Runs", show_header=True, header_style="bold magenta")
    table.add_column("Run ID", style="cyan")
    table.add_column("Started")
    table.add_column("Mode")
    table.add_column("Status")
    table.add_column("Deleted", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Freed", justify="right")

    for report in reports:
        table.add_row(
            report.run_id,
            report.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            report.mode.value,
            report.status.value,
            str(report.deleted_count),
            str(report.failed_count),
            format_bytes(report.total_storage_freed_estimate) if report.mode == RunMode.EXECUTE else "-",
        )

    console.print(table)


@report_app.command("show")
def report_show(
    run_id: str = typer.Argument(..., help="Run ID to show"),
):
    """Show an audited cleanup run."""
    report = AuditSink(config.storage_path).get_report(run_id)
    if report is None:
        console.print(f"✗ Report not found: {run_id}", style="bold red")
        raise typer.Exit(code=1)

    CleanupReporter(console).display(report)


app.add_typer(report_app, name="report")


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
