"""CLI module for comparing database schemas.

Provides commands for listing configured profiles, listing the databases a
profile can see, and comparing two profiles with script output.

Usage:
    schema-compare profiles
    schema-compare databases --profile prod
    schema-compare compare --source prod --target dev
    schema-compare compare --alter-script migrate.sql --source-script prod.sql
    schema-compare --config ./other.toml --verbose compare

Commands:
    profiles   - List available profiles
    databases  - List databases visible to a profile
    compare    - Compare the source and target profiles
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from schema_compare.config.loader import load_compare_config
from schema_compare.config.models import CompareConfig
from schema_compare.factory import ProfileNotFoundError, get_profile, get_provider
from schema_compare.schema.comparator import EmptyDatabasesError
from schema_compare.schema.models import CompareResult, DatabaseObjectType
from schema_compare.services.compare import CompareService
from schema_compare.tasks import OperationCancelledError, TaskInfo, TaskStatus

logger = logging.getLogger(__name__)

console = Console()

POLL_INTERVAL = 0.2

_STATUS_STYLES = {
    TaskStatus.CREATED: "dim",
    TaskStatus.RUNNING: "cyan",
    TaskStatus.SUCCEEDED: "green",
    TaskStatus.FAULTED: "red",
    TaskStatus.CANCELLED: "yellow",
}


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    """Route library logging through rich."""
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=False)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load_config(args: argparse.Namespace) -> CompareConfig | None:
    """Load the config named by ``--config``, printing the error on failure."""
    config_path = Path(args.config) if args.config else None
    try:
        return load_compare_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _describe_tasks(infos: tuple[TaskInfo, ...]) -> str:
    """One-line summary of the running stages for the status spinner."""
    parts = []
    for info in infos:
        if info.status != TaskStatus.RUNNING:
            continue
        text = f"{info.name} {info.percentage:.0f}%"
        if info.message:
            text += f" ({info.message})"
        parts.append(text)
    return "; ".join(parts) or "Waiting"


def _task_table(infos: tuple[TaskInfo, ...]) -> Table:
    table = Table(title="Tasks", show_header=True, header_style="bold")
    table.add_column("Task")
    table.add_column("Status")
    table.add_column("Progress", justify="right")

    for info in infos:
        style = _STATUS_STYLES.get(info.status, "")
        table.add_row(
            info.name,
            f"[{style}]{info.status.value}[/{style}]" if style else info.status.value,
            f"{info.percentage:.0f}%",
        )
    return table


def _summary_table(result: CompareResult) -> Table:
    """Counts per object kind and bucket."""
    table = Table(title="Comparison Summary", show_header=True, header_style="bold")
    table.add_column("Object type")
    table.add_column("Different", justify="right")
    table.add_column("Only in source", justify="right")
    table.add_column("Only in target", justify="right")
    table.add_column("Identical", justify="right")

    buckets = (
        result.different_items,
        result.only_source_items,
        result.only_target_items,
        result.same_items,
    )
    for kind in DatabaseObjectType:
        counts = [sum(1 for item in bucket if item.item_type == kind) for bucket in buckets]
        if not any(counts):
            continue
        table.add_row(
            kind.name.replace("_", " ").title(),
            f"[yellow]{counts[0]}[/yellow]" if counts[0] else "0",
            f"[green]{counts[1]}[/green]" if counts[1] else "0",
            f"[red]{counts[2]}[/red]" if counts[2] else "0",
            str(counts[3]),
        )
    return table


def _write_script(path: str | None, script: str, label: str) -> None:
    if not path:
        return
    Path(path).write_text(script)
    console.print(f"[green]Wrote {label} to {path}[/green]")


# ============================================================================
# Commands
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from schema-compare.toml.

    Reads only local TOML config, no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if the config cannot be loaded.
    """
    config = _load_config(args)
    if config is None:
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        if name == config.source:
            marker = "[bold green]S[/bold green]"
        elif name == config.target:
            marker = "[bold blue]T[/bold blue]"
        else:
            marker = " "
        table.add_row(marker, name, profile.provider.value, profile.description or "")

    console.print(table)

    if config.source or config.target:
        console.print("\n[bold green]S[/bold green] = default source, [bold blue]T[/bold blue] = default target")

    return 0


def cmd_databases(args: argparse.Namespace) -> int:
    """List databases visible to a profile.

    Args:
        args: Parsed arguments with profile.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        name, profile = get_profile(config, args.profile)
        provider = get_provider(profile)
    except (ProfileNotFoundError, NotImplementedError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        databases = provider.list_databases()
    except Exception as e:
        logger.debug("Listing databases failed", exc_info=True)
        console.print(f"[red]Failed to list databases for '{name}': {e}[/red]")
        return 1

    table = Table(title=f"Databases ({name})", show_header=False)
    table.add_column("Database")
    for database in databases:
        table.add_row(database)
    console.print(table)
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare the source profile against the target profile.

    Shows the running stages while the comparison runs, then prints a
    summary table and the per-object listing and writes any requested
    scripts.  Ctrl+C requests cancellation and waits for the stages to
    stop.

    Args:
        args: Parsed arguments with source, target and script paths.

    Returns:
        0 on success, 1 on failure or cancellation.
    """
    config = _load_config(args)
    if config is None:
        return 1

    try:
        source_name, source_profile = get_profile(config, args.source or config.source)
        target_name, target_profile = get_profile(config, args.target or config.target)
        service = CompareService(
            config.options,
            get_provider(source_profile),
            get_provider(target_profile),
        )
    except (ProfileNotFoundError, NotImplementedError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print(
        f"Comparing [bold cyan]{source_name}[/bold cyan] -> [bold cyan]{target_name}[/bold cyan]",
        style="dim",
    )

    service.start_compare()
    try:
        with console.status("Starting") as status:
            try:
                while not service.wait(timeout=POLL_INTERVAL):
                    status.update(_describe_tasks(service.task_infos))
            except KeyboardInterrupt:
                console.print("[yellow]Cancelling...[/yellow]")
                service.abort()
                service.wait()
    except OperationCancelledError:
        console.print(_task_table(service.task_infos))
        console.print("[yellow]Comparison cancelled.[/yellow]")
        return 1
    except EmptyDatabasesError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return 1
    except Exception as e:
        logger.debug("Comparison failed", exc_info=True)
        console.print(_task_table(service.task_infos))
        console.print(f"[red]Comparison failed: {e}[/red]")
        return 1

    result = service.result
    console.print(_summary_table(result))
    console.print(result.format_report())

    if result.has_differences:
        console.print("\n[yellow]Schemas differ.[/yellow]")
    else:
        console.print("\n[bold green]Schemas identical.[/bold green]")

    try:
        _write_script(args.alter_script, result.full_alter_script, "alter script")
        _write_script(args.source_script, result.source_full_script, "source script")
        _write_script(args.target_script, result.target_full_script, "target script")
    except OSError as e:
        console.print(f"[red]Error writing script: {e}[/red]")
        return 1

    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Args:
        argv: Argument list (default: ``sys.argv[1:]``).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="schema-compare",
        description="Compare database schemas and script the differences",
    )

    # Global options
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the TOML config (default: ./schema-compare.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # databases command
    p_databases = subparsers.add_parser(
        "databases",
        help="List databases visible to a profile",
    )
    p_databases.add_argument(
        "--profile",
        "-p",
        required=True,
        help="Profile to connect with",
    )
    p_databases.set_defaults(func=cmd_databases)

    # compare command
    p_compare = subparsers.add_parser(
        "compare",
        help="Compare the source and target profiles",
    )
    p_compare.add_argument(
        "--source",
        "-s",
        default=None,
        help="Source profile (default: 'source' key of the config)",
    )
    p_compare.add_argument(
        "--target",
        "-t",
        default=None,
        help="Target profile (default: 'target' key of the config)",
    )
    p_compare.add_argument(
        "--alter-script",
        default=None,
        help="Write the script that migrates the target to the source",
    )
    p_compare.add_argument(
        "--source-script",
        default=None,
        help="Write the full create script of the source",
    )
    p_compare.add_argument(
        "--target-script",
        default=None,
        help="Write the full create script of the target",
    )
    p_compare.set_defaults(func=cmd_compare)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
