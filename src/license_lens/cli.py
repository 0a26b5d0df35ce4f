"""Command-line interface for license_lens.

Provides subcommands for scanning a workspace's dependency licenses,
checking license compatibility, exporting reports, reading license texts
and managing the license cache and configuration.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from license_lens.analyzer import LicenseAnalyzer
from license_lens.cache import LicenseCache
from license_lens.compatibility import (
    analyze_project_compatibility,
    get_recommendations,
    get_risk_level,
)
from license_lens.config import DEFAULT_CONFIG_PATH, ConfigurationManager
from license_lens.detector import ProjectDetector
from license_lens.models import LicenseInfo, ProjectInfo, RiskLevel
from license_lens.reporters import REPORTERS, HtmlReporter
from license_lens.reporters.base import compatibility_summary, format_datetime
from license_lens.scanners import get_scanner
from license_lens.state import DEFAULT_STATE_PATH, MemoryStateStore, SqliteStateStore
from license_lens.text_fetcher import LicenseTextFetcher

app = typer.Typer(
    name="license-lens",
    help="Dependency license inventory and compatibility checker.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger("license_lens")

RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
}


@dataclass
class Settings:
    """Options shared by every command, set by the app callback."""

    config_path: Path = DEFAULT_CONFIG_PATH
    state_path: Path = DEFAULT_STATE_PATH
    persist: bool = True
    verbose: bool = False


settings = Settings()


def _setup_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.getLogger("license_lens").setLevel(level)


def _load_config() -> ConfigurationManager:
    try:
        return ConfigurationManager(settings.config_path)
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


def _open_cache(config: ConfigurationManager) -> LicenseCache:
    """Create the license cache and load the persisted snapshot."""
    cache = LicenseCache(config)
    if settings.persist:
        cache.init(SqliteStateStore(settings.state_path))
    else:
        cache.init(MemoryStateStore())
    return cache


@app.callback()
def main(
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to YAML configuration file",
            envvar="LICENSE_LENS_CONFIG",
        ),
    ] = DEFAULT_CONFIG_PATH,
    state: Annotated[
        Path,
        typer.Option(
            "--state",
            help="Path to the cache database",
            envvar="LICENSE_LENS_STATE",
        ),
    ] = DEFAULT_STATE_PATH,
    no_persist: Annotated[
        bool,
        typer.Option(
            "--no-persist",
            help="Keep the cache in memory for this run only",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output",
        ),
    ] = False,
) -> None:
    """Dependency license inventory and compatibility checker."""
    settings.config_path = config
    settings.state_path = state
    settings.persist = not no_persist
    settings.verbose = verbose
    _setup_logging(verbose)


async def _analyze_projects(
    projects: list[ProjectInfo],
    cache: LicenseCache,
    config: ConfigurationManager,
) -> list[ProjectInfo]:
    """Scan each project's manifest and resolve its dependency licenses.

    Projects whose manifest cannot be parsed are reported and left with no
    dependencies.
    """
    async with LicenseAnalyzer(cache, config) as analyzer:
        for project in projects:
            try:
                dependencies = get_scanner(project.dependency_file).scan()
            except (ValueError, OSError) as e:
                err_console.print(
                    f"[red]Error scanning {project.dependency_file}:[/red] {e}"
                )
                continue

            if settings.verbose:
                console.print(
                    f"[dim]{project.name}: {len(dependencies)} dependencies "
                    f"in {project.dependency_file.name}[/dim]"
                )
            project.dependencies = await analyzer.analyze(
                dependencies, project.ecosystem
            )
    return projects


def _collect(path: Path, config: ConfigurationManager, cache: LicenseCache) -> list[ProjectInfo]:
    """Detect projects under ``path`` and resolve their licenses."""
    try:
        projects = ProjectDetector().detect_projects(path)
    except FileNotFoundError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if not projects:
        return projects

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Resolving dependency licenses...", total=None)
        projects = asyncio.run(_analyze_projects(projects, cache, config))
        progress.update(task, completed=True)

    return projects


def _dependency_table(
    project: ProjectInfo, config: ConfigurationManager
) -> Table:
    display = config.get_display_config()
    problematic = {
        id(dep) for dep in LicenseAnalyzer.identify_problematic_licenses(project.dependencies)
    }

    table = Table(title=f"{project.name} ({project.ecosystem})", title_justify="left")
    if display.group_by_license:
        table.add_column("License", style="bold")
    table.add_column("Package")
    table.add_column("Version")
    if not display.group_by_license:
        table.add_column("License")
    if display.show_descriptions:
        table.add_column("Description", overflow="fold")

    if display.group_by_license:
        groups = LicenseAnalyzer.group_licenses_by_type(project.dependencies)
        rows: list[LicenseInfo] = [dep for group in groups.values() for dep in group]
    else:
        rows = project.dependencies

    for dep in rows:
        cells = [dep.name, dep.version]
        if display.group_by_license:
            cells.insert(0, dep.license)
        else:
            cells.append(dep.license)
        if display.show_descriptions:
            cells.append(dep.description or "")
        style = "red" if display.highlight_problematic and id(dep) in problematic else None
        table.add_row(*cells, style=style)

    return table


def _print_compatibility(licenses: list[str], heading: str) -> bool:
    """Print compatibility warnings for a license set.

    Returns:
        True if any incompatible pair was found.
    """
    summary = compatibility_summary(licenses)
    risk = RiskLevel(summary["riskLevel"])
    console.print(
        f"{heading}: risk [{RISK_STYLES[risk]}]{risk}[/{RISK_STYLES[risk]}]"
    )
    for issue in summary["issues"]:
        console.print(
            f"  [yellow]![/yellow] {issue['licenseA']} + {issue['licenseB']}: "
            f"{issue['reason']}"
        )
    for recommendation in summary["recommendations"]:
        console.print(f"  [dim]- {recommendation}[/dim]")
    return not summary["compatible"]


@app.command()
def scan(
    path: Annotated[
        Path,
        typer.Argument(help="Workspace directory to scan"),
    ] = Path("."),
    no_cache: Annotated[
        bool,
        typer.Option(
            "--no-cache",
            help="Bypass the license cache for this run",
        ),
    ] = False,
) -> None:
    """Scan a workspace and list dependency licenses per project.

    Exit codes:
        0 - Scan completed
        1 - Error, or incompatible licenses found in strict mode
    """
    config = _load_config()
    if no_cache:
        config.update("cache.enabled", False)

    cache = _open_cache(config)
    try:
        projects = _collect(path, config, cache)
    finally:
        cache.close()

    if not projects:
        console.print("[yellow]No supported projects found[/yellow]")
        raise typer.Exit(code=0)

    compatibility = config.get_compatibility_config()
    has_issues = False

    for project in projects:
        console.print(_dependency_table(project, config))
        if compatibility.show_warnings:
            licenses = [dep.license for dep in project.dependencies]
            has_issues |= _print_compatibility(licenses, project.name)
        console.print()

    total = sum(len(p.dependencies) for p in projects)
    console.print(
        f"Found [bold]{total}[/bold] dependencies in [bold]{len(projects)}[/bold] projects"
    )

    if has_issues and compatibility.strict_mode:
        err_console.print("[red]Incompatible licenses found (strict mode)[/red]")
        raise typer.Exit(code=1)


@app.command()
def compat(
    licenses: Annotated[
        list[str],
        typer.Argument(help="License names to compare (e.g., MIT GPL-3.0)"),
    ],
) -> None:
    """Show the compatibility matrix for a set of licenses."""
    analysis = analyze_project_compatibility(licenses)

    table = Table(title="License Compatibility")
    table.add_column("")
    for license in analysis.licenses:
        table.add_column(license, justify="center")
    for license, row in zip(analysis.licenses, analysis.matrix):
        table.add_row(
            license,
            *("[green]yes[/green]" if pair.compatible else "[red]no[/red]" for pair in row),
        )
    console.print(table)

    for issue in analysis.issues:
        console.print(
            f"[yellow]![/yellow] {issue.license_a} + {issue.license_b}: {issue.reason}"
        )

    risk = get_risk_level(licenses)
    console.print(f"Risk level: [{RISK_STYLES[risk]}]{risk}[/{RISK_STYLES[risk]}]")
    for recommendation in get_recommendations(licenses):
        console.print(f"  - {recommendation}")

    if analysis.compatible:
        console.print("[green]All licenses are compatible[/green]")


@app.command()
def export(
    path: Annotated[
        Path,
        typer.Argument(help="Workspace directory to scan"),
    ] = Path("."),
    format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help="Report format: json, csv or html",
        ),
    ] = "json",
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output file path (default: license-report-<date>.<format> in PATH)",
        ),
    ] = None,
) -> None:
    """Scan a workspace and export a license report."""
    reporter_cls = REPORTERS.get(format.lower())
    if reporter_cls is None:
        err_console.print(f"[red]Unknown format:[/red] {format}")
        err_console.print(f"Valid formats: {', '.join(REPORTERS)}")
        raise typer.Exit(code=1)

    config = _load_config()
    cache = _open_cache(config)
    try:
        projects = _collect(path, config, cache)
    finally:
        cache.close()

    if reporter_cls is HtmlReporter:
        reporter = HtmlReporter(date_format=config.get_display_config().date_format)
    else:
        reporter = reporter_cls()

    output = output or path / reporter.default_filename()
    try:
        reporter.write(projects, output)
    except OSError as e:
        err_console.print(f"[red]Error writing output:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[green]License report exported to:[/green] {output}")


@app.command()
def text(
    license: Annotated[
        str,
        typer.Argument(help="License name (e.g., MIT, Apache-2.0)"),
    ],
) -> None:
    """Print the full text of a license."""
    config = _load_config()
    cache = _open_cache(config)

    async def fetch() -> str:
        async with LicenseTextFetcher(cache) as fetcher:
            return await fetcher.fetch_license_text(license)

    try:
        license_text = asyncio.run(fetch())
    finally:
        cache.close()

    console.print(license_text, markup=False, highlight=False)


@app.command()
def cache(
    action: Annotated[
        str,
        typer.Argument(help="Cache action: 'show', 'clear', 'prune' or 'export'"),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="File to write the export to (default: stdout)",
        ),
    ] = None,
) -> None:
    """Manage the license cache.

    Actions:
        show   - Display cache location, entry counts, size and age range
        clear  - Remove every cached entry
        prune  - Remove entries older than cache.max_age
        export - Dump all entries as JSON
    """
    config = _load_config()
    cache_instance = _open_cache(config)

    try:
        if action == "show":
            stats = cache_instance.get_stats()
            date_format = config.get_display_config().date_format
            location = str(settings.state_path) if settings.persist else "(memory)"
            console.print(f"[bold]Cache Location:[/bold] {location}")
            console.print(f"[bold]License Entries:[/bold] {stats.license_info_entries}")
            console.print(f"[bold]Text Entries:[/bold] {stats.license_text_entries}")
            console.print(
                f"[bold]Size:[/bold] {stats.approximate_size_bytes / 1024:.1f} KB"
            )
            if stats.oldest_entry and stats.newest_entry:
                console.print(
                    f"[bold]Oldest:[/bold] {format_datetime(stats.oldest_entry, date_format)}"
                )
                console.print(
                    f"[bold]Newest:[/bold] {format_datetime(stats.newest_entry, date_format)}"
                )

        elif action == "clear":
            cache_instance.clear_all()
            console.print("[green]Cache cleared[/green]")

        elif action == "prune":
            removed = cache_instance.clear_expired()
            cache_instance.save()
            console.print(f"[green]Removed {removed} expired entries[/green]")

        elif action == "export":
            snapshot = json.dumps(cache_instance.export_snapshot(), indent=2)
            if output:
                output.write_text(snapshot, encoding="utf-8")
                console.print(f"[green]Cache exported to:[/green] {output}")
            else:
                console.print_json(snapshot)

        else:
            err_console.print(f"[red]Unknown action:[/red] {action}")
            err_console.print("Valid actions: show, clear, prune, export")
            raise typer.Exit(code=1)
    finally:
        cache_instance.close()


@app.command()
def config(
    action: Annotated[
        str,
        typer.Argument(help="Config action: 'show', 'get', 'set' or 'reset'"),
    ],
    key: Annotated[
        Optional[str],
        typer.Argument(help="Dotted setting key (e.g., cache.max_age)"),
    ] = None,
    value: Annotated[
        Optional[str],
        typer.Argument(help="New value, parsed as YAML (e.g., 48, false, us)"),
    ] = None,
) -> None:
    """Show or change settings in the configuration file.

    Actions:
        show  - Print every setting
        get   - Print one setting
        set   - Change one setting and save the file
        reset - Restore defaults and save the file
    """
    manager = _load_config()

    try:
        if action == "show":
            console.print(
                yaml.safe_dump(manager.get_configuration(), sort_keys=False),
                markup=False,
                highlight=False,
            )
        elif action == "get":
            if not key:
                raise ValueError("get requires a KEY")
            console.print(repr(manager.get(key)), markup=False, highlight=False)
        elif action == "set":
            if not key or value is None:
                raise ValueError("set requires a KEY and a VALUE")
            manager.update(key, yaml.safe_load(value))
            manager.save()
            console.print(f"[green]Set[/green] {key} = {manager.get(key)!r}")
        elif action == "reset":
            manager.reset_to_defaults()
            manager.save()
            console.print("[green]Configuration reset to defaults[/green]")
        else:
            err_console.print(f"[red]Unknown action:[/red] {action}")
            err_console.print("Valid actions: show, get, set, reset")
            raise typer.Exit(code=1)
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
