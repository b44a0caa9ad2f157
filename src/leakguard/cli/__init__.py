"""
CLI for LeakGuard.

Provides the command-line interface for scanning directory trees for
hardcoded secrets and for inspecting rules and the result cache.
"""

import logging
import signal
import threading
from pathlib import Path
from typing import Optional

import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from leakguard.cli.exit_codes import (
    EXIT_FINDINGS,
    EXIT_INVALID_ARGUMENTS,
    EXIT_SUCCESS,
    EXIT_UNEXPECTED_ERROR,
    exit_code_for,
)
from leakguard.cli.ui import (
    render_cache_stats,
    render_error,
    render_findings,
    render_scan_errors,
    render_scan_summary,
    render_validation,
    render_warning,
)
from leakguard.core.config import LeakGuardConfig, load_config
from leakguard.core.errors import CatalogError, ConfigurationError
from leakguard.core.path_utils import validate_scan_path
from leakguard.core.patterns import SecretPattern, generate_test_cases
from leakguard.infrastructure.result_cache import create_result_cache
from leakguard.services import ScanOptions, create_services, create_validator

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="leakguard",
    help="LeakGuard - Static secret detection for source trees",
    add_completion=False,
)


@app.callback()
def main() -> None:
    """LeakGuard - Static secret detection for source trees."""
    load_dotenv()


def _configure_logging(config: LeakGuardConfig, verbose: bool = False) -> None:
    level_name = "INFO" if verbose and config.logging.level.upper() == "WARNING" else config.logging.level
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Invalid logging level: {config.logging.level!r}")

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(config_path: Optional[Path], verbose: bool = False) -> LeakGuardConfig:
    try:
        config = load_config(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot load configuration: {e}") from e
    _configure_logging(config, verbose)
    return config


@app.command()
def scan(
    path: Path = typer.Argument(..., help="Directory to scan"),
    ignore: Optional[list[str]] = typer.Option(
        None, "--ignore", "-i", help="Additional gitignore-style pattern (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every scanned file"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the result cache"),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Number of parallel matching threads"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
    ),
    rules: Optional[list[Path]] = typer.Option(
        None, "--rules", "-r", help="Additional rule catalog (repeatable)"
    ),
):
    """Scan a directory tree for hardcoded secrets."""
    validation = validate_scan_path(path)
    if not validation.valid:
        console.print(f"[bold red]Error:[/bold red] {validation.error_message}")
        raise typer.Exit(EXIT_INVALID_ARGUMENTS)

    if workers is not None and workers < 1:
        console.print("[bold red]Error:[/bold red] --workers must be at least 1")
        raise typer.Exit(EXIT_INVALID_ARGUMENTS)

    console.print(f"[bold blue]Scanning[/bold blue] {escape(str(path))}...")

    try:
        cfg = _load(config_path, verbose)
        options = ScanOptions(
            ignore_patterns=list(ignore or []),
            verbose=verbose,
            use_cache=not no_cache,
            workers=workers if workers is not None else cfg.scan.workers,
            cancel_event=threading.Event(),
        )

        # Progress reporting with Rich
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Loading rules...", total=None)

            def update_progress(current: int, total: int, message: str) -> None:
                progress.update(
                    task, completed=current, total=total or None, description=escape(message)
                )

            container = create_services(
                config=cfg, rules_paths=rules, progress_callback=update_progress
            )
            for invalid in container.validation.invalid_results:
                render_warning(
                    f"Rule '{invalid.pattern_id}' disabled: {'; '.join(invalid.errors)}", console
                )
            result = _run_scan(container.scan_service, path, options)

    except (ConfigurationError, CatalogError) as e:
        render_error(str(e), console)
        raise typer.Exit(EXIT_INVALID_ARGUMENTS)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_UNEXPECTED_ERROR)

    render_findings(result, console)
    render_scan_errors(result, console)
    render_scan_summary(result, console)

    raise typer.Exit(exit_code_for(result))


def _run_scan(scan_service, path: Path, options: ScanOptions):
    """Run a scan, turning Ctrl-C into a cooperative cancellation."""
    if threading.current_thread() is not threading.main_thread():
        return scan_service.scan(path, options)

    previous = signal.signal(signal.SIGINT, lambda *_: options.cancel_event.set())
    try:
        return scan_service.scan(path, options)
    finally:
        signal.signal(signal.SIGINT, previous)


@app.command("rules")
def list_rules(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
    ),
    rules: Optional[list[Path]] = typer.Option(
        None, "--rules", "-r", help="Additional rule catalog (repeatable)"
    ),
    warnings: bool = typer.Option(True, "--warnings/--no-warnings", help="Show heuristic warnings"),
):
    """Validate the configured rules and report which are active."""
    try:
        cfg = _load(config_path)
        with console.status("Validating rules..."):
            container = create_services(config=cfg, rules_paths=rules)
        render_validation(container.validation, console, show_warnings=warnings)
    except (ConfigurationError, CatalogError) as e:
        render_error(str(e), console)
        raise typer.Exit(EXIT_INVALID_ARGUMENTS)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_UNEXPECTED_ERROR)


@app.command("validate-pattern")
def validate_pattern(
    pattern: str = typer.Argument(..., help="Regular expression to validate"),
    pattern_type: Optional[str] = typer.Option(
        None, "--test-type", "-t", help="Run generated test cases (api-key, password, token)"
    ),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", help="Match case-sensitively"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
    ),
):
    """Check a single regular expression for errors and catastrophic backtracking."""
    try:
        cfg = _load(config_path)
        secret_pattern = SecretPattern(
            id="inline",
            name="inline",
            pattern=pattern,
            case_sensitive=case_sensitive,
            test_cases=tuple(generate_test_cases(pattern_type)) if pattern_type else (),
        )
        with console.status("Validating pattern..."):
            result = create_validator(cfg).validate(secret_pattern)
    except ConfigurationError as e:
        render_error(str(e), console)
        raise typer.Exit(EXIT_INVALID_ARGUMENTS)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_UNEXPECTED_ERROR)

    for error in result.errors:
        console.print(f"  [red]✗[/red] {escape(error)}")
    for warning in result.warnings:
        console.print(f"  [yellow]![/yellow] {escape(warning)}")
    for test_result in result.test_results or []:
        mark = "[green]✓[/green]" if test_result.passed else "[red]✗[/red]"
        console.print(f"  {mark} {escape(test_result.test_case.input)}")

    if result.is_valid:
        console.print(
            f"[bold green]Pattern is valid[/bold green] (compiled in {result.compile_time_ms:.2f}ms)"
        )
        raise typer.Exit(EXIT_SUCCESS)
    console.print("[bold red]Pattern is invalid[/bold red]")
    raise typer.Exit(EXIT_FINDINGS)


@app.command("cache-stats")
def cache_stats(
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", help="Cache directory"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
    ),
):
    """Show result cache statistics."""
    try:
        cfg = _load(config_path)
        cache = create_result_cache(
            cache_dir or Path(cfg.cache.directory), max_age_hours=cfg.cache.max_age_hours
        )
        render_cache_stats(cache.get_stats(), cache.get_cache_file_size(), console)
    except ConfigurationError as e:
        render_error(str(e), console)
        raise typer.Exit(EXIT_INVALID_ARGUMENTS)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_UNEXPECTED_ERROR)


@app.command("cache-clear")
def cache_clear(
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", help="Cache directory"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete every cached scan result."""
    if not yes and not typer.confirm("Are you sure you want to clear the result cache?"):
        raise typer.Abort()

    try:
        cfg = _load(config_path)
        cache = create_result_cache(
            cache_dir or Path(cfg.cache.directory), max_age_hours=cfg.cache.max_age_hours
        )
        cache.clear()
        if cache.save():
            console.print(f"  [green]✓[/green] Cleared cache at {cache.cache_file}")
        else:
            console.print(f"  [yellow]![/yellow] Could not write {cache.cache_file}")
    except ConfigurationError as e:
        render_error(str(e), console)
        raise typer.Exit(EXIT_INVALID_ARGUMENTS)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_UNEXPECTED_ERROR)


if __name__ == "__main__":
    app()
