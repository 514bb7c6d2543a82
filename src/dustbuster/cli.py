"""CLI interface for dustbuster."""

import json
from pathlib import Path
from typing import List, Optional

import typer

from dustbuster import __version__
from dustbuster.cleaner import run_cleanup
from dustbuster.config import build_config_schema
from dustbuster.display import console, format_size
from dustbuster.errors import ConfigError
from dustbuster.log import setup_logging
from dustbuster.options import OptionsBuilder

app = typer.Typer(
    name="dustbuster",
    help="Cross-platform cleanup of temporary files and caches.",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"dustbuster version {__version__}")
        raise typer.Exit()


def fail(message: str) -> None:
    """Print an error and exit with status 1."""
    console.print(message, style="red", markup=False, highlight=False, soft_wrap=True)
    raise typer.Exit(1)


def apply_sources(
    builder: OptionsBuilder,
    configs: Optional[List[Path]],
    presets: Optional[List[str]],
) -> None:
    """Apply --config and --preset sources, configs first."""
    for config_path in configs or []:
        builder.apply_config(config_path)
    for preset in presets or []:
        builder.apply_preset(preset)


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """dustbuster - remove temporary files and caches."""


@app.command()
def clean(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be removed without deleting"),
    parallel: bool = typer.Option(False, "--parallel", help="Clean all targets at once"),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", min=1, help="Maximum number of targets cleaned at once"
    ),
    dirs: Optional[List[Path]] = typer.Option(None, "--dir", help="Extra directory to clean"),
    only_dirs: bool = typer.Option(
        False, "--only-dirs", help="Clean only the --dir directories, not the platform defaults"
    ),
    exclude: Optional[List[Path]] = typer.Option(None, "--exclude", help="Path to leave untouched"),
    configs: Optional[List[Path]] = typer.Option(
        None, "--config", help="Configuration file or directory of configuration files"
    ),
    presets: Optional[List[str]] = typer.Option(None, "--preset", help="Preset name or path"),
    max_age: Optional[str] = typer.Option(
        None, "--max-age", help="Only remove entries older than this (e.g. 30m, 12h, 5d)"
    ),
    summary: bool = typer.Option(False, "--summary", help="Print a summary when done"),
    preview: bool = typer.Option(False, "--preview", help="Confirm each directory before cleaning"),
    log_file: Optional[Path] = typer.Option(None, "--log", help="Append the run log to this file"),
    deep: bool = typer.Option(False, "--deep", help="Run additional cleanup commands (Windows)"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug messages"),
) -> None:
    """Remove temporary files and caches."""
    builder = OptionsBuilder()
    try:
        # Configuration first so explicit flags win
        apply_sources(builder, configs, presets)
        for flag, option in (
            (dry_run, "dry_run"),
            (parallel, "parallel"),
            (summary, "summary"),
            (preview, "interactive_preview"),
            (deep, "deep_clean"),
        ):
            if flag:
                builder.set(**{option: True})
        if log_file is not None:
            builder.set(log_file=log_file.expanduser().absolute())
        for directory in dirs or []:
            builder.add_extra_dir(directory)
        for directory in exclude or []:
            builder.add_exclusion(directory)
        if max_age is not None:
            builder.set_max_age(max_age)
        if concurrency is not None:
            builder.set_concurrency(concurrency)
    except ConfigError as e:
        fail(str(e))

    options = builder.build()
    if only_dirs and not options.extra_dirs:
        fail("--only-dirs requires at least one --dir")

    setup_logging(options.log_file, verbose=verbose)

    if options.dry_run:
        console.print("[yellow]DRY RUN - No files will be deleted[/yellow]\n")

    metrics = run_cleanup(options, targets=options.extra_dirs if only_dirs else None)

    if not options.summary:
        console.print(
            f"\n[bold]Done:[/bold] {metrics.file_count} files, {format_size(metrics.size_bytes)}"
            f"{' (dry run)' if options.dry_run else ''}"
        )


@app.command()
def validate(
    configs: Optional[List[Path]] = typer.Option(
        None, "--config", help="Configuration file or directory of configuration files"
    ),
    presets: Optional[List[str]] = typer.Option(None, "--preset", help="Preset name or path"),
) -> None:
    """Check configuration files and presets without cleaning."""
    if not configs and not presets:
        fail("validate requires at least one --config or --preset")

    try:
        apply_sources(OptionsBuilder(), configs, presets)
    except ConfigError as e:
        fail(str(e))

    console.print("[green]Configuration is valid.[/green]")


@app.command()
def schema() -> None:
    """Print the JSON Schema for configuration files."""
    typer.echo(json.dumps(build_config_schema(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    app()
