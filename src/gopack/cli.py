"""
CLI entry point for gopack.

Publishes a Go module version into a local GOPROXY directory tree:

    gopack -src ./mymod -version v1.2.3 -out /srv/goproxy
"""

from __future__ import annotations

import traceback
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import PublishConfig, PublishResult
from .config_loader import load_project_config
from .errors import GopackError
from .publisher import publish, validate_inputs

# Initialize CLI app
app = typer.Typer(
    name="gopack",
    help="Publish a Go module version into a local GOPROXY directory layout.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"gopack version {__version__}")
        raise typer.Exit()


def parse_globs(value: str) -> set[str]:
    """Parse comma-separated glob patterns."""
    if not value:
        return set()
    return {g.strip() for g in value.split(",") if g.strip()}


def _print_path(path: Path) -> None:
    console.print(f"  {path}", soft_wrap=True, markup=False, highlight=False)


def _print_error(message: str) -> None:
    err_console.print(f"[red]Error: {escape(message)}[/red]", soft_wrap=True, highlight=False)


def print_summary(result: PublishResult, verbose: bool = False) -> None:
    """Print the written (or planned) files and any list repairs."""
    if result.dry_run:
        console.print(f"[cyan]Dry run for {escape(result.module_path)}@{escape(result.version)}[/cyan]")
        console.print("Would write:")
    else:
        console.print("[green]Wrote:[/green]")
    for path in result.written_files:
        _print_path(path)

    plan = result.archive
    console.print(
        f"[dim]Archive: {len(plan.files)} files, {plan.total_bytes:,} bytes, "
        f"{len(plan.omitted)} omitted[/dim]"
    )
    if verbose:
        for rel_path, reason in plan.omitted.items():
            console.print(f"[dim]  omitted {escape(rel_path)}: {escape(reason)}[/dim]", soft_wrap=True)

    update = result.list_update
    if update is not None and update.dropped:
        err_console.print(
            f"[yellow]Warning: dropped {len(update.dropped)} invalid line(s) from {escape(str(result.list_file))}[/yellow]",
            soft_wrap=True,
        )
        for line in update.dropped:
            err_console.print(f"[yellow]  {escape(repr(line))}[/yellow]", soft_wrap=True)


@app.command()
def main_command(
    src: Optional[str] = typer.Option(
        None,
        "--src", "-src",
        help="Path to the module source directory (worktree root with go.mod).",
    ),
    version: Optional[str] = typer.Option(
        None,
        "--version", "-version",
        help="Version tag to publish, e.g. v1.0.3.",
    ),
    out: Optional[str] = typer.Option(
        None,
        "--out", "-out",
        help="GOPROXY root directory, e.g. /tmp/goproxy. Created if absent.",
    ),

    # Archive options
    respect_gitignore: Optional[bool] = typer.Option(
        None,
        "--respect-gitignore/--no-respect-gitignore",
        help="Omit files matched by .gitignore from the module zip (default: off).",
    ),
    exclude: Optional[str] = typer.Option(
        None,
        "--exclude", "-e",
        help="Comma-separated glob patterns to omit from the module zip (e.g. 'testdata/**').",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Config file (default: gopack.toml or .gopack.toml in the source directory).",
    ),

    # Behaviour
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be written without touching the output tree.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="List omitted files and print tracebacks on errors.",
    ),

    # Version
    show_version: bool = typer.Option(
        False,
        "--show-version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show gopack version and exit.",
    ),
) -> None:
    """
    Publish a module version into a GOPROXY directory tree.

    Writes <module>/@v/<version>.mod, .info and .zip under the output root and
    adds the version to <module>/@v/list.

    Examples:

        # Publish v1.2.3 of the module in ./mymod
        gopack -src ./mymod -version v1.2.3 -out /srv/goproxy

        # Check what would be packaged without writing anything
        gopack -src ./mymod -version v1.2.3 -out /srv/goproxy --dry-run --verbose
    """
    try:
        config = PublishConfig(
            src=Path(src) if src else None,
            version=version or "",
            out=Path(out) if out else None,
            dry_run=dry_run,
        )
        # Reject bad flags before reading anything from disk
        validate_inputs(config)

        project = load_project_config(config.src, config_file)
        config.exclude_globs = set(project.exclude_globs or set())
        if exclude:
            config.exclude_globs |= parse_globs(exclude)
        config.respect_gitignore = (
            respect_gitignore if respect_gitignore is not None
            else bool(project.respect_gitignore)
        )

        result = publish(config)
        print_summary(result, verbose=verbose)

    except GopackError as e:
        _print_error(str(e))
        if verbose:
            err_console.print(traceback.format_exc(), markup=False, highlight=False)
        raise typer.Exit(1)
    except Exception as e:
        _print_error(f"unexpected {type(e).__name__}: {e}")
        if verbose:
            err_console.print(traceback.format_exc(), markup=False, highlight=False)
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
