"""Thin CLI wrapper for platform_build.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from platform_build import __version__
from platform_build.config import get_settings, print_settings_json
from platform_build.errors import PlatformBuildError

app = typer.Typer(
    name="platform-build",
    help="Platform Build - build Drupal projects and publish the live www link",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"platform-build version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def print_error(error: PlatformBuildError) -> None:
    """Render a terminal error, plus captured tool output if any."""
    err_console.print(str(error), style="red", markup=False, soft_wrap=True)
    output = getattr(error, "output", "")
    if output:
        err_console.print(output, markup=False, highlight=False, soft_wrap=True)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Platform Build - build Drupal projects and publish the live www link."""
    try:
        settings = get_settings()
    except ValidationError as e:
        err_console.print(
            f"Invalid configuration: {e}", style="red", markup=False, soft_wrap=True
        )
        raise typer.Exit(code=1) from None
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        typer.echo(print_settings_json(settings))
    else:
        timeout_display = (
            str(settings.build_timeout) if settings.build_timeout else "(none)"
        )
        lock_display = (
            str(settings.lock_timeout)
            if settings.lock_timeout is not None
            else "(blocking)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Build tool:[/bold]")
        console.print(f"  Drush command:       {settings.drush_command}")
        console.print(
            f"  Settings template:   {settings.settings_template}", soft_wrap=True
        )
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")
        console.print(f"  Builds kept:         {settings.keep_builds}")
        console.print()
        console.print("[bold]Timeouts (seconds):[/bold]")
        console.print(f"  Build timeout:       {timeout_display}")
        console.print(f"  Lock timeout:        {lock_display}")


@app.command("build")
def build_cmd(
    environment: Annotated[
        str | None,
        typer.Option("--environment", "-e", help="Environment id used as suffix"),
    ] = None,
    project_root: Annotated[
        Path | None,
        typer.Option("--project-root", "-p", help="Project folder to build"),
    ] = None,
    copy: Annotated[
        bool,
        typer.Option("--copy", help="Copy the repository instead of linking it"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build the current project."""
    from platform_build.builds.service import build
    from platform_build.project import discover_build_target

    try:
        root, environment_id = discover_build_target(project_root, environment)
        report = build(root, environment_id, copy=copy)
    except PlatformBuildError as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    elif report.built:
        console.print(
            f"[green]Build created: {report.build_dir}[/green]", soft_wrap=True
        )
        console.print(f"  {report.live_link} -> {report.build_dir}", soft_wrap=True)
    else:
        console.print("[yellow]Nothing to build[/yellow]")


@app.command("clean")
def clean_cmd(
    keep: Annotated[
        int | None,
        typer.Option("--keep", "-k", min=1, help="Number of builds to keep"),
    ] = None,
    project_root: Annotated[
        Path | None,
        typer.Option("--project-root", "-p", help="Project folder to clean"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Remove old builds of the current project."""
    from platform_build.builds.service import clean_builds
    from platform_build.project import require_project_root

    try:
        root = require_project_root(project_root)
        removed = clean_builds(root, keep=keep)
    except PlatformBuildError as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(json.dumps([str(p) for p in removed], indent=2))
    elif not removed:
        console.print("[yellow]No builds to remove[/yellow]")
    else:
        console.print(f"[bold]Removed {len(removed)} build(s):[/bold]")
        for p in removed:
            console.print(f"  - {p.name}")


if __name__ == "__main__":
    app()
