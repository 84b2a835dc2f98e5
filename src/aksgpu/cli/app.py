#!/usr/bin/env python3
"""
Main CLI Application for aksgpu

This module contains the main Typer app and entry point for the aksgpu CLI.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import sys
from typing import Annotated

import typer
from rich.traceback import install

from aksgpu import __version__
from .commands import (
    audit,
    cleanup,
    deploy_operator,
    infra_app,
    monitoring_app,
    timeslicing_app,
    validate,
)
from .constants import ExitCode
from .utils import console

# Install rich traceback handler for better error displays
install(show_locals=False)

# Initialize the main Typer app
app = typer.Typer(
    name="aksgpu",
    help="🎛️ aksgpu - Provision AKS with the NVIDIA GPU Operator and GPU time-slicing",
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
)

# Register commands
app.command("deploy-operator")(deploy_operator)
app.command()(validate)
app.command()(cleanup)
app.command()(audit)
app.add_typer(timeslicing_app, name="timeslicing")
app.add_typer(monitoring_app, name="monitoring")
app.add_typer(infra_app, name="infra")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """
    🎛️ aksgpu

    Provision an AKS cluster with Terraform, install the NVIDIA GPU Operator
    with time-slicing, validate it, watch the bill and tear it all down.
    """
    if version:
        console.print(
            f"🎛️ [bold cyan]aksgpu[/bold cyan] version [green]{__version__}[/green]"
        )
        raise typer.Exit()

    # If no command is provided, show help
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit()


def cli_main() -> None:
    """Entry point for the CLI application."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Operation cancelled by user[/yellow]")
        sys.exit(ExitCode.CANCELLED)
    except Exception as e:
        console.print(f"💥 [bold red]Unexpected error: {e}[/bold red]")
        console.print_exception()
        sys.exit(ExitCode.FAILURE)


if __name__ == "__main__":
    cli_main()
