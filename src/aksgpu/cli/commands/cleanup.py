#!/usr/bin/env python3
"""
Cleanup command for aksgpu CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Annotated, Optional

import typer
from rich.panel import Panel

from aksgpu.clients.terraform import TerraformCLI
from aksgpu.core.errors import AksGpuError, CancelledError
from aksgpu.core.prompts import Prompter
from aksgpu.teardown.cleanup import CleanupManager

from ..constants import ExitCode
from ..utils import connect_kube, console, exit_with_error, load_config, setup_logging


def cleanup(
    terraform: Annotated[
        bool, typer.Option("--terraform", help="Clean up the Terraform deployment")
    ] = False,
    manual: Annotated[
        bool, typer.Option("--manual", help="Clean up a manually created resource group")
    ] = False,
    emergency: Annotated[
        bool,
        typer.Option("--emergency", help="Delete every AKS/GPU resource group in the subscription"),
    ] = False,
    config_file: Annotated[
        Optional[str],
        typer.Option("--config-file", "-f", help="JSON or YAML configuration file"),
    ] = None,
    config: Annotated[
        Optional[str],
        typer.Option("--config", "-c", help="Inline JSON configuration overrides"),
    ] = None,
    kubeconfig: Annotated[
        Optional[str], typer.Option("--kubeconfig", help="Path to kubeconfig")
    ] = None,
    context: Annotated[
        Optional[str], typer.Option("--context", help="kubeconfig context to use")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    🧹 Remove billable AKS GPU resources.

    Without a mode flag an interactive menu is shown. Destructive steps
    require typing DELETE (or EMERGENCY / DELETE ALL in emergency mode).

    Examples:
        aksgpu cleanup
        aksgpu cleanup --terraform
        aksgpu cleanup --emergency
    """
    setup_logging(verbose)

    if sum([terraform, manual, emergency]) > 1:
        console.print(
            "❌ [bold red]Error: --terraform, --manual and --emergency are mutually exclusive[/bold red]"
        )
        raise typer.Exit(ExitCode.INVALID_ARGS)

    settings = load_config(config_file, config)
    manager = CleanupManager(
        settings,
        kube_factory=lambda: connect_kube(settings, kubeconfig, context),
        terraform=TerraformCLI(settings["terraform"]["directory"]),
        prompter=Prompter(console=console),
        console=console,
    )

    mode = "terraform" if terraform else "manual" if manual else "emergency" if emergency else "interactive"
    console.print(
        Panel(
            f"🧹 [bold cyan]AKS GPU Cleanup[/bold cyan]\n"
            f"Mode: [yellow]{mode}[/yellow]\n"
            f"Terraform directory: [yellow]{settings['terraform']['directory']}[/yellow]",
            title="Cleanup",
            border_style="red",
        )
    )

    try:
        if terraform:
            manager.run_terraform()
        elif manual:
            manager.run_manual()
        elif emergency:
            manager.emergency_cleanup()
        else:
            manager.run_interactive()
    except CancelledError as e:
        console.print(f"🛑 [yellow]{e}[/yellow]")
        raise typer.Exit(ExitCode.CANCELLED)
    except AksGpuError as e:
        exit_with_error(e, "cleanup")
