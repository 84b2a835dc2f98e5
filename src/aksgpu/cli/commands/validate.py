#!/usr/bin/env python3
"""
Validate command for aksgpu CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Annotated, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from aksgpu.core.errors import AksGpuError, create_error_context, handle_error
from aksgpu.validation.suite import ValidationReport, ValidationSuite

from ..constants import ExitCode
from ..utils import (
    connect_kube,
    console,
    load_config,
    save_summary_with_feedback,
    setup_logging,
)


def display_validation_table(report: ValidationReport) -> None:
    table = Table(title="Validation Results", show_header=True, header_style="bold magenta")
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Status", style="bold")
    table.add_column("Check", style="cyan")
    table.add_column("Detail")
    for i, result in enumerate(report.results, 1):
        if result.skipped:
            status = "⏭️  Skipped"
        elif result.passed:
            status = "✅ Passed"
        else:
            status = "❌ Failed"
        table.add_row(str(i), status, result.name, result.detail)
    console.print(table)


def validate(
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
    skip_workloads: Annotated[
        bool,
        typer.Option("--skip-workloads", help="Skip the test Job and Deployment checks"),
    ] = False,
    summary_output: Annotated[
        Optional[str],
        typer.Option("--summary-output", "-s", help="Output file for validation summary JSON"),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    ✅ Validate the GPU Operator and time-slicing on a live cluster.

    Runs eight checks from cluster connectivity to scheduling more
    GPU-requesting pods than there are physical GPUs. Exits non-zero if any
    check fails.
    """
    setup_logging(verbose)
    settings = load_config(config_file, config)

    console.print(
        Panel(
            f"✅ [bold cyan]Validating AKS GPU setup[/bold cyan]\n"
            f"Namespace: [yellow]{settings['namespace']}[/yellow]\n"
            f"Workload checks: [yellow]{'skipped' if skip_workloads else 'enabled'}[/yellow]",
            title="Validation",
            border_style="blue",
        )
    )

    try:
        kube = connect_kube(settings, kubeconfig, context)
    except AksGpuError as e:
        # a cluster we cannot even configure fails every check
        handle_error(e, context=create_error_context(operation="validate"))
        raise typer.Exit(ExitCode.VALIDATION_FAILURE)

    suite = ValidationSuite(settings, kube, console=console)
    report = suite.run(include_workloads=not skip_workloads)
    suite.print_summary()
    display_validation_table(report)
    save_summary_with_feedback(report.to_dict(), summary_output, "Validation")

    if not report.all_passed:
        raise typer.Exit(ExitCode.VALIDATION_FAILURE)
