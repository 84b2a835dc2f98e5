#!/usr/bin/env python3
"""
Utility functions for aksgpu CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from aksgpu.config.config_loader import ConfigLoader
from aksgpu.core.errors import (
    AksGpuError,
    ErrorHandler,
    ValidationError,
    create_error_context,
    handle_error,
    set_error_handler,
)
from aksgpu.core.kube import KubeClient
from aksgpu.deployment.base import DeploymentResult, DeploymentStatus
from .constants import CATEGORY_EXIT_CODES, ExitCode


# Initialize Rich console
console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Setup Rich logging configuration and unified error handler."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Setup rich logging handler
    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[rich_handler],
        force=True,
    )

    # kubernetes client logs every request at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.INFO)

    # Setup unified error handler
    error_handler = ErrorHandler(console=console, verbose=verbose)
    set_error_handler(error_handler)


def exit_with_error(error: AksGpuError, operation: str) -> None:
    """Render an aksgpu error and exit with the matching exit code."""
    handle_error(
        error,
        context=create_error_context(operation=operation, component="cli"),
        show_traceback=True,
    )
    raise typer.Exit(CATEGORY_EXIT_CODES.get(error.category, ExitCode.FAILURE))


def load_config(config_file: Optional[str], config_json: Optional[str]) -> Dict[str, Any]:
    """Merged configuration, or exit with INVALID_ARGS."""
    try:
        return ConfigLoader.load_config(config_file=config_file, config_json=config_json)
    except AksGpuError as e:
        exit_with_error(e, "load_config")


def connect_kube(
    config: Dict[str, Any], kubeconfig: Optional[str] = None, context: Optional[str] = None
) -> KubeClient:
    """KubeClient for the configured (or given) kubeconfig."""
    return KubeClient.connect(kubeconfig=kubeconfig or config.get("kubeconfig"), context=context)


def parse_replica_overrides(overrides: List[str]) -> Dict[str, int]:
    """Parse ``--replicas ampere=8`` style options.

    Handles both repeated flags and comma-separated values.
    """
    parsed = {}
    for item in overrides or []:
        for part in (p.strip() for p in item.split(",") if p.strip()):
            name, sep, value = part.partition("=")
            if not sep or not name.strip():
                raise ValidationError(
                    f"Invalid replica override '{part}'",
                    suggestions=["Use PROFILE=REPLICAS, e.g. --replicas ampere=8"],
                )
            try:
                parsed[name.strip()] = int(value)
            except ValueError:
                raise ValidationError(
                    f"Replica count for '{name.strip()}' must be an integer, got '{value}'"
                )
    return parsed


def save_summary_with_feedback(
    summary: Dict, output_path: Optional[str], summary_type: str
) -> None:
    """Save summary to file with user feedback."""
    if output_path:
        try:
            with open(output_path, "w") as f:
                json.dump(summary, f, indent=2)
            console.print(
                f"💾 {summary_type} summary saved to: [cyan]{output_path}[/cyan]"
            )
        except IOError as e:
            console.print(f"❌ Failed to save {summary_type} summary: [red]{e}[/red]")
            raise typer.Exit(ExitCode.FAILURE)


def display_deployment_result(result: DeploymentResult, title: str) -> None:
    """Display the steps a deployment went through."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Status", style="bold")

    for i, step in enumerate(result.completed_steps, 1):
        table.add_row(str(i), step, "✅ Done")
    if result.status == DeploymentStatus.FAILED:
        table.add_row(str(len(result.completed_steps) + 1), result.message, "❌ Failed")
    elif result.status == DeploymentStatus.CANCELLED:
        table.add_row(str(len(result.completed_steps) + 1), result.message, "🛑 Cancelled")

    console.print(table)


def deployment_exit_code(result: DeploymentResult) -> int:
    if result.is_success:
        return ExitCode.SUCCESS
    if result.status == DeploymentStatus.CANCELLED:
        return ExitCode.CANCELLED
    if result.error is not None:
        return CATEGORY_EXIT_CODES.get(result.error.category, ExitCode.DEPLOYMENT_FAILURE)
    return ExitCode.DEPLOYMENT_FAILURE
