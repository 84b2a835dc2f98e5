#!/usr/bin/env python3
"""
Audit command for aksgpu CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
from typing import Annotated, Optional

import typer

from aksgpu.audit.resource_audit import ResourceAuditor
from aksgpu.core.errors import AksGpuError

from ..utils import connect_kube, console, exit_with_error, load_config, setup_logging


def audit(
    json_output: Annotated[
        bool, typer.Option("--json", help="Print the audit report as JSON")
    ] = False,
    config_file: Annotated[
        Optional[str],
        typer.Option("--config-file", "-f", help="JSON or YAML configuration file"),
    ] = None,
    config: Annotated[
        Optional[str],
        typer.Option("--config", "-c", help="Inline JSON configuration overrides"),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    💰 Find billable AKS/GPU resources and estimate what they cost.
    """
    setup_logging(verbose)
    settings = load_config(config_file, config)
    auditor = ResourceAuditor(
        settings, kube_factory=lambda: connect_kube(settings), console=console
    )

    try:
        if not json_output:
            console.print("🔍 Checking for billable GPU/AKS resources...")
        report = auditor.collect()
    except AksGpuError as e:
        exit_with_error(e, "audit")

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        auditor.print_report(report)
