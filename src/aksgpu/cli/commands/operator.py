#!/usr/bin/env python3
"""
Deploy-operator command for aksgpu CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Annotated, List, Optional

import typer
from rich.panel import Panel

from aksgpu.core.errors import AksGpuError
from aksgpu.core.prompts import Prompter
from aksgpu.deployment.gpu_operator import NEXT_STEPS, GPUOperatorDeployment

from ..constants import DEFAULT_VALUES_FILE, ExitCode
from ..utils import (
    connect_kube,
    console,
    deployment_exit_code,
    display_deployment_result,
    exit_with_error,
    load_config,
    parse_replica_overrides,
    save_summary_with_feedback,
    setup_logging,
)


def deploy_operator(
    config_file: Annotated[
        Optional[str],
        typer.Option("--config-file", "-f", help="JSON or YAML configuration file"),
    ] = None,
    config: Annotated[
        Optional[str],
        typer.Option("--config", "-c", help="Inline JSON configuration overrides"),
    ] = None,
    replicas: Annotated[
        List[str],
        typer.Option("--replicas", "-r", help="Override a profile, e.g. ampere=8 (repeatable)"),
    ] = [],
    kubeconfig: Annotated[
        Optional[str], typer.Option("--kubeconfig", help="Path to kubeconfig")
    ] = None,
    context: Annotated[
        Optional[str], typer.Option("--context", help="kubeconfig context to use")
    ] = None,
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Answer yes to y/N questions")
    ] = False,
    values_only: Annotated[
        bool,
        typer.Option("--values-only", help="Write the rendered Helm values file and exit"),
    ] = False,
    values_output: Annotated[
        str,
        typer.Option("--values-output", help="Where --values-only writes the values file"),
    ] = DEFAULT_VALUES_FILE,
    skip_time_slicing: Annotated[
        bool,
        typer.Option("--skip-time-slicing", help="Install the operator without time-slicing"),
    ] = False,
    summary_output: Annotated[
        Optional[str],
        typer.Option("--summary-output", "-s", help="Output file for deployment summary JSON"),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    🚀 Install the NVIDIA GPU Operator with GPU time-slicing.

    Adds the NVIDIA Helm repository, installs the gpu-operator chart, publishes
    the time-slicing ConfigMap and restarts the device plugin so that every
    physical GPU is advertised as several schedulable GPUs.
    """
    setup_logging(verbose)
    settings = load_config(config_file, config)

    try:
        for name, count in parse_replica_overrides(replicas).items():
            settings["time_slicing"]["profiles"][name] = count

        if values_only:
            deployment = GPUOperatorDeployment(
                settings, kube=None, skip_time_slicing=skip_time_slicing, console=console
            )
            path = deployment.render_values(values_output)
            console.print(f"📝 Helm values written to: [cyan]{path}[/cyan]")
            raise typer.Exit(ExitCode.SUCCESS)

        console.print(
            Panel(
                f"🚀 [bold cyan]Deploying NVIDIA GPU Operator[/bold cyan]\n"
                f"Namespace: [yellow]{settings['namespace']}[/yellow]\n"
                f"Chart: [yellow]{settings['operator']['chart']}[/yellow]\n"
                f"Time-slicing: [yellow]"
                f"{'disabled' if skip_time_slicing else settings['time_slicing']['default_profile']}"
                f"[/yellow]",
                title="GPU Operator",
                border_style="blue",
            )
        )

        kube = connect_kube(settings, kubeconfig, context)
        deployment = GPUOperatorDeployment(
            settings,
            kube,
            skip_time_slicing=skip_time_slicing,
            prompter=Prompter(console=console, assume_yes=yes),
            console=console,
        )
        result = deployment.execute()
    except typer.Exit:
        raise
    except AksGpuError as e:
        exit_with_error(e, "deploy_operator")

    display_deployment_result(result, "GPU Operator Deployment")
    if result.is_success:
        save_summary_with_feedback(deployment.summary, summary_output, "Deployment")
        console.print("🎉 [bold green]GPU Operator deployment completed![/bold green]")
        console.print("\n💡 [cyan]Next steps:[/cyan]")
        for i, step in enumerate(NEXT_STEPS, 1):
            console.print(f"  {i}. {step}")
    elif result.is_failed and result.error is not None:
        exit_with_error(result.error, "deploy_operator")
    raise typer.Exit(deployment_exit_code(result))
