#!/usr/bin/env python3
"""
Monitoring commands for aksgpu CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Annotated, Optional

import typer
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from aksgpu.core.errors import AksGpuError
from aksgpu.deployment.monitoring import MonitoringDeployment, access_info

from ..constants import ExitCode
from ..utils import (
    connect_kube,
    console,
    deployment_exit_code,
    display_deployment_result,
    exit_with_error,
    load_config,
    setup_logging,
)


# Create a sub-app for monitoring commands
monitoring_app = typer.Typer(
    name="monitoring",
    help="📈 Prometheus + Grafana monitoring for GPU workloads",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

ConfigFileOption = Annotated[
    Optional[str],
    typer.Option("--config-file", "-f", help="JSON or YAML configuration file"),
]
ConfigOption = Annotated[
    Optional[str],
    typer.Option("--config", "-c", help="Inline JSON configuration overrides"),
]
KubeconfigOption = Annotated[
    Optional[str], typer.Option("--kubeconfig", help="Path to kubeconfig")
]
ContextOption = Annotated[
    Optional[str], typer.Option("--context", help="kubeconfig context to use")
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
]


def _print_access_info(monitoring: dict) -> None:
    console.print(
        Panel(
            Text("\n".join(access_info(monitoring))),
            title="📊 Monitoring Access",
            border_style="green",
        )
    )


@monitoring_app.command("deploy")
def deploy(
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    grafana_password: Annotated[
        Optional[str],
        typer.Option(
            "--grafana-password",
            envvar="AKSGPU_GRAFANA_PASSWORD",
            help="Grafana admin password",
        ),
    ] = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🚀 Deploy kube-prometheus-stack with GPU ServiceMonitors.

    Examples:
        aksgpu monitoring deploy
        aksgpu monitoring deploy --grafana-password s3cret
    """
    setup_logging(verbose)
    settings = load_config(config_file, config)
    monitoring = settings["monitoring"]
    if grafana_password:
        monitoring["grafana_admin_password"] = grafana_password

    console.print(
        Panel(
            f"📈 [bold cyan]Deploying monitoring stack[/bold cyan]\n"
            f"Namespace: [yellow]{monitoring['namespace']}[/yellow]\n"
            f"Release: [yellow]{monitoring['release']}[/yellow]\n"
            f"Retention: [yellow]{monitoring['prometheus_retention']}[/yellow]",
            title="Monitoring",
            border_style="blue",
        )
    )

    try:
        kube = connect_kube(settings, kubeconfig, context)
        deployment = MonitoringDeployment(settings, kube, console=console)
        result = deployment.execute()
    except AksGpuError as e:
        exit_with_error(e, "monitoring_deploy")

    display_deployment_result(result, "Monitoring Deployment")
    if result.is_success:
        console.print("🎉 [bold green]Monitoring stack deployed![/bold green]")
        _print_access_info(monitoring)
    elif result.is_failed and result.error is not None:
        exit_with_error(result.error, "monitoring_deploy")
    raise typer.Exit(deployment_exit_code(result))


@monitoring_app.command("verify")
def verify(
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🔍 Check that Prometheus, Grafana and the GPU ServiceMonitor are in place.
    """
    setup_logging(verbose)
    settings = load_config(config_file, config)
    try:
        kube = connect_kube(settings, kubeconfig, context)
        checks = MonitoringDeployment(settings, kube, console=console).verify()
    except AksGpuError as e:
        exit_with_error(e, "monitoring_verify")

    table = Table(title="Monitoring Checks", show_header=True, header_style="bold magenta")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="bold")
    for name, ok in checks.items():
        table.add_row(name.replace("_", " "), "✅ OK" if ok else "⚠️  Missing")
    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)


@monitoring_app.command("access-info")
def show_access_info(
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
) -> None:
    """
    🔗 Print port-forward commands and recommended Grafana dashboards.
    """
    settings = load_config(config_file, config)
    _print_access_info(settings["monitoring"])
