#!/usr/bin/env python3
"""
Time-slicing commands for aksgpu CLI

Inspect, render and publish the device plugin's time-slicing ConfigMap
without reinstalling the GPU Operator.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Annotated, List, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from aksgpu.config.timeslicing import TimeSlicingConfig, advertised_gpus
from aksgpu.core.errors import AksGpuError

from ..constants import ExitCode
from ..utils import (
    connect_kube,
    console,
    exit_with_error,
    load_config,
    parse_replica_overrides,
    setup_logging,
)


# Create a sub-app for time-slicing commands
timeslicing_app = typer.Typer(
    name="timeslicing",
    help="🧩 Inspect and publish GPU time-slicing profiles",
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
ReplicasOption = Annotated[
    List[str],
    typer.Option("--replicas", "-r", help="Override a profile, e.g. ampere=8 (repeatable)"),
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
]


def _time_slicing(
    config_file: Optional[str], config: Optional[str], replicas: List[str]
) -> tuple:
    settings = load_config(config_file, config)
    time_slicing = TimeSlicingConfig.from_config(settings["time_slicing"])
    for name, count in parse_replica_overrides(replicas).items():
        time_slicing = time_slicing.with_replicas(name, count)
    time_slicing.validate()
    return settings, time_slicing


@timeslicing_app.command("profiles")
def profiles(
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    replicas: ReplicasOption = [],
    gpus: Annotated[
        int, typer.Option("--gpus", "-g", min=1, help="Physical GPUs per node")
    ] = 1,
    verbose: VerboseOption = False,
) -> None:
    """
    📋 List the time-slicing profiles and the capacity they advertise.

    Examples:
        aksgpu timeslicing profiles
        aksgpu timeslicing profiles --gpus 4 --replicas ampere=16
    """
    setup_logging(verbose)
    try:
        _, time_slicing = _time_slicing(config_file, config, replicas)
    except AksGpuError as e:
        exit_with_error(e, "timeslicing_profiles")

    table = Table(title="GPU Time-Slicing Profiles", show_header=True, header_style="bold magenta")
    table.add_column("Profile", style="cyan")
    table.add_column("Replicas", justify="right")
    table.add_column(f"Advertised GPUs ({gpus} physical)", justify="right")
    table.add_column("Default", justify="center")
    for profile in time_slicing.profiles.values():
        table.add_row(
            profile.name,
            str(profile.replicas),
            str(advertised_gpus(gpus, profile.replicas)),
            "✅" if profile.name == time_slicing.default_profile else "",
        )
    console.print(table)


@timeslicing_app.command("render")
def render(
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    replicas: ReplicasOption = [],
    namespace: Annotated[
        Optional[str], typer.Option("--namespace", "-n", help="Target namespace")
    ] = None,
    output: Annotated[
        Optional[str], typer.Option("--output", "-o", help="Write the manifest to a file")
    ] = None,
    verbose: VerboseOption = False,
) -> None:
    """
    📄 Render the time-slicing ConfigMap manifest as YAML.
    """
    setup_logging(verbose)
    try:
        settings, time_slicing = _time_slicing(config_file, config, replicas)
        manifest = time_slicing.to_yaml(namespace or settings["namespace"])
    except AksGpuError as e:
        exit_with_error(e, "timeslicing_render")

    if output:
        with open(output, "w") as f:
            f.write(manifest)
        console.print(f"💾 ConfigMap written to: [cyan]{output}[/cyan]")
    else:
        typer.echo(manifest, nl=False)


@timeslicing_app.command("apply")
def apply(
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    replicas: ReplicasOption = [],
    kubeconfig: Annotated[
        Optional[str], typer.Option("--kubeconfig", help="Path to kubeconfig")
    ] = None,
    context: Annotated[
        Optional[str], typer.Option("--context", help="kubeconfig context to use")
    ] = None,
    restart: Annotated[
        bool,
        typer.Option("--restart/--no-restart", help="Restart the device plugin afterwards"),
    ] = True,
    verbose: VerboseOption = False,
) -> None:
    """
    🔁 Publish the time-slicing ConfigMap to the cluster.

    The device plugin only reads its configuration on start, so by default
    its pods are restarted and awaited.
    """
    setup_logging(verbose)
    try:
        settings, time_slicing = _time_slicing(config_file, config, replicas)
        namespace = settings["namespace"]
        operator = settings["operator"]

        console.print(
            Panel(
                f"🔁 [bold cyan]Applying time-slicing configuration[/bold cyan]\n"
                f"ConfigMap: [yellow]{time_slicing.config_map_name}[/yellow]\n"
                f"Namespace: [yellow]{namespace}[/yellow]\n"
                f"Default profile: [yellow]{time_slicing.default_profile}[/yellow]",
                title="Time-Slicing",
                border_style="blue",
            )
        )

        kube = connect_kube(settings, kubeconfig, context)
        kube.ensure_namespace(namespace)
        action = kube.apply_config_map(time_slicing.to_configmap(namespace))
        console.print(f"✅ ConfigMap [cyan]{time_slicing.config_map_name}[/cyan] {action}")

        if restart:
            selector = operator["device_plugin_selector"]
            deleted = kube.delete_pods(namespace, selector)
            console.print(f"♻️  Restarted {deleted} device plugin pod(s)")
            if deleted:
                with console.status("Waiting for device plugin..."):
                    kube.wait_for_pods_ready(
                        namespace, selector, timeout=float(operator["ready_timeout"])
                    )
                console.print("✅ [bold green]Device plugin is ready[/bold green]")
    except AksGpuError as e:
        exit_with_error(e, "timeslicing_apply")

    raise typer.Exit(ExitCode.SUCCESS)
