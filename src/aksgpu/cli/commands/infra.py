#!/usr/bin/env python3
"""
Infra commands for aksgpu CLI

Wraps the Terraform stack: variable files, plan/apply, outputs, and the
Azure CLI calls that follow a successful apply.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from pathlib import Path
from typing import Annotated, Dict, List, Optional

import typer
import yaml
from rich.panel import Panel
from rich.table import Table

from aksgpu.clients.azure import AzureCLI
from aksgpu.clients.terraform import TerraformCLI
from aksgpu.config.terraform_vars import TerraformVariables
from aksgpu.core.errors import AksGpuError, ConfigurationError, ValidationError
from aksgpu.core.prerequisites import require_tools
from aksgpu.core.prompts import Prompter

from ..constants import DEFAULT_PLAN_FILE, DEFAULT_TFVARS_FILE, ExitCode
from ..utils import console, exit_with_error, load_config, setup_logging


# Create a sub-app for infra commands
infra_app = typer.Typer(
    name="infra",
    help="🏗️ Terraform stack for the AKS cluster and GPU node pool",
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
VarFileOption = Annotated[
    str,
    typer.Option("--var-file", help="Terraform variable file, relative to the Terraform directory"),
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
]


def parse_set_options(values: List[str]) -> Dict[str, object]:
    """``--set gpu_node_count=2`` pairs, values parsed as YAML scalars."""
    parsed = {}
    for item in values or []:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise ValidationError(
                f"Invalid --set value '{item}'", suggestions=["Use KEY=VALUE"]
            )
        parsed[key.strip()] = yaml.safe_load(raw) if raw else ""
    return parsed


def _terraform(config_file: Optional[str], config: Optional[str]) -> TerraformCLI:
    settings = load_config(config_file, config)
    terraform = TerraformCLI(settings["terraform"]["directory"])
    if not terraform.exists:
        raise ConfigurationError(
            f"Terraform directory not found: {terraform.working_dir}",
            suggestions=["Set AKSGPU_TERRAFORM_DIR or terraform.directory"],
        )
    return terraform


def _checked_var_file(terraform: TerraformCLI, var_file: str) -> str:
    """Validate the variable file before Terraform sees it."""
    path = terraform.working_dir / var_file
    TerraformVariables.load(str(path)).validate()
    return var_file


def _print_problems(variables: TerraformVariables) -> List[str]:
    problems = variables.problems()
    table = Table(title="Terraform Variables", show_header=True, header_style="bold magenta")
    table.add_column("Variable", style="cyan")
    table.add_column("Value")
    for name, value in variables.to_dict().items():
        table.add_row(name, str(value))
    console.print(table)
    return problems


@infra_app.command("check-vars")
def check_vars(
    var_file: Annotated[str, typer.Argument(help="Variable file (.tfvars.json, JSON or YAML)")],
    verbose: VerboseOption = False,
) -> None:
    """
    🔎 Validate a Terraform variable file against the stack's constraints.
    """
    setup_logging(verbose)
    try:
        variables = TerraformVariables.load(var_file)
    except AksGpuError as e:
        exit_with_error(e, "check_vars")

    problems = _print_problems(variables)
    if problems:
        console.print(f"❌ [bold red]{len(problems)} problem(s) found:[/bold red]")
        for problem in problems:
            console.print(f"  • {problem}")
        raise typer.Exit(ExitCode.INVALID_ARGS)
    console.print("✅ [bold green]Variables are valid[/bold green]")


@infra_app.command("write-vars")
def write_vars(
    set_values: Annotated[
        List[str],
        typer.Option("--set", help="Override a variable, e.g. gpu_node_count=2 (repeatable)"),
    ] = [],
    from_file: Annotated[
        Optional[str],
        typer.Option("--from", help="Start from this variable file instead of the defaults"),
    ] = None,
    output: Annotated[
        Optional[str],
        typer.Option("--output", "-o", help="Output path (default: <terraform dir>/terraform.tfvars.json)"),
    ] = None,
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    📝 Write terraform.tfvars.json from the defaults plus overrides.
    """
    setup_logging(verbose)
    settings = load_config(config_file, config)
    try:
        base = TerraformVariables.load(from_file).to_dict() if from_file else {}
        base.update(parse_set_options(set_values))
        variables = TerraformVariables.from_dict(base)
        target = output or str(Path(settings["terraform"]["directory"]) / DEFAULT_TFVARS_FILE)
        path = variables.write_tfvars_json(target)
    except AksGpuError as e:
        exit_with_error(e, "write_vars")

    console.print(f"💾 Terraform variables written to: [cyan]{path}[/cyan]")


@infra_app.command("plan")
def plan(
    var_file: VarFileOption = DEFAULT_TFVARS_FILE,
    out: Annotated[
        str, typer.Option("--out", help="Plan file to write")
    ] = DEFAULT_PLAN_FILE,
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🗺️ terraform init + plan with the validated variable file.
    """
    setup_logging(verbose)
    try:
        require_tools(["terraform"], operation="infra_plan")
        terraform = _terraform(config_file, config)
        var_file = _checked_var_file(terraform, var_file)
        console.print(
            Panel(
                f"🗺️ [bold cyan]Planning AKS GPU stack[/bold cyan]\n"
                f"Directory: [yellow]{terraform.working_dir}[/yellow]\n"
                f"Variables: [yellow]{var_file}[/yellow]",
                title="Terraform Plan",
                border_style="blue",
            )
        )
        terraform.init()
        terraform.plan(var_file=var_file, out=out)
    except AksGpuError as e:
        exit_with_error(e, "infra_plan")

    console.print(f"✅ [bold green]Plan saved to {out}[/bold green]")


@infra_app.command("apply")
def apply(
    var_file: VarFileOption = DEFAULT_TFVARS_FILE,
    plan_file: Annotated[
        Optional[str], typer.Option("--plan", help="Apply a saved plan instead")
    ] = None,
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")
    ] = False,
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🏗️ terraform init + apply. Creates billable Azure resources.
    """
    setup_logging(verbose)
    try:
        require_tools(["terraform", "az"], operation="infra_apply")
        terraform = _terraform(config_file, config)
        if not plan_file:
            var_file = _checked_var_file(terraform, var_file)

        console.print(
            Panel(
                f"🏗️ [bold cyan]Applying AKS GPU stack[/bold cyan]\n"
                f"Directory: [yellow]{terraform.working_dir}[/yellow]\n"
                f"Input: [yellow]{plan_file or var_file}[/yellow]\n"
                f"[bold red]GPU nodes are billed while they run[/bold red]",
                title="Terraform Apply",
                border_style="red",
            )
        )
        prompter = Prompter(console=console, assume_yes=yes)
        if not prompter.confirm("Create these Azure resources?", default=False):
            console.print("🛑 [yellow]Apply cancelled[/yellow]")
            raise typer.Exit(ExitCode.CANCELLED)

        terraform.init()
        terraform.apply(var_file=var_file, plan_file=plan_file)
        outputs = terraform.outputs()
    except AksGpuError as e:
        exit_with_error(e, "infra_apply")

    console.print("🎉 [bold green]Infrastructure created[/bold green]")
    if outputs.get("resource_group_name") and outputs.get("cluster_name"):
        console.print("\n💡 [cyan]Next steps:[/cyan]")
        console.print("  1. aksgpu infra credentials")
        console.print("  2. aksgpu deploy-operator")
        console.print("  3. aksgpu validate")


@infra_app.command("output")
def output(
    name: Annotated[str, typer.Argument(help="Output name, e.g. cluster_name")],
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
) -> None:
    """
    📤 Print one Terraform output (terraform output -raw).
    """
    try:
        value = _terraform(config_file, config).output(name)
    except AksGpuError as e:
        exit_with_error(e, "infra_output")
    if value is None:
        console.print(f"❌ [bold red]Output '{name}' not found[/bold red]")
        raise typer.Exit(ExitCode.FAILURE)
    typer.echo(value)


def _cluster_identity(
    resource_group: Optional[str],
    cluster_name: Optional[str],
    config_file: Optional[str],
    config: Optional[str],
) -> tuple:
    if not (resource_group and cluster_name):
        outputs = _terraform(config_file, config).outputs()
        resource_group = resource_group or outputs.get("resource_group_name")
        cluster_name = cluster_name or outputs.get("cluster_name")
    if not (resource_group and cluster_name):
        raise ConfigurationError(
            "Could not determine the resource group and cluster name",
            suggestions=[
                "Run 'aksgpu infra apply' first",
                "Or pass --resource-group and --name",
            ],
        )
    return resource_group, cluster_name


@infra_app.command("credentials")
def credentials(
    resource_group: Annotated[
        Optional[str], typer.Option("--resource-group", "-g", help="Resource group")
    ] = None,
    cluster_name: Annotated[
        Optional[str], typer.Option("--name", "-n", help="AKS cluster name")
    ] = None,
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🔑 Merge the cluster's credentials into kubeconfig (az aks get-credentials).
    """
    setup_logging(verbose)
    try:
        require_tools(["az"], operation="infra_credentials")
        resource_group, cluster_name = _cluster_identity(
            resource_group, cluster_name, config_file, config
        )
        azure = AzureCLI()
        azure.require_login()
        azure.aks_get_credentials(resource_group, cluster_name)
    except AksGpuError as e:
        exit_with_error(e, "infra_credentials")

    console.print(
        f"✅ kubectl context set to [cyan]{cluster_name}[/cyan] in [cyan]{resource_group}[/cyan]"
    )


@infra_app.command("scale-gpu")
def scale_gpu(
    count: Annotated[int, typer.Argument(min=0, max=100, help="Target GPU node count")],
    nodepool: Annotated[
        Optional[str], typer.Option("--nodepool", help="GPU node pool name")
    ] = None,
    resource_group: Annotated[
        Optional[str], typer.Option("--resource-group", "-g", help="Resource group")
    ] = None,
    cluster_name: Annotated[
        Optional[str], typer.Option("--name", "-n", help="AKS cluster name")
    ] = None,
    config_file: ConfigFileOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    💤 Scale the GPU node pool, e.g. to 0 to stop GPU billing without teardown.
    """
    setup_logging(verbose)
    try:
        require_tools(["az"], operation="infra_scale_gpu")
        resource_group, cluster_name = _cluster_identity(
            resource_group, cluster_name, config_file, config
        )
        if not nodepool:
            nodepool = _terraform(config_file, config).output("gpu_node_pool_name") or "gpu"
        console.print(f"⚖️  Scaling node pool [cyan]{nodepool}[/cyan] to [yellow]{count}[/yellow]...")
        AzureCLI().scale_nodepool(resource_group, cluster_name, nodepool, count)
    except AksGpuError as e:
        exit_with_error(e, "infra_scale_gpu")

    console.print(f"✅ [bold green]{nodepool} scaled to {count} node(s)[/bold green]")
