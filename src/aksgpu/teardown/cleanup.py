#!/usr/bin/env python3
"""
Teardown of billable AKS GPU resources.

Cleanup is layered: in-cluster objects first (test workloads, the GPU
Operator release and namespace, the ClusterPolicy), then the Azure
resources behind the cluster, either through ``terraform destroy`` or by
deleting a manually created resource group, and finally local kubectl
contexts and Azure CLI credentials. Every destructive step asks for a
typed confirmation word.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from kubernetes.client.rest import ApiException
from rich.console import Console
from rich.table import Table

from aksgpu.clients.azure import AzureCLI
from aksgpu.clients.helm import HelmCLI
from aksgpu.clients.terraform import TerraformCLI
from aksgpu.core.console import Console as ShellConsole
from aksgpu.core.errors import AksGpuError, CancelledError, ConfigurationError
from aksgpu.core.kube import KubeClient
from aksgpu.core.prompts import Prompter
from aksgpu.core.status import StatusLog

logger = logging.getLogger(__name__)

CLUSTER_POLICY_API = ("nvidia.com", "v1", "clusterpolicies")
CLUSTER_POLICY_NAME = "cluster-policy"

MENU_OPTIONS = [
    ("1", "Clean up Kubernetes resources only"),
    ("2", "Clean up Terraform deployment (if exists)"),
    ("3", "Clean up manual Azure resources"),
    ("4", "Full cleanup (K8s + Azure resources)"),
    ("5", "Local configuration cleanup"),
    ("6", "Emergency cleanup (all AKS/GPU resources)"),
    ("7", "Exit without changes"),
]


@dataclass
class DetectedSetup:
    """What kind of deployment appears to exist."""

    terraform: bool
    manual: bool


class CleanupManager:
    """Runs the individual cleanup phases and the interactive menu."""

    def __init__(
        self,
        config: Dict[str, Any],
        kube_factory: Callable[[], KubeClient],
        azure: Optional[AzureCLI] = None,
        helm: Optional[HelmCLI] = None,
        terraform: Optional[TerraformCLI] = None,
        prompter: Optional[Prompter] = None,
        console: Optional[Console] = None,
        shell: Optional[ShellConsole] = None,
    ):
        """
        Args:
            config: Merged configuration
            kube_factory: Builds a connected KubeClient; may raise ConnectionError
            azure: Azure CLI wrapper
            helm: Helm CLI wrapper
            terraform: Terraform CLI bound to the stack directory
            prompter: Source of confirmations
            console: Rich console for output
            shell: Runner for the kubectl config commands
        """
        self.config = config
        self.settings = config["cleanup"]
        self.kube_factory = kube_factory
        self.azure = azure or AzureCLI()
        self.helm = helm or HelmCLI()
        self.terraform = terraform or TerraformCLI(config["terraform"]["directory"])
        self.console = console or Console()
        self.prompter = prompter or Prompter(console=self.console)
        self.shell = shell or ShellConsole(shellVerbose=False)
        self.log = StatusLog(self.console)

    def show_cost_info(self) -> None:
        self.console.print()
        self.log.cost("=== ESTIMATED COST SAVINGS ===")
        self.log.cost("GPU VMs (Standard_NC6s_v3): ~$0.90-2.70/hour per node")
        self.log.cost("AKS cluster: ~$0.10/hour (management fee)")
        self.log.cost("Storage, networking: ~$5-20/month")
        self.log.cost("💰 Deleting this setup saves: $25-100+/day if left running!")
        self.console.print()

    def detect_setup(self) -> DetectedSetup:
        terraform = self.terraform.exists and self.terraform.has_state()
        try:
            manual = self.azure.group_exists(self.settings["manual_resource_group"])
        except AksGpuError as e:
            logger.debug(f"Could not check manual resource group: {e}")
            manual = False
        return DetectedSetup(terraform=terraform, manual=manual)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def cleanup_kubernetes(self) -> bool:
        """Delete in-cluster resources. Returns False if the cluster was unreachable."""
        self.log.info("Cleaning up Kubernetes resources...")
        try:
            kube = self.kube_factory()
        except AksGpuError as e:
            logger.debug(f"Kubernetes connection failed: {e}")
            kube = None
        if kube is None or not kube.is_reachable():
            self.log.warning("Cannot connect to Kubernetes cluster - skipping K8s cleanup")
            return False

        self.log.info("Removing test workloads...")
        for workload in self.settings.get("workloads", []):
            self._delete_workload(kube, workload)

        namespace = self.config["namespace"]
        release = self.config["operator"]["release"]
        if self.helm.release_exists(release, namespace):
            self.log.info("Uninstalling GPU Operator...")
            self.helm.uninstall(release, namespace)

        if kube.delete_namespace(namespace):
            self.log.info(f"Namespace {namespace} deleted")

        group, version, plural = CLUSTER_POLICY_API
        try:
            kube.delete_cluster_custom_object(group, version, plural, CLUSTER_POLICY_NAME)
        except ApiException as e:
            self.log.warning(f"Could not delete ClusterPolicy: {e.reason}")

        self.log.success("Kubernetes resources cleaned up")
        return True

    def _delete_workload(self, kube: KubeClient, workload: Dict[str, str]) -> None:
        kind = workload["kind"]
        name = workload["name"]
        namespace = workload.get("namespace", "default")
        try:
            if kind == "deployment":
                deleted = kube.delete_deployment(name, namespace)
            elif kind == "job":
                deleted = kube.delete_job(name, namespace)
            elif kind == "namespace":
                deleted = kube.delete_namespace(name)
            else:
                raise ConfigurationError(
                    f"Unknown workload kind '{kind}' in cleanup.workloads",
                    suggestions=["Use one of: deployment, job, namespace"],
                )
        except ApiException as e:
            self.log.warning(f"Could not delete {kind} {name}: {e.reason}")
            return
        if deleted:
            self.log.info(f"Deleted {kind} {name}")

    def cleanup_terraform(self) -> None:
        self.log.info("Cleaning up Terraform resources...")
        if not self.terraform.exists:
            raise ConfigurationError(
                f"Terraform directory not found: {self.terraform.working_dir}",
                suggestions=["Set AKSGPU_TERRAFORM_DIR or terraform.directory"],
            )
        if not self.terraform.has_state():
            self.log.info("No Terraform state found - nothing to destroy")
            return

        resource_group = self.terraform.output("resource_group_name")
        if resource_group:
            self.log.warning(f"This will destroy ALL resources in resource group: {resource_group}")
        else:
            self.log.warning("This will destroy all Azure resources created by Terraform!")

        if not self.prompter.confirm_word(
            "Are you sure you want to continue? Type 'DELETE' to confirm", "DELETE"
        ):
            raise CancelledError("Terraform cleanup cancelled")

        self.log.info("Running terraform destroy...")
        self.terraform.destroy()
        for removed in self.terraform.remove_local_state():
            logger.debug(f"Removed {removed}")
        self.log.success("Terraform resources destroyed")
        self.log.cost("💰 Azure resources deleted - billing stopped!")

    def cleanup_manual_azure(self) -> None:
        self.log.info("Cleaning up manually created Azure resources...")
        resource_group = self.prompter.ask(
            "Enter resource group name", default=self.settings["manual_resource_group"]
        )
        if not self.azure.group_exists(resource_group):
            self.log.warning(f"Resource group '{resource_group}' not found")
            return

        self.log.info(f"Resources in '{resource_group}' that will be deleted:")
        try:
            self.console.print(self._resource_table(self.azure.list_resources(resource_group)))
        except AksGpuError:
            self.log.warning("Could not list resources")

        self.log.warning(f"This will DELETE ALL resources in resource group: {resource_group}")
        self.log.warning("This action cannot be undone!")
        if not self.prompter.confirm_word("Type 'DELETE' to confirm deletion", "DELETE"):
            raise CancelledError("Manual cleanup cancelled")

        self.log.info(f"Deleting resource group '{resource_group}'...")
        self.azure.delete_group(resource_group, no_wait=True)
        self.log.success("Resource group deletion initiated")
        self.log.info("Deletion is running in background. Check Azure portal for progress.")
        self.log.cost(f"💰 All resources in '{resource_group}' will be deleted - billing stopped!")

    def cleanup_local_config(self) -> None:
        self.log.info("Cleaning up local configuration...")
        if self.prompter.confirm("Remove kubectl contexts for deleted clusters?", default=False):
            contexts = self.matching_contexts()
            if not contexts:
                self.log.info("No AKS GPU contexts found")
            for context in contexts:
                self.log.info(f"Removing kubectl context: {context}")
                self.shell.sh(["kubectl", "config", "delete-context", context], canFail=True)

        if self.prompter.confirm("Clear Azure CLI cache?", default=False):
            self.azure.account_clear()
            self.log.info("Azure CLI cache cleared")
        self.log.success("Local configuration cleaned up")

    def matching_contexts(self) -> List[str]:
        output = self.shell.sh(
            ["kubectl", "config", "get-contexts", "-o", "name"], canFail=True
        )
        pattern = re.compile(self.settings["context_pattern"])
        return [line.strip() for line in output.splitlines() if pattern.search(line)]

    def emergency_cleanup(self) -> List[str]:
        """Delete every resource group whose name carries an AKS/GPU keyword.

        Returns:
            Names of resource groups whose deletion was started.
        """
        self.log.error("=== EMERGENCY CLEANUP MODE ===")
        self.log.warning("This will attempt to delete ALL AKS and GPU-related resources!")
        if not self.prompter.confirm_word("Type 'EMERGENCY' to continue", "EMERGENCY"):
            self.log.info("Emergency cleanup cancelled")
            return []

        self.log.info("Searching for AKS/GPU resource groups...")
        keywords = [k.lower() for k in self.settings["emergency_keywords"]]
        groups = [
            g["name"]
            for g in self.azure.list_groups()
            if any(k in g.get("name", "").lower() for k in keywords)
        ]
        if not groups:
            self.log.info("No AKS/GPU resource groups found")
            return []

        self.log.line("Found resource groups:")
        for name in groups:
            self.log.line(f"  {name}")
        if not self.prompter.confirm_word(
            "Delete all these resource groups? Type 'DELETE ALL' to confirm", "DELETE ALL"
        ):
            self.log.info("Emergency cleanup cancelled")
            return []

        started = []
        for name in groups:
            self.log.info(f"Deleting resource group: {name}")
            try:
                self.azure.delete_group(name, no_wait=True)
                started.append(name)
            except AksGpuError:
                self.log.warning(f"Failed to delete {name}")
        self.log.success("Emergency cleanup initiated for all found resource groups")
        return started

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run_terraform(self) -> None:
        self.cleanup_kubernetes()
        self.cleanup_terraform()

    def run_manual(self) -> None:
        self.cleanup_kubernetes()
        self.cleanup_manual_azure()

    def run_interactive(self) -> Optional[str]:
        """Menu-driven cleanup. Returns the chosen option, or None on exit."""
        self.show_cost_info()
        self.log.info("=== AKS GPU CLEANUP ===")
        self.log.warning("This removes billable Azure resources!")

        setup = self.detect_setup()
        self.log.line("Detected setup types:")
        if setup.terraform:
            self.log.line("  ✓ Terraform deployment found")
        if setup.manual:
            self.log.line("  ✓ Manual deployment found")
        if not (setup.terraform or setup.manual):
            self.log.line("  ℹ No active deployments detected")

        self.console.print()
        self.log.line("Cleanup options:")
        for key, label in MENU_OPTIONS:
            self.log.line(f"{key}. {label}")
        choice = self.prompter.choose("Choose an option", [key for key, _ in MENU_OPTIONS])

        if choice == "7":
            self.log.info("Exiting without changes")
            return None
        if choice == "1":
            self.cleanup_kubernetes()
        elif choice == "2":
            if setup.terraform:
                self.run_terraform()
            else:
                self.log.warning("No Terraform deployment found")
        elif choice == "3":
            self.run_manual()
        elif choice == "4":
            self.cleanup_kubernetes()
            if setup.terraform:
                self.cleanup_terraform()
            else:
                self.cleanup_manual_azure()
        elif choice == "5":
            self.cleanup_local_config()
        elif choice == "6":
            self.emergency_cleanup()

        if choice not in ("5", "6"):
            self.console.print()
            self.cleanup_local_config()
        self.finish()
        return choice

    def finish(self) -> None:
        self.console.print()
        self.log.success("=== CLEANUP COMPLETED ===")
        self.log.cost("💰 Check Azure portal to verify all resources are deleted")
        self.log.info("💡 Tip: Monitor your Azure billing for a few days to ensure charges stopped")

    @staticmethod
    def _resource_table(resources: List[Dict[str, Any]]) -> Table:
        table = Table(header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Location")
        for resource in resources:
            table.add_row(
                resource.get("name", ""), resource.get("type", ""), resource.get("location", "")
            )
        return table
