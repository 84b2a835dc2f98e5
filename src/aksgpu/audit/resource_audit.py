#!/usr/bin/env python3
"""
Audit of billable AKS/GPU resources in the current Azure subscription.

Collects AKS clusters, GPU virtual machines, scale sets, related resource
groups, the active kubectl context and local Terraform state, then prints
a rough daily/monthly cost estimate and a recommended action.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from kubernetes.client.rest import ApiException
from rich.console import Console
from rich.table import Table

from aksgpu.clients.azure import AzureCLI
from aksgpu.clients.terraform import TerraformCLI
from aksgpu.core.console import Console as ShellConsole
from aksgpu.core.errors import AksGpuError
from aksgpu.core.kube import KubeClient, selector_from_labels
from aksgpu.core.prerequisites import is_available
from aksgpu.core.status import StatusLog

logger = logging.getLogger(__name__)

AKS_DAILY_COST = 2.40
GPU_VM_DAILY_COST = (21.0, 65.0)
STORAGE_DAILY_COST = (1.0, 5.0)
HIGH_COST_THRESHOLD = 20.0
RESOURCE_GROUP_KEYWORDS = ("aks", "gpu", "MC_")


@dataclass
class CostEstimate:
    """Daily and monthly cost range in USD."""

    daily_low: float = 0.0
    daily_high: float = 0.0
    breakdown: List[str] = field(default_factory=list)

    @property
    def monthly_low(self) -> float:
        return self.daily_low * 30

    @property
    def monthly_high(self) -> float:
        return self.daily_high * 30


def estimate_cost(aks_clusters: int, gpu_vms: int) -> CostEstimate:
    """Rough cost of the running resources.

    Storage and networking are only counted when something billable is
    running; an empty subscription estimates to zero.
    """
    estimate = CostEstimate()
    if aks_clusters:
        daily = aks_clusters * AKS_DAILY_COST
        estimate.daily_low += daily
        estimate.daily_high += daily
        estimate.breakdown.append(
            f"AKS Management: {aks_clusters} clusters × ${AKS_DAILY_COST:.2f}/day = ~${daily:.2f}/day"
        )
    if gpu_vms:
        low, high = (gpu_vms * c for c in GPU_VM_DAILY_COST)
        estimate.daily_low += low
        estimate.daily_high += high
        estimate.breakdown.append(
            f"GPU VMs: {gpu_vms} nodes × $21-65/day = ~${low:.0f}-${high:.0f}/day"
        )
    if aks_clusters or gpu_vms:
        estimate.daily_low += STORAGE_DAILY_COST[0]
        estimate.daily_high += STORAGE_DAILY_COST[1]
        estimate.breakdown.append("Storage & Networking: ~$1-5/day")
    return estimate


def recommendation(estimate: CostEstimate) -> List[str]:
    if estimate.daily_low > HIGH_COST_THRESHOLD:
        return [
            "🚨 HIGH COST ALERT: Consider immediate cleanup!",
            "   → Run: aksgpu cleanup --emergency",
        ]
    if estimate.daily_low > 0:
        return [
            "⚠️  Active billable resources detected",
            "   → Run: aksgpu cleanup",
            "   → Or scale down: az aks nodepool scale --node-count 0",
        ]
    return ["✅ No immediate action needed"]


@dataclass
class AuditReport:
    subscription: str = ""
    aks_clusters: List[Dict[str, Any]] = field(default_factory=list)
    gpu_vms: List[Dict[str, Any]] = field(default_factory=list)
    scale_sets: List[Dict[str, Any]] = field(default_factory=list)
    resource_groups: List[str] = field(default_factory=list)
    kube_context: Optional[str] = None
    gpu_nodes: int = 0
    gpu_operator_installed: bool = False
    terraform_state: bool = False
    terraform_resources: Optional[int] = None
    terraform_resource_group: Optional[str] = None

    def cost(self) -> CostEstimate:
        return estimate_cost(len(self.aks_clusters), len(self.gpu_vms))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        estimate = self.cost()
        data["cost"] = {
            "daily_low": estimate.daily_low,
            "daily_high": estimate.daily_high,
            "monthly_low": estimate.monthly_low,
            "monthly_high": estimate.monthly_high,
        }
        data["recommendation"] = [line.strip() for line in recommendation(estimate)]
        return data


class ResourceAuditor:
    """Gathers an AuditReport and prints it."""

    def __init__(
        self,
        config: Dict[str, Any],
        kube_factory: Callable[[], KubeClient],
        azure: Optional[AzureCLI] = None,
        terraform: Optional[TerraformCLI] = None,
        console: Optional[Console] = None,
        shell: Optional[ShellConsole] = None,
    ):
        self.config = config
        self.kube_factory = kube_factory
        self.azure = azure or AzureCLI()
        self.terraform = terraform or TerraformCLI(
            config["terraform"]["directory"], console=ShellConsole(shellVerbose=False)
        )
        self.console = console or Console()
        self.shell = shell or ShellConsole(shellVerbose=False)
        self.log = StatusLog(self.console)

    def collect(self) -> AuditReport:
        account = self.azure.require_login()
        report = AuditReport(subscription=account.get("name", ""))
        report.aks_clusters = self.azure.list_aks_clusters()
        report.gpu_vms = self.azure.list_gpu_vms()
        report.scale_sets = self.azure.list_vmss()
        report.resource_groups = [
            g["name"]
            for g in self.azure.list_groups()
            if any(k in g.get("name", "") for k in RESOURCE_GROUP_KEYWORDS)
        ]
        self._collect_kubernetes(report)
        self._collect_terraform(report)
        return report

    def _collect_kubernetes(self, report: AuditReport) -> None:
        if not is_available("kubectl"):
            return
        result = self.shell.run(["kubectl", "config", "current-context"], timeout=30)
        context = result.output.strip() if result.ok else ""
        if not context:
            return
        report.kube_context = context
        try:
            kube = self.kube_factory()
            if not kube.is_reachable():
                return
            selector = selector_from_labels(self.config.get("gpu_node_selector", {}))
            report.gpu_nodes = len(kube.list_nodes(selector))
            report.gpu_operator_installed = kube.namespace_exists(self.config["namespace"])
        except ApiException as e:
            logger.debug(f"Skipping cluster checks: {e.status} {e.reason}")
        except AksGpuError as e:
            logger.debug(f"Skipping cluster checks: {e}")

    def _collect_terraform(self, report: AuditReport) -> None:
        if not (self.terraform.exists and self.terraform.has_state()):
            return
        report.terraform_state = True
        if not is_available("terraform"):
            return
        try:
            report.terraform_resources = len(self.terraform.state_list())
        except AksGpuError as e:
            logger.debug(f"terraform state list failed: {e}")
        report.terraform_resource_group = self.terraform.output("resource_group_name")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def print_report(self, report: AuditReport) -> None:
        self.log.header("AZURE RESOURCE AUDIT")
        self.log.line(f"📋 Current subscription: {report.subscription}")

        self.log.header("AKS CLUSTERS")
        if report.aks_clusters:
            self.log.success(f"Found {len(report.aks_clusters)} AKS cluster(s)")
            self.console.print(self._table(
                report.aks_clusters,
                [("Name", "name"), ("ResourceGroup", "resourceGroup"), ("Location", "location"),
                 ("Status", ("powerState", "code"))],
            ))
            self.log.cost("💰 Each cluster costs ~$0.10/hour + node costs")
        else:
            self.log.info("No AKS clusters found")

        self.log.header("GPU VIRTUAL MACHINES")
        if report.gpu_vms:
            self.log.success(f"Found {len(report.gpu_vms)} GPU VM(s)")
            self.console.print(self._table(
                report.gpu_vms,
                [("Name", "name"), ("ResourceGroup", "resourceGroup"),
                 ("Size", ("hardwareProfile", "vmSize")), ("Status", "powerState")],
            ))
            self.log.cost("💰 GPU VMs cost $20-65+ per day each!")
        else:
            self.log.info("No GPU VMs found")

        self.log.header("VIRTUAL MACHINE SCALE SETS")
        if report.scale_sets:
            self.log.success(f"Found {len(report.scale_sets)} VMSS instance(s)")
            self.console.print(self._table(
                report.scale_sets,
                [("Name", "name"), ("ResourceGroup", "resourceGroup"),
                 ("Capacity", ("sku", "capacity")), ("VMSize", ("sku", "name"))],
            ))
            self.log.cost("💰 Scale sets may contain expensive GPU nodes")
        else:
            self.log.info("No Virtual Machine Scale Sets found")

        self.log.header("RESOURCE GROUPS (AKS/GPU RELATED)")
        if report.resource_groups:
            for name in report.resource_groups:
                self.log.line(f"  {name}")
            self.log.warning("Found resource groups with AKS/GPU keywords")
        else:
            self.log.info("No AKS/GPU resource groups found")

        self.log.header("KUBERNETES CONTEXT")
        if report.kube_context:
            self.log.success(f"Current kubectl context: {report.kube_context}")
            if report.gpu_nodes:
                self.log.success(f"Found {report.gpu_nodes} GPU node(s) in cluster")
            if report.gpu_operator_installed:
                self.log.success("NVIDIA GPU Operator is installed")
        else:
            self.log.info("No active kubectl context")

        self.log.header("TERRAFORM STATE")
        if report.terraform_state:
            self.log.success("Terraform state found")
            if report.terraform_resources is not None:
                self.log.line(f"  Resources in state: {report.terraform_resources}")
            if report.terraform_resource_group:
                self.log.line(f"  Managed resource group: {report.terraform_resource_group}")
        else:
            self.log.info("No Terraform state found")

        estimate = report.cost()
        self.log.header("COST ESTIMATION")
        for line in estimate.breakdown:
            self.log.line(line)
        if estimate.daily_low > 0:
            self.log.cost(
                f"💰 ESTIMATED DAILY COST: ${estimate.daily_low:.2f} - ${estimate.daily_high:.2f}"
            )
            self.log.cost(
                f"💰 ESTIMATED MONTHLY COST: ${estimate.monthly_low:.2f} - ${estimate.monthly_high:.2f}"
            )
            self.log.warning("⚠️  Resources are currently BILLABLE!")
        else:
            self.log.success("✅ No expensive resources detected")

        self.log.header("RECOMMENDED ACTIONS")
        for line in recommendation(estimate):
            self.log.line(line)
        self.log.line("📊 Monitor costs: Azure Portal → Cost Management")

    @staticmethod
    def _table(rows: List[Dict[str, Any]], columns: List[tuple]) -> Table:
        table = Table(header_style="bold magenta")
        for title, _ in columns:
            table.add_column(title)
        for row in rows:
            cells = []
            for _, key in columns:
                value: Any = row
                for part in key if isinstance(key, tuple) else (key,):
                    value = value.get(part) if isinstance(value, dict) else None
                cells.append("" if value is None else str(value))
            table.add_row(*cells)
        return table
