#!/usr/bin/env python3
"""
NVIDIA GPU Operator deployment with time-slicing.

Installs the GPU Operator Helm chart, publishes the time-slicing ConfigMap
the device plugin reads, restarts the device plugin so it picks the
configuration up, and reports the resulting GPU capacity.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.table import Table

from aksgpu.config.config_loader import ConfigLoader
from aksgpu.config.timeslicing import TimeSlicingConfig, parse_replicas
from aksgpu.core.errors import CancelledError
from aksgpu.core.kube import GPU_RESOURCE_NAME, KubeClient
from .base import BaseDeployment, Step

logger = logging.getLogger(__name__)


def build_operator_values(config: Dict[str, Any], time_slicing_enabled: bool = True) -> Dict[str, Any]:
    """Helm values for the gpu-operator chart.

    The device plugin is pointed at the time-slicing ConfigMap and its
    default profile unless time-slicing is disabled; MIG is left to
    software time-slicing.
    """
    operator = config["operator"]
    time_slicing = config["time_slicing"]
    values = {
        "operator": {"defaultRuntime": "containerd"},
        "driver": {"enabled": bool(operator.get("driver_enabled", True))},
        "toolkit": {"enabled": bool(operator.get("toolkit_enabled", True))},
        "nfd": {"enabled": bool(operator.get("node_feature_discovery_enabled", True))},
        "devicePlugin": {"enabled": True},
        "mig": {"strategy": time_slicing.get("mig_strategy", "none")},
        "migManager": {"enabled": False},
        "dcgmExporter": {"enabled": bool(operator.get("dcgm_exporter_enabled", True))},
        "daemonsets": {"tolerations": list(config.get("gpu_tolerations", []))},
    }
    if time_slicing_enabled:
        values["devicePlugin"]["config"] = {
            "name": time_slicing["config_map_name"],
            "default": time_slicing["default_profile"],
        }
    return ConfigLoader.deep_merge(values, operator.get("values") or {})


class GPUOperatorDeployment(BaseDeployment):
    """Installs the NVIDIA GPU Operator and configures time-slicing."""

    DEPLOYMENT_TYPE = "gpu-operator"

    def __init__(
        self,
        config: Dict[str, Any],
        kube: KubeClient,
        skip_time_slicing: bool = False,
        **kwargs,
    ):
        super().__init__(config, kube, **kwargs)
        self.operator = config["operator"]
        self.namespace = config["namespace"]
        self.skip_time_slicing = skip_time_slicing
        self.time_slicing = TimeSlicingConfig.from_config(config["time_slicing"])
        self.summary: Dict[str, Any] = {}

    def steps(self) -> List[Step]:
        steps = [
            ("Check prerequisites", self.check_prerequisites),
            ("Add NVIDIA Helm repository", self.add_nvidia_repo),
            ("Create namespace", lambda: self.create_namespace(self.namespace)),
        ]
        if not self.skip_time_slicing:
            steps.append(("Publish time-slicing configuration", self.publish_time_slicing))
        steps += [
            ("Deploy GPU Operator", self.deploy_gpu_operator),
            ("Wait for GPU Operator", self.wait_for_operator),
        ]
        if not self.skip_time_slicing:
            steps.append(("Restart device plugin", self.restart_device_plugin))
        steps.append(("Verify installation", self.verify_installation))
        return steps

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def check_prerequisites(self) -> None:
        self.check_tools_and_cluster()
        gpu_nodes = self.count_gpu_nodes()
        if gpu_nodes:
            self.log.success(f"Found {gpu_nodes} GPU node(s)")
            return

        self.log.warning(f"No GPU nodes found with label '{self.gpu_selector}'")
        self.log.info("Available nodes:")
        for node in self.kube.list_nodes():
            self.log.line(f"  {node.metadata.name}")
        if not self.prompter.confirm("Continue anyway?", default=False):
            raise CancelledError("Deployment cancelled: no GPU nodes")

    def add_nvidia_repo(self) -> None:
        self.add_helm_repo(self.operator["helm_repo_name"], self.operator["helm_repo_url"])

    def publish_time_slicing(self) -> None:
        self.log.info("Applying GPU time-slicing configuration...")
        body = self.time_slicing.to_configmap(self.namespace)
        action = self.kube.apply_config_map(body)
        profiles = ", ".join(
            f"{p.name}={p.replicas}" for p in self.time_slicing.profiles.values()
        )
        self.log.success(
            f"ConfigMap {self.time_slicing.config_map_name} {action} ({profiles})"
        )

    def render_values(self, path: Optional[str] = None) -> Path:
        """Write the Helm values file and return its path."""
        values = build_operator_values(self.config, not self.skip_time_slicing)
        if path is None:
            handle = tempfile.NamedTemporaryFile(
                "w", prefix="gpu-operator-values-", suffix=".yaml", delete=False
            )
            path = handle.name
            handle.close()
        out = Path(path)
        with open(out, "w") as f:
            yaml.safe_dump(values, f, sort_keys=False)
        logger.debug(f"Wrote GPU Operator values to {out}")
        return out

    def deploy_gpu_operator(self) -> None:
        self.log.info("Deploying NVIDIA GPU Operator...")
        values_file = self.render_values()
        try:
            self.helm.upgrade_install(
                release=self.operator["release"],
                chart=self.operator["chart"],
                namespace=self.namespace,
                values_file=str(values_file),
                version=self.operator.get("version"),
                wait=True,
                timeout=int(self.operator["install_timeout"]),
            )
        finally:
            values_file.unlink(missing_ok=True)
        self.log.success("GPU Operator deployed")

    def wait_for_operator(self) -> None:
        timeout = float(self.operator["ready_timeout"])
        self.wait_for_pods(self.namespace, self.operator["operator_selector"], timeout)
        self.log.info("Waiting for device plugin to be ready...")
        self.wait_for_pods(self.namespace, self.operator["device_plugin_selector"], timeout)
        self.log.success("GPU Operator is ready")

    def restart_device_plugin(self) -> None:
        selector = self.operator["device_plugin_selector"]
        self.log.info("Restarting device plugin to apply time-slicing configuration...")
        deleted = self.kube.delete_pods(self.namespace, selector)
        self.log.info(f"Deleted {deleted} device plugin pod(s)")
        self.sleep(float(self.operator.get("restart_settle_seconds", 10)))
        self.wait_for_pods(self.namespace, selector, float(self.operator["ready_timeout"]))
        self.log.success("Time-slicing configuration applied")

    def verify_installation(self) -> None:
        self.log.info("Verifying GPU Operator installation...")

        nodes = self.kube.list_nodes(self.gpu_selector)
        node_table = Table(title="GPU nodes", header_style="bold magenta")
        node_table.add_column("Node", style="cyan")
        node_table.add_column(f"{GPU_RESOURCE_NAME} capacity", justify="right")
        node_table.add_column(f"{GPU_RESOURCE_NAME} allocatable", justify="right")
        node_summary = []
        for node in nodes:
            gpus = KubeClient.node_gpu_resources(node)
            node_table.add_row(
                node.metadata.name, str(gpus["capacity"]), str(gpus["allocatable"])
            )
            node_summary.append({"name": node.metadata.name, **gpus})
        self.console.print(node_table)

        pods = self.kube.list_pods(self.namespace)
        pod_table = Table(title=f"Pods in {self.namespace}", header_style="bold magenta")
        pod_table.add_column("Pod", style="cyan")
        pod_table.add_column("Phase")
        for pod in pods:
            pod_table.add_row(pod.metadata.name, pod.status.phase if pod.status else "")
        self.console.print(pod_table)

        configmap = self.kube.read_config_map(
            self.time_slicing.config_map_name, self.namespace
        )
        replicas = None
        if configmap is None:
            self.log.warning(
                f"ConfigMap {self.time_slicing.config_map_name} not found in {self.namespace}"
            )
        else:
            replicas = parse_replicas(configmap.data, self.time_slicing.default_profile)
            self.log.info(
                f"Time-slicing profile '{self.time_slicing.default_profile}': replicas={replicas}"
            )

        self.summary = {
            "namespace": self.namespace,
            "gpu_nodes": node_summary,
            "operator_pods": len(pods),
            "default_profile": self.time_slicing.default_profile,
            "replicas": replicas,
        }
        self.log.success("Installation verification complete")


NEXT_STEPS = [
    "Test GPU functionality: aksgpu validate",
    "Deploy monitoring: aksgpu monitoring deploy",
    "Inspect time-slicing profiles: aksgpu timeslicing profiles",
    "Check for billable resources when done: aksgpu audit",
]
