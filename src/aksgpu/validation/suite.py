#!/usr/bin/env python3
"""
Black-box validation of an AKS GPU time-slicing setup.

Runs eight checks against a live cluster, from basic connectivity up to
scheduling more GPU-requesting pods than there are physical GPUs. Every
check runs even if an earlier one failed; the suite reports counts at the
end.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

import yaml
from kubernetes.client.rest import ApiException
from rich.console import Console
from rich.table import Table

from aksgpu.config.timeslicing import parse_replicas
from aksgpu.core.errors import AksGpuError, TimeoutError
from aksgpu.core.kube import GPU_RESOURCE_NAME, KubeClient, job_state, selector_from_labels
from aksgpu.core.status import StatusLog
from aksgpu.deployment.base import template_environment
from aksgpu.utils.polling import wait_until

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Outcome of one validation check."""

    name: str
    passed: bool
    detail: str = ""
    skipped: bool = False


@dataclass
class ValidationReport:
    """All check outcomes plus counters."""

    results: List[CheckResult] = field(default_factory=list)

    @property
    def tests_run(self) -> int:
        return len([r for r in self.results if not r.skipped])

    @property
    def tests_passed(self) -> int:
        return len([r for r in self.results if r.passed and not r.skipped])

    @property
    def tests_failed(self) -> int:
        return len([r for r in self.results if not r.passed and not r.skipped])

    @property
    def all_passed(self) -> bool:
        return self.tests_failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tests_run": self.tests_run,
            "tests_passed": self.tests_passed,
            "tests_failed": self.tests_failed,
            "results": [asdict(r) for r in self.results],
        }


class CheckFailed(Exception):
    """Raised inside a check to fail it with a message."""


class ValidationSuite:
    """The eight-check validation run."""

    def __init__(
        self,
        config: Dict[str, Any],
        kube: KubeClient,
        console: Optional[Console] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.kube = kube
        self.console = console or Console()
        self.log = StatusLog(self.console)
        self.sleep = sleep
        self.namespace = config["namespace"]
        self.operator = config["operator"]
        self.settings = config["validation"]
        self.time_slicing = config["time_slicing"]
        self.node_selector = config.get("gpu_node_selector", {})
        self.gpu_selector = selector_from_labels(self.node_selector)
        self.jinja_env = template_environment()
        self.report = ValidationReport()

    def checks(self, include_workloads: bool = True) -> List[tuple]:
        checks = [
            ("Cluster Connectivity", self.check_cluster_connectivity),
            ("GPU Nodes Detection", self.check_gpu_nodes),
            ("GPU Operator Installation", self.check_gpu_operator),
            ("Device Plugin Status", self.check_device_plugin),
            ("GPU Resources Availability", self.check_gpu_resources),
            ("Time-slicing Configuration", self.check_time_slicing_config),
        ]
        workload_checks = [
            ("GPU Workload Execution", self.check_gpu_workload),
            ("Time-slicing Functionality", self.check_time_slicing_functionality),
        ]
        if include_workloads:
            checks += workload_checks
        else:
            checks += [(name, None) for name, _ in workload_checks]
        return checks

    def run(self, include_workloads: bool = True) -> ValidationReport:
        self.log.header("AKS GPU VALIDATION")
        self.log.info("Validating the AKS cluster with GPU time-slicing setup")
        for name, check in self.checks(include_workloads):
            if check is None:
                self.report.results.append(CheckResult(name, False, "skipped", skipped=True))
                self.log.info(f"Skipping test: {name}")
                continue
            self.run_test(name, check)
        return self.report

    def run_test(self, name: str, check: Callable[[], str]) -> CheckResult:
        self.console.print()
        self.log.info(f"Running test: {name}")
        try:
            detail = check() or ""
            result = CheckResult(name, True, detail)
            self.log.success(f"PASSED: {name}")
        except (CheckFailed, AksGpuError, ApiException) as e:
            detail = e.reason if isinstance(e, ApiException) else str(e)
            result = CheckResult(name, False, detail)
            self.log.error(detail)
            self.log.error(f"FAILED: {name}")
        self.report.results.append(result)
        return result

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check_cluster_connectivity(self) -> str:
        if not self.kube.is_reachable():
            raise CheckFailed("Cannot reach the Kubernetes API server")
        return f"Kubernetes v{self.kube.server_version()}"

    def check_gpu_nodes(self) -> str:
        nodes = self.kube.list_nodes(self.gpu_selector)
        if not nodes:
            raise CheckFailed("No GPU nodes found")
        self.log.info(f"Found {len(nodes)} GPU node(s)")
        for node in nodes:
            self.log.line(f"  {node.metadata.name}")
        return f"{len(nodes)} GPU node(s)"

    def check_gpu_operator(self) -> str:
        if not self.kube.namespace_exists(self.namespace):
            raise CheckFailed("GPU Operator namespace not found")
        pods = self.kube.list_pods(self.namespace, self.operator["operator_selector"])
        if not pods:
            raise CheckFailed("No GPU Operator pods found")
        self.log.info("GPU Operator pods found")
        self._print_pods(pods)
        return f"{len(pods)} operator pod(s)"

    def check_device_plugin(self) -> str:
        pods = self.kube.list_pods(
            self.namespace, self.operator["device_plugin_selector"], phase="Running"
        )
        if not pods:
            raise CheckFailed("No running device plugin pods found")
        self.log.info(f"Device plugin pods running: {len(pods)}")
        self._print_pods(pods)
        return f"{len(pods)} device plugin pod(s) running"

    def check_gpu_resources(self) -> str:
        nodes = self.kube.list_nodes(self.gpu_selector)
        table = Table(header_style="bold magenta")
        table.add_column("NAME", style="cyan")
        table.add_column("GPU_CAPACITY", justify="right")
        table.add_column("GPU_ALLOCATABLE", justify="right")
        reporting = 0
        for node in nodes:
            gpus = KubeClient.node_gpu_resources(node)
            if gpus["capacity"]:
                reporting += 1
            table.add_row(node.metadata.name, str(gpus["capacity"]), str(gpus["allocatable"]))
        if not reporting:
            raise CheckFailed("No GPU resources found on nodes")
        self.log.info("GPU resources reported by nodes:")
        self.console.print(table)
        return f"{reporting} node(s) report {GPU_RESOURCE_NAME}"

    def check_time_slicing_config(self) -> str:
        name = self.time_slicing["config_map_name"]
        configmap = self.kube.read_config_map(name, self.namespace)
        if configmap is None:
            raise CheckFailed("Time-slicing configuration not found")
        self.log.info("Time-slicing configuration found")
        profile = self.time_slicing["default_profile"]
        replicas = parse_replicas(configmap.data, profile)
        self.log.info(f"Configuration: profile '{profile}' replicas: {replicas}")
        return f"{profile}: replicas {replicas}"

    def check_gpu_workload(self) -> str:
        name = self.settings["job_name"]
        namespace = self.settings["workload_namespace"]
        self.log.info("Deploying test GPU workload...")
        self.kube.delete_job(name, namespace)
        self._wait_gone(lambda: self.kube.read_job(name, namespace))
        self.kube.create_job(namespace, self._render("gpu-validation-job.yaml.j2", name, namespace))

        try:
            try:
                state = wait_until(
                    lambda: self._job_state(name, namespace),
                    timeout=float(self.settings["job_timeout"]),
                    interval=float(self.settings["poll_interval"]),
                    description=f"job {name}",
                    sleep=self.sleep,
                )
            except TimeoutError:
                raise CheckFailed("Test job timed out")

            self._print_logs(namespace, f"job-name={name}")
            if state == "Failed":
                raise CheckFailed("Test job failed")
            self.log.info("Test job completed successfully")
            return "nvidia-smi ran on a GPU node"
        finally:
            self.kube.delete_job(name, namespace)

    def check_time_slicing_functionality(self) -> str:
        name = self.settings["deployment_name"]
        namespace = self.settings["workload_namespace"]
        minimum = int(self.settings["min_running_pods"])
        self.log.info("Testing time-slicing with multiple GPU requests...")
        self.kube.delete_deployment(name, namespace)
        self._wait_gone(lambda: self.kube.read_deployment(name, namespace))
        self.kube.create_deployment(
            namespace,
            self._render(
                "time-slicing-test-deployment.yaml.j2",
                name,
                namespace,
                replicas=int(self.settings["deployment_replicas"]),
                duration=60,
            ),
        )

        try:
            try:
                running = wait_until(
                    lambda: self._running_if_at_least(namespace, f"app={name}", minimum),
                    timeout=float(self.settings["settle_timeout"]),
                    interval=float(self.settings["poll_interval"]),
                    description=f"{minimum} running pods of {name}",
                    sleep=self.sleep,
                )
            except TimeoutError:
                pods = self.kube.list_pods(namespace, f"app={name}")
                self._print_pods(pods)
                count = len([p for p in pods if p.status and p.status.phase == "Running"])
                raise CheckFailed(
                    f"Time-slicing not working: only {count} pod(s) running"
                )
            self.log.info(
                f"Time-slicing working: {len(running)} pods running with GPU requests"
            )
            self._print_pods(running)
            return f"{len(running)} pods share the GPU"
        finally:
            self.kube.delete_deployment(name, namespace)

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def print_summary(self) -> None:
        self.log.header("VALIDATION SUMMARY")
        self.log.line(f"Tests run: {self.report.tests_run}")
        self.log.line(f"Tests passed: {self.report.tests_passed}")
        self.log.line(f"Tests failed: {self.report.tests_failed}")

        if self.report.all_passed:
            self.log.success("All validation tests passed! ✓")
            self.show_cluster_summary()
            self.log.header("NEXT STEPS")
            for i, step in enumerate(
                [
                    "Deploy your ML workloads with GPU requests",
                    "Monitor GPU utilization with: kubectl top nodes",
                    "Check GPU metrics with DCGM Exporter (aksgpu monitoring deploy)",
                    "Test different time-slicing configurations as needed",
                ],
                1,
            ):
                self.log.line(f"{i}. {step}")
        else:
            self.log.error("Some validation tests failed! ✗")
            self.log.info("Check the error messages above and:")
            for i, step in enumerate(
                [
                    "Ensure GPU Operator is properly deployed",
                    "Verify time-slicing configuration",
                    "Check pod logs for more details",
                    "Run 'aksgpu deploy-operator' if needed",
                ],
                1,
            ):
                self.log.line(f"{i}. {step}")

    def show_cluster_summary(self) -> None:
        self.log.header("CLUSTER SUMMARY")
        try:
            self.log.info(f"Kubernetes version: v{self.kube.server_version()}")
            table = Table(title="GPU Nodes", header_style="bold magenta")
            table.add_column("Node", style="cyan")
            table.add_column("Capacity", justify="right")
            table.add_column("Allocatable", justify="right")
            for node in self.kube.list_nodes(self.gpu_selector):
                gpus = KubeClient.node_gpu_resources(node)
                table.add_row(node.metadata.name, str(gpus["capacity"]), str(gpus["allocatable"]))
            self.console.print(table)
            self.log.info("GPU Operator Pods:")
            self._print_pods(self.kube.list_pods(self.namespace))
        except (ApiException, AksGpuError) as e:
            self.log.warning(f"Could not collect cluster summary: {e}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _render(self, template: str, name: str, namespace: str, **extra) -> Dict[str, Any]:
        rendered = self.jinja_env.get_template(template).render(
            name=name,
            namespace=namespace,
            image=self.settings["test_image"],
            tolerations=self.config.get("gpu_tolerations", []),
            node_selector=self.node_selector,
            gpu_resource=GPU_RESOURCE_NAME,
            **extra,
        )
        return yaml.safe_load(rendered)

    def _job_state(self, name: str, namespace: str) -> Optional[str]:
        job = self.kube.read_job(name, namespace)
        return job_state(job) if job is not None else None

    def _running_if_at_least(self, namespace: str, selector: str, minimum: int):
        running = self.kube.list_pods(namespace, selector, phase="Running")
        return running if len(running) >= minimum else None

    def _wait_gone(self, read: Callable[[], Any], timeout: float = 30) -> None:
        try:
            wait_until(
                lambda: read() is None,
                timeout=timeout,
                interval=2,
                description="previous test workload to be deleted",
                sleep=self.sleep,
            )
        except TimeoutError:
            logger.debug("Previous test workload still terminating")

    def _print_pods(self, pods: List[Any]) -> None:
        for pod in pods:
            phase = pod.status.phase if pod.status else "Unknown"
            node = pod.spec.node_name if pod.spec else None
            self.log.line(f"  {pod.metadata.name}  {phase}  {node or '-'}")

    def _print_logs(self, namespace: str, selector: str) -> None:
        for pod_name, text in self.kube.pod_logs(namespace, selector).items():
            self.log.info(f"Logs from {pod_name}:")
            self.log.raw(text)
