#!/usr/bin/env python3
"""
Base classes for deployment layer.

Defines the abstract base class for the Helm-driven installers (GPU
Operator, monitoring stack). Implements the Template Method pattern: each
installer declares an ordered list of steps and ``execute`` runs them one
after another, stopping at the first failure.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from kubernetes.client.rest import ApiException
from rich.console import Console

from aksgpu.clients.helm import HelmCLI
from aksgpu.core.errors import (
    AksGpuError,
    CancelledError,
    ConnectionError,
    DeploymentError,
    create_error_context,
)
from aksgpu.core.kube import KubeClient, selector_from_labels
from aksgpu.core.prerequisites import require_tools
from aksgpu.core.prompts import Prompter
from aksgpu.core.status import StatusLog

TEMPLATE_DIR = Path(__file__).parent / "templates"


def template_environment() -> Environment:
    """Jinja2 environment for the bundled manifest templates."""
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


class DeploymentStatus(Enum):
    """Deployment status enumeration."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class DeploymentResult:
    """Result of deployment operation."""

    status: DeploymentStatus
    message: str
    completed_steps: List[str] = field(default_factory=list)
    error: Optional[AksGpuError] = None

    @property
    def is_success(self) -> bool:
        """Check if deployment succeeded."""
        return self.status == DeploymentStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        """Check if deployment failed."""
        return self.status == DeploymentStatus.FAILED


Step = Tuple[str, Callable[[], None]]


class BaseDeployment(ABC):
    """
    Abstract base class for Helm-based installers.

    Workflow (defined by subclasses through ``steps``):
    1. Check prerequisites (tools, cluster connectivity, GPU nodes)
    2. Add and refresh the chart repository
    3. Create the namespace
    4. Install or upgrade the release
    5. Wait for readiness
    6. Apply extra configuration
    7. Verify and report
    """

    DEPLOYMENT_TYPE: str = "base"
    REQUIRED_TOOLS: List[str] = ["kubectl", "helm"]

    def __init__(
        self,
        config: Dict[str, Any],
        kube: KubeClient,
        helm: Optional[HelmCLI] = None,
        prompter: Optional[Prompter] = None,
        console: Optional[Console] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize deployment.

        Args:
            config: Fully merged configuration (see ConfigLoader)
            kube: Kubernetes API access
            helm: Helm CLI wrapper
            prompter: Source of interactive confirmations
            console: Rich console for output
            sleep: Sleep function, replaceable in tests
        """
        self.config = config
        self.kube = kube
        self.helm = helm or HelmCLI()
        self.console = console or Console()
        self.prompter = prompter or Prompter(console=self.console)
        self.log = StatusLog(self.console)
        self.sleep = sleep
        self.gpu_selector = selector_from_labels(config.get("gpu_node_selector", {}))
        self.gpu_node_count = 0

    @abstractmethod
    def steps(self) -> List[Step]:
        """Ordered (title, callable) pairs making up the workflow."""

    def execute(self) -> DeploymentResult:
        """
        Execute the full workflow (Template Method).

        Returns:
            DeploymentResult with status and completed steps
        """
        completed: List[str] = []
        for title, step in self.steps():
            self.console.print()
            try:
                step()
            except CancelledError as e:
                self.log.warning(str(e))
                return DeploymentResult(
                    status=DeploymentStatus.CANCELLED,
                    message=str(e),
                    completed_steps=completed,
                    error=e,
                )
            except AksGpuError as e:
                return self._failed(title, e, completed)
            except Exception as e:
                if isinstance(e, ApiException):
                    detail = f"Kubernetes API error ({e.status}): {e.reason}"
                else:
                    detail = str(e) or type(e).__name__
                return self._failed(title, DeploymentError(detail, cause=e), completed)
            completed.append(title)

        return DeploymentResult(
            status=DeploymentStatus.SUCCESS,
            message=f"{self.DEPLOYMENT_TYPE} deployment completed successfully",
            completed_steps=completed,
        )

    def _failed(self, title: str, error: AksGpuError, completed: List[str]) -> DeploymentResult:
        self.log.error(f"{title} failed: {error}")
        if error.context is None:
            error.context = create_error_context(operation=self.DEPLOYMENT_TYPE, phase=title)
        return DeploymentResult(
            status=DeploymentStatus.FAILED,
            message=f"{title} failed: {error}",
            completed_steps=completed,
            error=error,
        )

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def check_tools_and_cluster(self) -> None:
        """Tools on PATH and the cluster answering."""
        self.log.info("Checking prerequisites...")
        require_tools(self.REQUIRED_TOOLS, operation=self.DEPLOYMENT_TYPE)
        if not self.kube.is_reachable():
            raise ConnectionError(
                "Cannot connect to Kubernetes cluster",
                context=create_error_context(
                    operation=self.DEPLOYMENT_TYPE, phase="prerequisites"
                ),
                suggestions=["Please run 'az aks get-credentials' first"],
            )

    def count_gpu_nodes(self) -> int:
        self.gpu_node_count = len(self.kube.list_nodes(self.gpu_selector))
        return self.gpu_node_count

    def add_helm_repo(self, name: str, url: str) -> None:
        self.log.info(f"Adding {name} Helm repository...")
        self.helm.repo_add(name, url)
        self.helm.repo_update()
        self.log.success(f"{name} Helm repository added and updated")

    def create_namespace(self, namespace: str) -> None:
        self.log.info(f"Creating {namespace} namespace...")
        created = self.kube.ensure_namespace(namespace)
        self.log.success(f"Namespace {namespace} {'created' if created else 'already exists'}")

    def wait_for_pods(self, namespace: str, selector: str, timeout: float) -> None:
        self.log.info(f"Waiting for pods '{selector}' in {namespace} (timeout {timeout:.0f}s)...")
        with self.console.status(f"Waiting for {selector}..."):
            pods = self.kube.wait_for_pods_ready(namespace, selector, timeout=timeout)
        self.log.success(f"{len(pods)} pod(s) ready for '{selector}'")

