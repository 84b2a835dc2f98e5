#!/usr/bin/env python3
"""
Prometheus + Grafana monitoring for GPU time-slicing workloads.

Deploys kube-prometheus-stack and the ServiceMonitors that scrape the
GPU Operator's DCGM exporter and GPU-node node-exporter metrics.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, List

import yaml

from aksgpu.core.errors import DeploymentError, create_error_context
from aksgpu.core.kube import KubeClient, pod_is_ready
from .base import BaseDeployment, Step, template_environment

logger = logging.getLogger(__name__)

SERVICE_MONITOR_API = ("monitoring.coreos.com", "v1", "servicemonitors")
SERVICE_MONITOR_TEMPLATES = (
    "servicemonitor-dcgm.yaml.j2",
    "servicemonitor-node-exporter.yaml.j2",
)
PROMETHEUS_SELECTOR = "app.kubernetes.io/name=prometheus"
GRAFANA_SELECTOR = "app.kubernetes.io/name=grafana"

RECOMMENDED_DASHBOARDS = [
    ("NVIDIA DCGM Exporter Dashboard", 12239),
    ("Kubernetes GPU Monitoring", 14574),
    ("Node Exporter Full", 1860),
    ("Kubernetes Cluster Monitoring", 7249),
]


def build_monitoring_values(monitoring: Dict[str, Any]) -> Dict[str, Any]:
    """Helm values for kube-prometheus-stack."""
    return {
        "grafana": {
            "enabled": True,
            "adminPassword": monitoring["grafana_admin_password"],
            "persistence": {"enabled": True, "size": monitoring["grafana_storage"]},
        },
        "prometheus": {
            "prometheusSpec": {
                "serviceMonitorSelectorNilUsesHelmValues": False,
                "podMonitorSelectorNilUsesHelmValues": False,
                "retention": monitoring["prometheus_retention"],
                "storageSpec": {
                    "volumeClaimTemplate": {
                        "spec": {
                            "storageClassName": monitoring["storage_class"],
                            "resources": {
                                "requests": {"storage": monitoring["prometheus_storage"]}
                            },
                        }
                    }
                },
            }
        },
        "alertmanager": {
            "alertmanagerSpec": {
                "storage": {
                    "volumeClaimTemplate": {
                        "spec": {
                            "resources": {
                                "requests": {"storage": monitoring["alertmanager_storage"]}
                            }
                        }
                    }
                }
            }
        },
        "nodeExporter": {"enabled": True},
        "kubeStateMetrics": {"enabled": True},
    }


def access_info(monitoring: Dict[str, Any]) -> List[str]:
    """Port-forward commands and dashboards, one line each."""
    namespace = monitoring["namespace"]
    release = monitoring["release"]
    lines = [
        "Grafana Dashboard:",
        f"  kubectl port-forward -n {namespace} svc/{release}-grafana 3000:80",
        "  Then open: http://localhost:3000 (user: admin)",
        "Prometheus Web UI:",
        f"  kubectl port-forward -n {namespace} svc/{release}-prometheus 9090:9090",
        "  Then open: http://localhost:9090",
        "AlertManager:",
        f"  kubectl port-forward -n {namespace} svc/{release}-alertmanager 9093:9093",
        "  Then open: http://localhost:9093",
        "Recommended Grafana dashboards to import:",
    ]
    lines += [f"  - {title} (ID: {dashboard_id})" for title, dashboard_id in RECOMMENDED_DASHBOARDS]
    return lines


class MonitoringDeployment(BaseDeployment):
    """Deploys kube-prometheus-stack with GPU scraping."""

    DEPLOYMENT_TYPE = "monitoring"

    def __init__(self, config: Dict[str, Any], kube: KubeClient, **kwargs):
        super().__init__(config, kube, **kwargs)
        self.monitoring = config["monitoring"]
        self.namespace = self.monitoring["namespace"]
        self.gpu_operator_namespace = config["namespace"]
        self.jinja_env = template_environment()

    def steps(self) -> List[Step]:
        return [
            ("Check prerequisites", self.check_prerequisites),
            (
                "Add Prometheus Helm repository",
                lambda: self.add_helm_repo(
                    self.monitoring["helm_repo_name"], self.monitoring["helm_repo_url"]
                ),
            ),
            ("Create namespace", lambda: self.create_namespace(self.namespace)),
            ("Deploy Prometheus + Grafana", self.deploy_prometheus_stack),
            ("Configure ServiceMonitors", self.configure_service_monitors),
            ("Wait for monitoring stack", self.wait_for_monitoring),
            ("Verify monitoring", self.verify),
        ]

    def check_prerequisites(self) -> None:
        self.check_tools_and_cluster()
        gpu_nodes = self.count_gpu_nodes()
        if gpu_nodes:
            self.log.success(f"Found {gpu_nodes} GPU node(s)")
        else:
            self.log.warning(f"No GPU nodes found with label '{self.gpu_selector}'")
            self.log.info("Monitoring will still be deployed but GPU metrics may not be available")
        if self.kube.namespace_exists(self.gpu_operator_namespace):
            self.log.success("GPU Operator namespace found")
        else:
            self.log.warning(
                "GPU Operator namespace not found. Deploy GPU Operator first for GPU metrics"
            )

    def deploy_prometheus_stack(self) -> None:
        self.log.info("Deploying Prometheus + Grafana stack...")
        values = build_monitoring_values(self.monitoring)
        with tempfile.NamedTemporaryFile(
            "w", prefix="kube-prometheus-stack-", suffix=".yaml", delete=False
        ) as f:
            yaml.safe_dump(values, f, sort_keys=False)
            values_file = Path(f.name)
        try:
            self.helm.upgrade_install(
                release=self.monitoring["release"],
                chart=self.monitoring["chart"],
                namespace=self.namespace,
                values_file=str(values_file),
                wait=True,
                timeout=int(self.monitoring["install_timeout"]),
            )
        finally:
            values_file.unlink(missing_ok=True)
        self.log.success("Prometheus + Grafana stack deployed successfully")

    def render_service_monitors(self) -> List[Dict[str, Any]]:
        context = {
            "namespace": self.namespace,
            "release": self.monitoring["release"],
            "gpu_operator_namespace": self.gpu_operator_namespace,
        }
        return [
            yaml.safe_load(self.jinja_env.get_template(name).render(**context))
            for name in SERVICE_MONITOR_TEMPLATES
        ]

    def configure_service_monitors(self) -> None:
        self.log.info("Configuring ServiceMonitors for GPU metrics...")
        group, version, plural = SERVICE_MONITOR_API
        for body in self.render_service_monitors():
            action = self.kube.apply_custom_object(group, version, plural, body)
            self.log.success(f"ServiceMonitor {body['metadata']['name']} {action}")

    def wait_for_monitoring(self) -> None:
        timeout = float(self.monitoring["ready_timeout"])
        self.wait_for_pods(self.namespace, PROMETHEUS_SELECTOR, timeout)
        self.wait_for_pods(self.namespace, GRAFANA_SELECTOR, timeout)
        self.log.success("Monitoring stack is ready")

    def verify(self) -> Dict[str, bool]:
        """Check the stack. Missing Prometheus or Grafana is an error."""
        self.log.info("Verifying monitoring installation...")
        checks = {}

        for label, selector in (("Prometheus", PROMETHEUS_SELECTOR), ("Grafana", GRAFANA_SELECTOR)):
            pods = self.kube.list_pods(self.namespace, selector)
            running = [p for p in pods if p.status and p.status.phase == "Running" and pod_is_ready(p)]
            checks[label.lower()] = bool(running)
            if running:
                self.log.success(f"✓ {label} is running")
            else:
                self.log.error(f"✗ {label} is not running")

        group, version, plural = SERVICE_MONITOR_API
        checks["dcgm_service_monitor"] = self.kube.custom_object_exists(
            group, version, plural, self.namespace, "nvidia-dcgm-exporter"
        )
        if checks["dcgm_service_monitor"]:
            self.log.success("✓ DCGM ServiceMonitor configured")
        else:
            self.log.warning("⚠ DCGM ServiceMonitor not found (GPU Operator may not be deployed)")

        checks["prometheus_storage"] = any(
            "prometheus" in pvc.metadata.name for pvc in self.kube.list_pvcs(self.namespace)
        )
        if checks["prometheus_storage"]:
            self.log.success("✓ Prometheus storage configured")
        else:
            self.log.warning("⚠ Prometheus storage not found")

        if not (checks["prometheus"] and checks["grafana"]):
            raise DeploymentError(
                "Monitoring stack is not running",
                context=create_error_context(
                    operation="verify_monitoring", namespace=self.namespace
                ),
                suggestions=[f"kubectl get pods -n {self.namespace}"],
            )
        self.log.success("Monitoring verification completed")
        return checks
