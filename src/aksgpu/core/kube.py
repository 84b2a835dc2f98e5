#!/usr/bin/env python3
"""
Kubernetes API access for aksgpu.

Thin wrapper around the Kubernetes Python client covering the handful of
operations the provisioning workflows need: node and pod queries, namespace
and ConfigMap management, test Jobs and Deployments, and custom resources
(ServiceMonitor, ClusterPolicy).

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from typing import Any, Dict, List, Optional

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

from aksgpu.core.errors import ConnectionError, TimeoutError, create_error_context
from aksgpu.utils.polling import wait_until

logger = logging.getLogger(__name__)

GPU_RESOURCE_NAME = "nvidia.com/gpu"


def selector_from_labels(labels: Dict[str, str]) -> str:
    """Turn ``{"accelerator": "nvidia"}`` into ``accelerator=nvidia``."""
    return ",".join(f"{key}={value}" for key, value in labels.items())


def pod_is_ready(pod) -> bool:
    """True when the pod reports the Ready condition."""
    conditions = (pod.status.conditions if pod.status else None) or []
    return any(c.type == "Ready" and c.status == "True" for c in conditions)


def job_state(job) -> Optional[str]:
    """``Complete``, ``Failed`` or None while the job is still running."""
    status = job.status
    if status is None:
        return None
    for condition in status.conditions or []:
        if condition.status == "True" and condition.type in ("Complete", "Failed"):
            return condition.type
    if status.succeeded:
        return "Complete"
    return None


class KubeClient:
    """Kubernetes cluster access using the Python client library."""

    def __init__(
        self,
        core_v1=None,
        apps_v1=None,
        batch_v1=None,
        custom_objects=None,
        version_api=None,
    ):
        self.core_v1 = core_v1 or client.CoreV1Api()
        self.apps_v1 = apps_v1 or client.AppsV1Api()
        self.batch_v1 = batch_v1 or client.BatchV1Api()
        self.custom_objects = custom_objects or client.CustomObjectsApi()
        self.version_api = version_api or client.VersionApi()

    @classmethod
    def connect(
        cls, kubeconfig: Optional[str] = None, context: Optional[str] = None
    ) -> "KubeClient":
        """Load kubeconfig (or in-cluster config) and build the API clients.

        Raises:
            ConnectionError: If no usable configuration is found.
        """
        try:
            if kubeconfig or context:
                k8s_config.load_kube_config(config_file=kubeconfig, context=context)
            else:
                try:
                    k8s_config.load_incluster_config()
                except (k8s_config.ConfigException, FileNotFoundError):
                    k8s_config.load_kube_config()
        except Exception as e:
            raise ConnectionError(
                f"Failed to load Kubernetes config: {e}",
                context=create_error_context(operation="connect", component="KubeClient"),
                suggestions=[
                    "Run 'az aks get-credentials --resource-group <rg> --name <cluster>'",
                    "Or point AKSGPU_KUBECONFIG at a kubeconfig file",
                ],
                cause=e,
            ) from e
        return cls()

    # ------------------------------------------------------------------
    # Cluster
    # ------------------------------------------------------------------

    def server_version(self) -> str:
        version = self.version_api.get_code()
        return f"{version.major}.{version.minor}"

    def is_reachable(self) -> bool:
        try:
            self.version_api.get_code()
            return True
        except Exception as e:
            logger.debug(f"Cluster not reachable: {e}")
            return False

    def list_nodes(self, label_selector: str = "") -> List[Any]:
        return self.core_v1.list_node(label_selector=label_selector).items

    @staticmethod
    def node_gpu_resources(node, resource_name: str = GPU_RESOURCE_NAME) -> Dict[str, int]:
        """Capacity and allocatable counts of ``resource_name`` on a node."""
        capacity = (node.status.capacity or {}).get(resource_name)
        allocatable = (node.status.allocatable or {}).get(resource_name)
        return {
            "capacity": int(capacity) if capacity else 0,
            "allocatable": int(allocatable) if allocatable else 0,
        }

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    def namespace_exists(self, name: str) -> bool:
        try:
            self.core_v1.read_namespace(name)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise

    def ensure_namespace(self, name: str) -> bool:
        """Create the namespace if it is missing. Returns True if created."""
        if self.namespace_exists(name):
            return False
        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=name))
        try:
            self.core_v1.create_namespace(body)
        except ApiException as e:
            if e.status != 409:
                raise
            return False
        return True

    def delete_namespace(self, name: str) -> bool:
        try:
            self.core_v1.delete_namespace(name)
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise

    # ------------------------------------------------------------------
    # Pods
    # ------------------------------------------------------------------

    def list_pods(
        self, namespace: str, label_selector: str = "", phase: Optional[str] = None
    ) -> List[Any]:
        kwargs = {"label_selector": label_selector}
        if phase:
            kwargs["field_selector"] = f"status.phase={phase}"
        return self.core_v1.list_namespaced_pod(namespace, **kwargs).items

    def delete_pods(self, namespace: str, label_selector: str) -> int:
        deleted = 0
        for pod in self.list_pods(namespace, label_selector):
            try:
                self.core_v1.delete_namespaced_pod(pod.metadata.name, namespace)
                deleted += 1
            except ApiException as e:
                if e.status != 404:
                    raise
        return deleted

    def wait_for_pods_ready(
        self,
        namespace: str,
        label_selector: str,
        timeout: float = 300,
        interval: float = 5.0,
    ) -> List[Any]:
        """Block until at least one pod matches and every match is Ready."""

        def probe():
            pods = self.list_pods(namespace, label_selector)
            if pods and all(pod_is_ready(p) for p in pods):
                return pods
            return None

        try:
            return wait_until(
                probe,
                timeout=timeout,
                interval=interval,
                description=f"pods '{label_selector}' in {namespace} to be ready",
            )
        except TimeoutError as e:
            e.context = create_error_context(
                operation="wait_for_pods_ready",
                namespace=namespace,
                resource=label_selector,
            )
            e.suggestions = [
                f"kubectl get pods -n {namespace} -l {label_selector}",
                f"kubectl describe pods -n {namespace} -l {label_selector}",
            ]
            raise

    def pod_logs(self, namespace: str, label_selector: str) -> Dict[str, str]:
        logs = {}
        for pod in self.list_pods(namespace, label_selector):
            try:
                logs[pod.metadata.name] = self.core_v1.read_namespaced_pod_log(
                    pod.metadata.name, namespace
                )
            except ApiException as e:
                logs[pod.metadata.name] = f"<logs unavailable: {e.reason}>"
        return logs

    # ------------------------------------------------------------------
    # ConfigMaps and PVCs
    # ------------------------------------------------------------------

    def read_config_map(self, name: str, namespace: str):
        try:
            return self.core_v1.read_namespaced_config_map(name, namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    def apply_config_map(self, body: Dict[str, Any]) -> str:
        """Create the ConfigMap, or replace it if it exists. Returns the action."""
        name = body["metadata"]["name"]
        namespace = body["metadata"]["namespace"]
        try:
            self.core_v1.create_namespaced_config_map(namespace=namespace, body=body)
            return "created"
        except ApiException as e:
            if e.status != 409:
                raise
        self.core_v1.replace_namespaced_config_map(name, namespace, body)
        return "configured"

    def list_pvcs(self, namespace: str) -> List[Any]:
        return self.core_v1.list_namespaced_persistent_volume_claim(namespace).items

    # ------------------------------------------------------------------
    # Workloads
    # ------------------------------------------------------------------

    def create_job(self, namespace: str, body: Dict[str, Any]):
        return self.batch_v1.create_namespaced_job(namespace=namespace, body=body)

    def read_job(self, name: str, namespace: str):
        try:
            return self.batch_v1.read_namespaced_job_status(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    def delete_job(self, name: str, namespace: str) -> bool:
        try:
            self.batch_v1.delete_namespaced_job(
                name=name, namespace=namespace, propagation_policy="Background"
            )
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise

    def create_deployment(self, namespace: str, body: Dict[str, Any]):
        return self.apps_v1.create_namespaced_deployment(namespace=namespace, body=body)

    def read_deployment(self, name: str, namespace: str):
        try:
            return self.apps_v1.read_namespaced_deployment(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    def delete_deployment(self, name: str, namespace: str) -> bool:
        try:
            self.apps_v1.delete_namespaced_deployment(
                name=name, namespace=namespace, propagation_policy="Foreground"
            )
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise

    # ------------------------------------------------------------------
    # Custom resources
    # ------------------------------------------------------------------

    def apply_custom_object(
        self, group: str, version: str, plural: str, body: Dict[str, Any]
    ) -> str:
        """Create or replace a namespaced custom object."""
        name = body["metadata"]["name"]
        namespace = body["metadata"]["namespace"]
        try:
            self.custom_objects.create_namespaced_custom_object(
                group, version, namespace, plural, body
            )
            return "created"
        except ApiException as e:
            if e.status != 409:
                raise
        existing = self.custom_objects.get_namespaced_custom_object(
            group, version, namespace, plural, name
        )
        body["metadata"]["resourceVersion"] = existing["metadata"]["resourceVersion"]
        self.custom_objects.replace_namespaced_custom_object(
            group, version, namespace, plural, name, body
        )
        return "configured"

    def custom_object_exists(
        self, group: str, version: str, plural: str, namespace: str, name: str
    ) -> bool:
        try:
            self.custom_objects.get_namespaced_custom_object(
                group, version, namespace, plural, name
            )
            return True
        except ApiException as e:
            if e.status == 404:
                return False
            raise

    def delete_cluster_custom_object(
        self, group: str, version: str, plural: str, name: str
    ) -> bool:
        try:
            self.custom_objects.delete_cluster_custom_object(group, version, plural, name)
            return True
        except ApiException as e:
            # 404 also covers the CRD itself being gone
            if e.status == 404:
                return False
            raise
