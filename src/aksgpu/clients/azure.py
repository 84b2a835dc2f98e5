#!/usr/bin/env python3
"""
Azure CLI wrapper.

All queries request JSON output and are decoded here so callers work with
plain dicts instead of table text.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from aksgpu.core.console import Console
from aksgpu.core.errors import AuthenticationError, CommandError
from aksgpu.utils.retry import retry_cli_operation

logger = logging.getLogger(__name__)

# VM size families that carry NVIDIA GPUs
GPU_VM_FAMILIES = ("NC", "ND", "NV")


def is_gpu_vm_size(vm_size: str) -> bool:
    return any(family in (vm_size or "") for family in GPU_VM_FAMILIES)


class AzureCLI:
    """Runs ``az`` commands."""

    def __init__(self, console: Optional[Console] = None, timeout: int = 120):
        self.console = console or Console(shellVerbose=False)
        self.timeout = timeout

    def _json(self, args: List[str], canFail: bool = False) -> Any:
        # az prints warnings on stderr; only stdout is JSON
        result = self.console.run(
            ["az", *args, "--output", "json"], timeout=self.timeout, merge_stderr=False
        )
        if not result.ok:
            if canFail:
                logger.debug(f"az {' '.join(args)} failed: {result.stderr or result.output}")
                return None
            raise CommandError(
                f"az {' '.join(args)} failed with exit code {result.returncode}",
                command=result.command,
                returncode=result.returncode,
                output=result.stderr or result.output,
            )
        if result.stderr:
            logger.debug(f"az {' '.join(args)}: {result.stderr}")
        if not result.output:
            return None
        try:
            return json.loads(result.output)
        except ValueError as e:
            raise CommandError(
                f"az {' '.join(args)} returned output that is not JSON",
                command=result.command,
                returncode=result.returncode,
                output=result.output,
                cause=e,
            ) from e

    # Account

    def account_show(self) -> Optional[Dict[str, Any]]:
        return self._json(["account", "show"], canFail=True)

    def require_login(self) -> Dict[str, Any]:
        account = self.account_show()
        if not account:
            raise AuthenticationError(
                "Not logged into Azure CLI",
                suggestions=["Run 'az login' first"],
            )
        return account

    def account_clear(self) -> None:
        self.console.sh(["az", "account", "clear"], canFail=True, timeout=self.timeout)

    # Resource groups

    def group_exists(self, name: str) -> bool:
        # 'az group exists' exits 0 either way and prints true/false
        output = self.console.sh(
            ["az", "group", "exists", "--name", name], canFail=True, timeout=self.timeout
        )
        return output.strip().lower() == "true"

    @retry_cli_operation("az group list")
    def list_groups(self) -> List[Dict[str, Any]]:
        return self._json(["group", "list"]) or []

    def list_resources(self, resource_group: str) -> List[Dict[str, Any]]:
        return self._json(["resource", "list", "--resource-group", resource_group]) or []

    def delete_group(self, name: str, no_wait: bool = True) -> None:
        command = ["az", "group", "delete", "--name", name, "--yes"]
        if no_wait:
            command.append("--no-wait")
        self.console.sh(command, timeout=self.timeout)

    # Compute

    @retry_cli_operation("az aks list")
    def list_aks_clusters(self) -> List[Dict[str, Any]]:
        return self._json(["aks", "list"]) or []

    def list_vms(self) -> List[Dict[str, Any]]:
        return self._json(["vm", "list", "--show-details"]) or []

    def list_gpu_vms(self) -> List[Dict[str, Any]]:
        return [
            vm
            for vm in self.list_vms()
            if is_gpu_vm_size(vm.get("hardwareProfile", {}).get("vmSize", ""))
        ]

    def list_vmss(self) -> List[Dict[str, Any]]:
        return self._json(["vmss", "list"]) or []

    def aks_get_credentials(
        self, resource_group: str, cluster_name: str, overwrite: bool = True
    ) -> str:
        command = [
            "az", "aks", "get-credentials",
            "--resource-group", resource_group,
            "--name", cluster_name,
        ]
        if overwrite:
            command.append("--overwrite-existing")
        return self.console.sh(command, timeout=self.timeout)

    def scale_nodepool(
        self, resource_group: str, cluster_name: str, nodepool: str, count: int
    ) -> str:
        return self.console.sh(
            [
                "az", "aks", "nodepool", "scale",
                "--resource-group", resource_group,
                "--cluster-name", cluster_name,
                "--name", nodepool,
                "--node-count", str(count),
            ],
            timeout=900,
        )
