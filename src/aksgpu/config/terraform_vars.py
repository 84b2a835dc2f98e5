#!/usr/bin/env python3
"""
Typed Terraform variable set for the AKS GPU stack.

Mirrors ``terraform/variables.tf`` and checks the same constraints before
``terraform plan`` ever runs, so mistakes surface in one report instead of
one provider error at a time.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import ipaddress
import json
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List

import yaml

from aksgpu.clients.azure import is_gpu_vm_size
from aksgpu.config.config_loader import ConfigLoader
from aksgpu.core.errors import ConfigurationError, ValidationError, create_error_context

_LOCATION = re.compile(r"^[a-z0-9]+$")
_RESOURCE_GROUP = re.compile(r"^[-\w._()]{1,90}$")
_CLUSTER_NAME = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]{0,61}[a-zA-Z0-9]$|^[a-zA-Z0-9]$")
_DNS_PREFIX = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{0,52}[a-zA-Z0-9]$|^[a-zA-Z0-9]$")
_K8S_VERSION = re.compile(r"^\d+\.\d+(\.\d+)?$")
_VM_SIZE = re.compile(r"^Standard_[A-Za-z0-9_]+$")


@dataclass
class TerraformVariables:
    """Variables consumed by the Terraform stack."""

    location: str
    resource_group_name: str
    cluster_name: str
    dns_prefix: str
    kubernetes_version: str
    system_node_vm_size: str
    system_node_count: int
    gpu_node_vm_size: str
    gpu_node_count: int
    gpu_node_min_count: int
    gpu_node_max_count: int
    enable_gpu_autoscaling: bool
    vnet_address_space: str
    subnet_address_prefix: str
    log_analytics_retention_days: int
    tags: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def defaults(cls) -> "TerraformVariables":
        return cls.from_dict({})

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "TerraformVariables":
        """Defaults overlaid with ``values``. Unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown Terraform variable(s): {', '.join(unknown)}",
                suggestions=[f"Known variables: {', '.join(sorted(known))}"],
            )
        merged = ConfigLoader.deep_merge(
            ConfigLoader.strip_comments(ConfigLoader.load_preset("terraform-defaults.json")),
            values,
        )
        return cls(**merged)

    @classmethod
    def load(cls, path: str) -> "TerraformVariables":
        """Read a ``.tfvars.json``, JSON or YAML file."""
        file_path = Path(path)
        if not file_path.is_file():
            raise ConfigurationError(
                f"Variable file not found: {path}",
                context=create_error_context(operation="load_tfvars", file_path=path),
            )
        with open(file_path) as f:
            try:
                if file_path.suffix.lower() in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
            except (json.JSONDecodeError, yaml.YAMLError) as e:
                raise ConfigurationError(
                    f"Could not parse {path}: {e}", cause=e
                ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping of variables")
        return cls.from_dict(data)

    def problems(self) -> List[str]:
        """Every constraint violation, in declaration order."""
        issues = []

        if not _LOCATION.match(self.location or ""):
            issues.append(f"location '{self.location}' must be a lower-case Azure region name")
        if not _RESOURCE_GROUP.match(self.resource_group_name or "") or self.resource_group_name.endswith("."):
            issues.append(
                f"resource_group_name '{self.resource_group_name}' must be 1-90 characters "
                "of letters, digits, '-', '_', '.', '(' or ')' and not end with '.'"
            )
        if not _CLUSTER_NAME.match(self.cluster_name or ""):
            issues.append(
                f"cluster_name '{self.cluster_name}' must be 1-63 characters of letters, "
                "digits, '-' or '_', starting and ending with a letter or digit"
            )
        if not _DNS_PREFIX.match(self.dns_prefix or ""):
            issues.append(f"dns_prefix '{self.dns_prefix}' must be 1-54 characters of letters, digits or '-'")
        if not _K8S_VERSION.match(str(self.kubernetes_version)):
            issues.append(f"kubernetes_version '{self.kubernetes_version}' must look like 1.29 or 1.29.2")

        for name in ("system_node_vm_size", "gpu_node_vm_size"):
            value = getattr(self, name)
            if not _VM_SIZE.match(value or ""):
                issues.append(f"{name} '{value}' must look like Standard_<size>")
        if _VM_SIZE.match(self.gpu_node_vm_size or "") and not is_gpu_vm_size(
            self.gpu_node_vm_size.split("_", 1)[1]
        ):
            issues.append(
                f"gpu_node_vm_size '{self.gpu_node_vm_size}' is not an N-series GPU size (NC, ND, NV)"
            )

        issues += _check_int("system_node_count", self.system_node_count, 1, 100)
        issues += _check_int("gpu_node_count", self.gpu_node_count, 0, 100)
        issues += _check_int("log_analytics_retention_days", self.log_analytics_retention_days, 30, 730)
        if not isinstance(self.enable_gpu_autoscaling, bool):
            issues.append("enable_gpu_autoscaling must be true or false")
        elif self.enable_gpu_autoscaling:
            issues += _check_int("gpu_node_min_count", self.gpu_node_min_count, 0, 100)
            issues += _check_int("gpu_node_max_count", self.gpu_node_max_count, 1, 100)
            if all(
                isinstance(v, int)
                for v in (self.gpu_node_min_count, self.gpu_node_count, self.gpu_node_max_count)
            ) and not (self.gpu_node_min_count <= self.gpu_node_count <= self.gpu_node_max_count):
                issues.append(
                    "gpu_node_min_count <= gpu_node_count <= gpu_node_max_count must hold "
                    f"(got {self.gpu_node_min_count} <= {self.gpu_node_count} <= {self.gpu_node_max_count})"
                )

        issues += _check_network(self.vnet_address_space, self.subnet_address_prefix)

        if not isinstance(self.tags, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in self.tags.items()
        ):
            issues.append("tags must map strings to strings")

        return issues

    def validate(self) -> None:
        issues = self.problems()
        if issues:
            raise ValidationError(
                f"{len(issues)} invalid Terraform variable(s)",
                context=create_error_context(operation="validate_tfvars", component="terraform"),
                suggestions=issues,
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def write_tfvars_json(self, path: str) -> Path:
        """Write the file Terraform reads with ``-var-file``."""
        self.validate()
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")
        return out


def _check_int(name: str, value: Any, low: int, high: int) -> List[str]:
    if isinstance(value, bool) or not isinstance(value, int):
        return [f"{name} must be an integer, got {value!r}"]
    if not low <= value <= high:
        return [f"{name} must be between {low} and {high}, got {value}"]
    return []


def _check_network(vnet: str, subnet: str) -> List[str]:
    try:
        vnet_net = ipaddress.ip_network(vnet, strict=True)
    except ValueError:
        return [f"vnet_address_space '{vnet}' is not a valid CIDR block"]
    try:
        subnet_net = ipaddress.ip_network(subnet, strict=True)
    except ValueError:
        return [f"subnet_address_prefix '{subnet}' is not a valid CIDR block"]
    if subnet_net.version != vnet_net.version or not subnet_net.subnet_of(vnet_net):
        return [f"subnet_address_prefix {subnet} must lie inside vnet_address_space {vnet}"]
    return []
