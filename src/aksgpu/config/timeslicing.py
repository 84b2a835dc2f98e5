#!/usr/bin/env python3
"""
GPU time-slicing profiles.

The NVIDIA device plugin reads its sharing policy from a ConfigMap whose
data keys name a configuration (here: a GPU architecture) and whose values
are device-plugin config documents. Each profile advertises ``replicas``
virtual GPUs per physical GPU; more replicas mean finer sharing and less
memory per slice.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from aksgpu.core.errors import ValidationError, create_error_context
from aksgpu.core.kube import GPU_RESOURCE_NAME

# ConfigMap data keys: alphanumerics, '-', '_' or '.'
_CONFIGMAP_KEY = re.compile(r"^[-._a-zA-Z0-9]+$")
_REPLICAS_LINE = re.compile(r"replicas:\s*(\d+)")

VALID_MIG_STRATEGIES = ("none", "single", "mixed")


@dataclass
class GPUArchitectureProfile:
    """Replica count for one GPU architecture."""

    name: str
    replicas: int
    resource_name: str = GPU_RESOURCE_NAME

    def validate(self) -> None:
        context = create_error_context(
            operation="validate_profile", component="time_slicing", resource=self.name
        )
        if not self.name or not _CONFIGMAP_KEY.match(self.name):
            raise ValidationError(
                f"Invalid profile name '{self.name}'",
                context=context,
                suggestions=["Use letters, digits, '-', '_' or '.'"],
            )
        if isinstance(self.replicas, bool) or not isinstance(self.replicas, int):
            raise ValidationError(
                f"Replicas for '{self.name}' must be an integer, got {self.replicas!r}",
                context=context,
            )
        if self.replicas < 1:
            raise ValidationError(
                f"Replicas for '{self.name}' must be a positive integer, got {self.replicas}",
                context=context,
                suggestions=["Use 1 to disable sharing, or 2-16 for typical sharing"],
            )

    def to_device_plugin_config(
        self,
        mig_strategy: str = "none",
        rename_by_default: bool = False,
        fail_requests_greater_than_one: bool = False,
    ) -> Dict[str, Any]:
        return {
            "version": "v1",
            "flags": {"migStrategy": mig_strategy},
            "sharing": {
                "timeSlicing": {
                    "renameByDefault": rename_by_default,
                    "failRequestsGreaterThanOne": fail_requests_greater_than_one,
                    "resources": [
                        {"name": self.resource_name, "replicas": self.replicas}
                    ],
                }
            },
        }


@dataclass
class TimeSlicingConfig:
    """All profiles plus the flags shared by every profile."""

    profiles: Dict[str, GPUArchitectureProfile] = field(default_factory=dict)
    default_profile: str = "any"
    config_map_name: str = "time-slicing-config"
    mig_strategy: str = "none"
    rename_by_default: bool = False
    fail_requests_greater_than_one: bool = False

    @classmethod
    def from_config(cls, time_slicing: Dict[str, Any]) -> "TimeSlicingConfig":
        """Build from the ``time_slicing`` section of the loaded configuration."""
        profiles = {
            name: GPUArchitectureProfile(name=name, replicas=replicas)
            for name, replicas in (time_slicing.get("profiles") or {}).items()
        }
        return cls(
            profiles=profiles,
            default_profile=time_slicing.get("default_profile", "any"),
            config_map_name=time_slicing.get("config_map_name", "time-slicing-config"),
            mig_strategy=time_slicing.get("mig_strategy", "none"),
            rename_by_default=bool(time_slicing.get("rename_by_default", False)),
            fail_requests_greater_than_one=bool(
                time_slicing.get("fail_requests_greater_than_one", False)
            ),
        )

    def with_replicas(self, name: str, replicas: int) -> "TimeSlicingConfig":
        """Return a copy with one profile added or overridden."""
        profiles = dict(self.profiles)
        profiles[name] = GPUArchitectureProfile(name=name, replicas=replicas)
        return TimeSlicingConfig(
            profiles=profiles,
            default_profile=self.default_profile,
            config_map_name=self.config_map_name,
            mig_strategy=self.mig_strategy,
            rename_by_default=self.rename_by_default,
            fail_requests_greater_than_one=self.fail_requests_greater_than_one,
        )

    def validate(self) -> None:
        if not self.profiles:
            raise ValidationError("At least one time-slicing profile is required")
        for profile in self.profiles.values():
            profile.validate()
        if self.default_profile not in self.profiles:
            raise ValidationError(
                f"Default profile '{self.default_profile}' is not defined",
                suggestions=[f"Known profiles: {', '.join(sorted(self.profiles))}"],
            )
        if self.mig_strategy not in VALID_MIG_STRATEGIES:
            raise ValidationError(
                f"Invalid MIG strategy '{self.mig_strategy}'",
                suggestions=[f"Use one of: {', '.join(VALID_MIG_STRATEGIES)}"],
            )

    def render_profile(self, name: str) -> str:
        profile = self.profiles.get(name)
        if profile is None:
            raise ValidationError(f"Unknown time-slicing profile '{name}'")
        document = profile.to_device_plugin_config(
            mig_strategy=self.mig_strategy,
            rename_by_default=self.rename_by_default,
            fail_requests_greater_than_one=self.fail_requests_greater_than_one,
        )
        return yaml.safe_dump(document, sort_keys=False)

    def to_configmap(self, namespace: str) -> Dict[str, Any]:
        """ConfigMap manifest with one data key per profile."""
        self.validate()
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {
                "name": self.config_map_name,
                "namespace": namespace,
                "labels": {"app.kubernetes.io/managed-by": "aksgpu"},
            },
            "data": {name: self.render_profile(name) for name in self.profiles},
        }

    def to_yaml(self, namespace: str) -> str:
        return yaml.safe_dump(self.to_configmap(namespace), sort_keys=False)


def parse_replicas(configmap_data: Optional[Dict[str, str]], profile: str) -> Optional[int]:
    """Replica count of ``profile`` in live ConfigMap data, if present."""
    document = (configmap_data or {}).get(profile)
    if not document:
        return None
    try:
        parsed = yaml.safe_load(document)
        resources = parsed["sharing"]["timeSlicing"]["resources"]
        return int(resources[0]["replicas"])
    except (yaml.YAMLError, KeyError, IndexError, TypeError, ValueError):
        match = _REPLICAS_LINE.search(document)
        return int(match.group(1)) if match else None


def advertised_gpus(physical_gpus: int, replicas: int) -> int:
    """Schedulable ``nvidia.com/gpu`` units once time-slicing is applied."""
    return physical_gpus * replicas
