"""
Deployment layer for the Helm-driven installers.

Architecture:
- BaseDeployment: Abstract base class defining the step workflow
- GPUOperatorDeployment: NVIDIA GPU Operator with time-slicing
- MonitoringDeployment: kube-prometheus-stack with GPU ServiceMonitors

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .base import BaseDeployment, DeploymentResult, DeploymentStatus
from .gpu_operator import GPUOperatorDeployment
from .monitoring import MonitoringDeployment

__all__ = [
    "BaseDeployment",
    "DeploymentResult",
    "DeploymentStatus",
    "GPUOperatorDeployment",
    "MonitoringDeployment",
]
