"""Utility functions for tests.

Factories for the Kubernetes client objects and command results that the
code under test inspects.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

# built-in modules
from types import SimpleNamespace

# project modules
from aksgpu.core.console import CommandResult


def make_node(name, gpu_capacity=None, gpu_allocatable=None):
    capacity = {"cpu": "6"}
    allocatable = {"cpu": "5800m"}
    if gpu_capacity is not None:
        capacity["nvidia.com/gpu"] = str(gpu_capacity)
    if gpu_allocatable is not None:
        allocatable["nvidia.com/gpu"] = str(gpu_allocatable)
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name),
        status=SimpleNamespace(capacity=capacity, allocatable=allocatable),
    )


def make_pod(name, phase="Running", ready=True, node="aks-gpu-0"):
    conditions = [SimpleNamespace(type="Ready", status="True" if ready else "False")]
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name),
        status=SimpleNamespace(phase=phase, conditions=conditions),
        spec=SimpleNamespace(node_name=node),
    )


def make_job(condition_type=None, succeeded=None):
    conditions = []
    if condition_type:
        conditions.append(SimpleNamespace(type=condition_type, status="True"))
    return SimpleNamespace(status=SimpleNamespace(conditions=conditions, succeeded=succeeded))


def make_pvc(name):
    return SimpleNamespace(metadata=SimpleNamespace(name=name))


def ok(output="", command=None):
    """Successful CommandResult."""
    return CommandResult(command=command or [], returncode=0, output=output)


def failed(output="", returncode=1, command=None):
    """Failed CommandResult."""
    return CommandResult(command=command or [], returncode=returncode, output=output)
