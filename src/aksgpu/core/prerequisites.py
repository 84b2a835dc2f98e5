#!/usr/bin/env python3
"""
Checks that the external CLI tools are installed.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import shutil
from typing import Iterable, List

from aksgpu.core.errors import PrerequisiteError, create_error_context

INSTALL_HINTS = {
    "az": "https://learn.microsoft.com/cli/azure/install-azure-cli",
    "kubectl": "az aks install-cli",
    "helm": "https://helm.sh/docs/intro/install/",
    "terraform": "https://developer.hashicorp.com/terraform/install",
}


def missing_tools(tools: Iterable[str]) -> List[str]:
    """Return the tools that are not on PATH."""
    return [tool for tool in tools if shutil.which(tool) is None]


def is_available(tool: str) -> bool:
    return shutil.which(tool) is not None


def require_tools(tools: Iterable[str], operation: str = "prerequisites") -> None:
    """Raise PrerequisiteError naming every missing tool."""
    missing = missing_tools(tools)
    if not missing:
        return
    raise PrerequisiteError(
        f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} not installed or not in PATH",
        context=create_error_context(operation=operation, phase="prerequisites"),
        suggestions=[f"Install {tool}: {INSTALL_HINTS.get(tool, tool)}" for tool in missing],
    )
