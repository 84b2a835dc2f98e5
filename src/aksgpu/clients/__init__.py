"""
Wrappers around the az, helm and terraform command-line tools.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .azure import AzureCLI, is_gpu_vm_size
from .helm import HelmCLI
from .terraform import TerraformCLI

__all__ = ["AzureCLI", "HelmCLI", "TerraformCLI", "is_gpu_vm_size"]
