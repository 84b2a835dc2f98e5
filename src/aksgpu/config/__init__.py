"""
Configuration: layered loader, time-slicing profiles, Terraform variables.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .config_loader import ConfigLoader
from .terraform_vars import TerraformVariables
from .timeslicing import GPUArchitectureProfile, TimeSlicingConfig

__all__ = [
    "ConfigLoader",
    "GPUArchitectureProfile",
    "TerraformVariables",
    "TimeSlicingConfig",
]
