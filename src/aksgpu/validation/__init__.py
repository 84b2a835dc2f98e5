"""
Live-cluster validation of the GPU time-slicing setup.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .suite import CheckResult, ValidationReport, ValidationSuite

__all__ = ["CheckResult", "ValidationReport", "ValidationSuite"]
