#!/usr/bin/env python3
"""
Constants and configuration for aksgpu CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from aksgpu.core.errors import ErrorCategory


# Exit codes
class ExitCode:
    """Exit codes for CLI commands."""

    SUCCESS = 0
    FAILURE = 1
    DEPLOYMENT_FAILURE = 2
    VALIDATION_FAILURE = 3
    INVALID_ARGS = 4
    CANCELLED = 5
    PREREQUISITE_FAILURE = 6


CATEGORY_EXIT_CODES = {
    ErrorCategory.VALIDATION: ExitCode.INVALID_ARGS,
    ErrorCategory.CONFIGURATION: ExitCode.INVALID_ARGS,
    ErrorCategory.PREREQUISITE: ExitCode.PREREQUISITE_FAILURE,
    ErrorCategory.CONNECTION: ExitCode.PREREQUISITE_FAILURE,
    ErrorCategory.AUTHENTICATION: ExitCode.PREREQUISITE_FAILURE,
    ErrorCategory.DEPLOYMENT: ExitCode.DEPLOYMENT_FAILURE,
    ErrorCategory.TIMEOUT: ExitCode.DEPLOYMENT_FAILURE,
    ErrorCategory.CANCELLED: ExitCode.CANCELLED,
}

# Default file paths and values
DEFAULT_VALUES_FILE = "gpu-operator-values.yaml"
DEFAULT_TFVARS_FILE = "terraform.tfvars.json"
DEFAULT_PLAN_FILE = "tfplan"
