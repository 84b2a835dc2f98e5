#!/usr/bin/env python3
"""
CLI Package for aksgpu

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .app import app, cli_main
from .constants import ExitCode
from .utils import setup_logging, save_summary_with_feedback

__all__ = ["app", "cli_main", "ExitCode", "setup_logging", "save_summary_with_feedback"]
