"""
Cleanup of billable resources.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .cleanup import CleanupManager

__all__ = ["CleanupManager"]
