#!/usr/bin/env python3
"""
CLI Commands Package for aksgpu

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .operator import deploy_operator
from .timeslicing import timeslicing_app
from .monitoring import monitoring_app
from .validate import validate
from .cleanup import cleanup
from .audit import audit
from .infra import infra_app

__all__ = [
    "deploy_operator",
    "timeslicing_app",
    "monitoring_app",
    "validate",
    "cleanup",
    "audit",
    "infra_app",
]
