"""
Billable resource audit and cost estimate.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .resource_audit import AuditReport, ResourceAuditor, estimate_cost

__all__ = ["AuditReport", "ResourceAuditor", "estimate_cost"]
