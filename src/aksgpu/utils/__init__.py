"""
aksgpu Utilities

Retry and polling helpers shared by the CLI wrappers and workflows.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .polling import wait_until
from .retry import RetryStrategy, retry_cli_operation, retry_on_failure

__all__ = ["RetryStrategy", "retry_cli_operation", "retry_on_failure", "wait_until"]
