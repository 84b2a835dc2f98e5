"""
aksgpu - AKS GPU time-slicing provisioning toolkit.

Provisions an AKS cluster with a GPU node pool through Terraform, installs
the NVIDIA GPU Operator with time-slicing, validates the result, audits
what is being billed and tears everything down again.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

__version__ = "1.0.0"
