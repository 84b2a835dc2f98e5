"""
Core building blocks: errors, subprocess runner, Kubernetes access, prompts.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""
