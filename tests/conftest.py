"""
Pytest configuration and shared fixtures for aksgpu tests.

Provides the merged default configuration, Rich consoles that write to a
buffer, and mock stand-ins for the Kubernetes client.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import io
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from aksgpu.config.config_loader import ConfigLoader
from aksgpu.core.errors import set_error_handler
from tests.fixtures.utils import make_node, make_pod


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def config():
    """Fully merged built-in configuration, no environment overrides."""
    return ConfigLoader.load_config(environ={})


@pytest.fixture
def output():
    """Buffer that captures everything printed on ``rich_console``."""
    return io.StringIO()


@pytest.fixture
def rich_console(output):
    """Rich console writing plain text to ``output``."""
    return Console(file=output, force_terminal=False, width=200, color_system=None)


@pytest.fixture(autouse=True)
def reset_error_handler():
    """Keep the global error handler from leaking between tests."""
    yield
    set_error_handler(None)


# ============================================================================
# Kubernetes Fixtures
# ============================================================================

@pytest.fixture
def kube():
    """MagicMock standing in for aksgpu.core.kube.KubeClient."""
    client = MagicMock()
    client.is_reachable.return_value = True
    client.server_version.return_value = "1.29"
    client.list_nodes.return_value = [make_node("aks-gpu-0", 4, 4)]
    client.list_pods.return_value = [make_pod("gpu-operator-abc")]
    client.namespace_exists.return_value = True
    client.ensure_namespace.return_value = True
    client.delete_namespace.return_value = True
    client.apply_config_map.return_value = "created"
    client.apply_custom_object.return_value = "created"
    client.delete_pods.return_value = 1
    client.wait_for_pods_ready.return_value = [make_pod("nvidia-device-plugin-daemonset-x")]
    client.read_config_map.return_value = None
    return client


@pytest.fixture
def prompter():
    """MagicMock standing in for aksgpu.core.prompts.Prompter."""
    mock = MagicMock()
    mock.confirm.return_value = True
    mock.confirm_word.return_value = True
    return mock
