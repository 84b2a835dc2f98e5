#!/usr/bin/env python3
"""
Unit tests for aksgpu unified error handling system.

Tests the error taxonomy, context management and the Rich error handler.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from aksgpu.core.errors import (
    AksGpuError,
    AuthenticationError,
    CancelledError,
    CommandError,
    ConfigurationError,
    ConnectionError,
    DeploymentError,
    ErrorCategory,
    ErrorContext,
    ErrorHandler,
    PrerequisiteError,
    RuntimeError,
    TimeoutError,
    ValidationError,
    create_error_context,
    get_error_handler,
    handle_error,
    set_error_handler,
)


class TestErrorContext:
    """Test error context data structure."""

    def test_error_context_creation(self):
        """Test basic error context creation."""
        context = ErrorContext(operation="deploy", phase="wait", component="kube")

        assert context.operation == "deploy"
        assert context.phase == "wait"
        assert context.component == "kube"
        assert context.namespace is None
        assert context.resource is None
        assert context.additional_info is None

    def test_create_error_context_function(self):
        """Test create_error_context convenience function."""
        context = create_error_context(
            operation="wait_for_pods_ready",
            namespace="gpu-operator-resources",
            resource="app=gpu-operator",
        )

        assert isinstance(context, ErrorContext)
        assert context.namespace == "gpu-operator-resources"
        assert context.resource == "app=gpu-operator"


class TestAksGpuErrorHierarchy:
    """Test aksgpu error class hierarchy."""

    def test_base_error(self):
        """Test base error functionality."""
        context = ErrorContext(operation="test")
        cause = OSError("disk")
        error = AksGpuError(
            "Test error",
            category=ErrorCategory.RUNTIME,
            context=context,
            recoverable=True,
            suggestions=["Try again"],
            cause=cause,
        )

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.category == ErrorCategory.RUNTIME
        assert error.context is context
        assert error.recoverable is True
        assert error.suggestions == ["Try again"]
        assert error.cause is cause

    @pytest.mark.parametrize("error_class,category,recoverable", [
        (ValidationError, ErrorCategory.VALIDATION, True),
        (ConnectionError, ErrorCategory.CONNECTION, True),
        (AuthenticationError, ErrorCategory.AUTHENTICATION, True),
        (ConfigurationError, ErrorCategory.CONFIGURATION, True),
        (PrerequisiteError, ErrorCategory.PREREQUISITE, True),
        (TimeoutError, ErrorCategory.TIMEOUT, True),
        (DeploymentError, ErrorCategory.DEPLOYMENT, False),
        (RuntimeError, ErrorCategory.RUNTIME, False),
    ])
    def test_error_types(self, error_class, category, recoverable):
        """Each subclass carries its category and recoverability."""
        error = error_class("boom", suggestions=["hint"])

        assert isinstance(error, AksGpuError)
        assert error.category == category
        assert error.recoverable is recoverable
        assert error.suggestions == ["hint"]

    def test_command_error_keeps_process_details(self):
        error = CommandError(
            "helm failed", command=["helm", "list"], returncode=2, output="Error: boom"
        )

        assert error.category == ErrorCategory.COMMAND
        assert error.recoverable is False
        assert error.command == ["helm", "list"]
        assert error.returncode == 2
        assert error.output == "Error: boom"

    def test_cancelled_error_default_message(self):
        assert str(CancelledError()) == "Operation cancelled"
        assert CancelledError().category == ErrorCategory.CANCELLED

    def test_timeout_error_does_not_shadow_builtin_hierarchy(self):
        """aksgpu TimeoutError is an AksGpuError, not the builtin."""
        assert issubclass(TimeoutError, AksGpuError)


class TestErrorHandler:
    """Test the Rich error handler."""

    def _handler(self, verbose=False):
        buffer = io.StringIO()
        console = Console(file=buffer, width=200, color_system=None)
        return ErrorHandler(console=console, verbose=verbose), buffer

    def test_handle_aksgpu_error_renders_panel(self):
        """Title, message, context and suggestions end up in the panel."""
        handler, buffer = self._handler()
        error = ConnectionError(
            "Cannot connect to Kubernetes cluster",
            context=create_error_context(operation="deploy", phase="prerequisites"),
            suggestions=["Please run 'az aks get-credentials' first"],
        )

        handler.handle_error(error)

        text = buffer.getvalue()
        assert "Connection Error" in text
        assert "Cannot connect to Kubernetes cluster" in text
        assert "operation: deploy" in text
        assert "phase: prerequisites" in text
        assert "az aks get-credentials" in text

    def test_handle_generic_exception_uses_type_name(self):
        handler, buffer = self._handler()

        handler.handle_error(KeyError("missing"))

        assert "KeyError" in buffer.getvalue()

    def test_context_argument_used_when_error_has_none(self):
        handler, buffer = self._handler()

        handler.handle_error(
            ValidationError("bad replicas"),
            context=create_error_context(operation="timeslicing_apply"),
        )

        assert "operation: timeslicing_apply" in buffer.getvalue()

    def test_command_output_only_shown_when_verbose(self):
        error = CommandError("helm failed", output="Error: chart not found")

        quiet, quiet_buffer = self._handler(verbose=False)
        quiet.handle_error(error)
        loud, loud_buffer = self._handler(verbose=True)
        loud.handle_error(error)

        assert "chart not found" not in quiet_buffer.getvalue()
        assert "chart not found" in loud_buffer.getvalue()

    def test_cause_is_reported(self):
        handler, buffer = self._handler()

        handler.handle_error(ConfigurationError("bad file", cause=ValueError("line 3")))

        assert "Caused by: ValueError: line 3" in buffer.getvalue()


class TestGlobalErrorHandler:
    """Test the module level handler registry."""

    def test_set_and_get(self):
        handler = ErrorHandler(console=Console(file=io.StringIO()))
        set_error_handler(handler)

        assert get_error_handler() is handler

    def test_handle_error_routes_to_global_handler(self):
        handler = ErrorHandler(console=Console(file=io.StringIO()))
        set_error_handler(handler)
        error = ValidationError("x")

        with patch.object(handler, "handle_error") as mock_handle:
            handle_error(error, show_traceback=True)

        mock_handle.assert_called_once_with(error, context=None, show_traceback=True)

    @patch("aksgpu.core.errors.logging.error")
    def test_handle_error_falls_back_to_logging(self, mock_log):
        set_error_handler(None)

        handle_error(ValidationError("no handler"))

        mock_log.assert_called_once()
        assert "no handler" in str(mock_log.call_args)
