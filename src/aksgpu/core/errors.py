#!/usr/bin/env python3
"""
Unified error handling for aksgpu.

Provides a structured error taxonomy for provisioning and cluster
operations, together with a Rich-based handler that renders errors as
panels with context and suggestions.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


class ErrorCategory(Enum):
    """High level error categories."""

    VALIDATION = "validation"
    CONNECTION = "connection"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    PREREQUISITE = "prerequisite"
    COMMAND = "command"
    TIMEOUT = "timeout"
    DEPLOYMENT = "deployment"
    CANCELLED = "cancelled"
    RUNTIME = "runtime"


@dataclass
class ErrorContext:
    """Where an error happened."""

    operation: str
    phase: Optional[str] = None
    component: Optional[str] = None
    namespace: Optional[str] = None
    resource: Optional[str] = None
    file_path: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


def create_error_context(operation: str, **kwargs) -> ErrorContext:
    """Convenience constructor for ErrorContext."""
    return ErrorContext(operation=operation, **kwargs)


class AksGpuError(Exception):
    """Base class for all aksgpu errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.RUNTIME,
        context: Optional[ErrorContext] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.cause = cause


class ValidationError(AksGpuError):
    """Invalid input or a failed validation check."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.VALIDATION, recoverable=True, **kwargs)


class ConnectionError(AksGpuError):
    """The Kubernetes API or Azure could not be reached."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.CONNECTION, recoverable=True, **kwargs)


class AuthenticationError(AksGpuError):
    """Not logged in, or credentials rejected."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message, ErrorCategory.AUTHENTICATION, recoverable=True, **kwargs
        )


class ConfigurationError(AksGpuError):
    """Configuration could not be loaded or is inconsistent."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message, ErrorCategory.CONFIGURATION, recoverable=True, **kwargs
        )


class PrerequisiteError(AksGpuError):
    """A required CLI tool is missing from PATH."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.PREREQUISITE, recoverable=True, **kwargs)


class CommandError(AksGpuError):
    """An external command exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        output: str = "",
        **kwargs,
    ):
        super().__init__(message, ErrorCategory.COMMAND, recoverable=False, **kwargs)
        self.command = command or []
        self.returncode = returncode
        self.output = output


class TimeoutError(AksGpuError):
    """A bounded wait expired."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.TIMEOUT, recoverable=True, **kwargs)


class DeploymentError(AksGpuError):
    """A deployment step failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.DEPLOYMENT, recoverable=False, **kwargs)


class CancelledError(AksGpuError):
    """The user declined a confirmation prompt."""

    def __init__(self, message: str = "Operation cancelled", **kwargs):
        super().__init__(message, ErrorCategory.CANCELLED, recoverable=True, **kwargs)


class RuntimeError(AksGpuError):
    """Unexpected failure during execution."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.RUNTIME, recoverable=False, **kwargs)


_CATEGORY_STYLE = {
    ErrorCategory.VALIDATION: ("⚠️", "Validation Error", "yellow"),
    ErrorCategory.CONNECTION: ("🔌", "Connection Error", "red"),
    ErrorCategory.AUTHENTICATION: ("🔒", "Authentication Error", "red"),
    ErrorCategory.CONFIGURATION: ("⚙️", "Configuration Error", "yellow"),
    ErrorCategory.PREREQUISITE: ("🧰", "Missing Prerequisite", "yellow"),
    ErrorCategory.COMMAND: ("💻", "Command Error", "red"),
    ErrorCategory.TIMEOUT: ("⏱️", "Timeout Error", "red"),
    ErrorCategory.DEPLOYMENT: ("🚀", "Deployment Error", "red"),
    ErrorCategory.CANCELLED: ("🛑", "Cancelled", "yellow"),
    ErrorCategory.RUNTIME: ("💥", "Runtime Error", "red"),
}


class ErrorHandler:
    """Renders errors on a Rich console and logs them."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

    def handle_error(
        self,
        error: BaseException,
        context: Optional[ErrorContext] = None,
        show_traceback: bool = False,
    ) -> None:
        """Display an error panel, with suggestions and context when known."""
        if isinstance(error, AksGpuError):
            emoji, title, style = _CATEGORY_STYLE[error.category]
            context = error.context or context
            suggestions = error.suggestions
            cause = error.cause
        else:
            emoji, title, style = "💥", type(error).__name__, "red"
            suggestions = []
            cause = error.__cause__

        body = Text(str(error), style=f"bold {style}")
        if context is not None:
            details = [
                f"{name}: {value}"
                for name, value in vars(context).items()
                if value is not None
            ]
            if details:
                body.append("\n\n" + "\n".join(details), style="dim")
        if cause is not None:
            body.append(f"\n\nCaused by: {type(cause).__name__}: {cause}", style="dim")
        if isinstance(error, CommandError) and error.output and self.verbose:
            body.append("\n\n" + error.output[-2000:], style="dim")
        if suggestions:
            body.append("\n\n💡 Suggestions:\n", style="bold")
            body.append("\n".join(f"  • {s}" for s in suggestions))

        self.logger.debug("Handled %s: %s", type(error).__name__, error)
        self.console.print(
            Panel(body, title=f"{emoji} {title}", border_style=style, expand=False)
        )

        if self.verbose and show_traceback:
            self.console.print_exception()


_error_handler: Optional[ErrorHandler] = None


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    global _error_handler
    _error_handler = handler


def get_error_handler() -> Optional[ErrorHandler]:
    return _error_handler


def handle_error(
    error: BaseException,
    context: Optional[ErrorContext] = None,
    show_traceback: bool = False,
) -> None:
    """Route an error to the global handler, falling back to logging."""
    if _error_handler is None:
        logging.error("%s: %s", type(error).__name__, error)
        return
    _error_handler.handle_error(error, context=context, show_traceback=show_traceback)

