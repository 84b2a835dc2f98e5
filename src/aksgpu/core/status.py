#!/usr/bin/env python3
"""
Leveled status lines for operators.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape

logger = logging.getLogger(__name__)


class StatusLog:
    """Prints ``[INFO]``-style tagged lines on a Rich console.

    Every line is also sent to the module logger at debug level so that
    ``--verbose`` runs keep a timestamped trail.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _emit(self, tag: str, style: str, message: str) -> None:
        self.console.print(f"[{style}]\\[{tag}][/{style}] {escape(message)}")
        logger.debug(f"[{tag}] {message}")

    def info(self, message: str) -> None:
        self._emit("INFO", "blue", message)

    def success(self, message: str) -> None:
        self._emit("SUCCESS", "green", message)

    def warning(self, message: str) -> None:
        self._emit("WARNING", "yellow", message)

    def error(self, message: str) -> None:
        self._emit("ERROR", "red", message)

    def cost(self, message: str) -> None:
        self._emit("COST", "magenta", message)

    def header(self, title: str) -> None:
        self.console.print()
        self.console.print(f"[bold cyan]=== {title} ===[/bold cyan]")

    def line(self, text: str = "") -> None:
        self.console.print(text)

    def raw(self, text: str) -> None:
        """External command output, printed verbatim."""
        self.console.print(text, markup=False, highlight=False)
