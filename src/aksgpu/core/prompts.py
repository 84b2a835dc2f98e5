#!/usr/bin/env python3
"""
Interactive confirmation prompts.

Destructive operations ask for a typed confirmation word; softer choices
use y/N questions. ``assume_yes`` turns every y/N question into yes, but
never answers a typed-word confirmation.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from typing import Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt


class Prompter:
    """Asks the operator questions on a Rich console."""

    def __init__(self, console: Optional[Console] = None, assume_yes: bool = False):
        self.console = console or Console()
        self.assume_yes = assume_yes

    def confirm(self, question: str, default: bool = False) -> bool:
        """y/N question."""
        if self.assume_yes:
            return True
        return Confirm.ask(question, console=self.console, default=default)

    def confirm_word(self, question: str, word: str) -> bool:
        """True only if the operator types ``word`` exactly."""
        reply = Prompt.ask(question, console=self.console, default="", show_default=False)
        return reply == word

    def ask(self, question: str, default: str = "") -> str:
        reply = Prompt.ask(question, console=self.console, default=default)
        return reply.strip() or default

    def choose(self, question: str, choices: list) -> str:
        return Prompt.ask(question, console=self.console, choices=choices)
