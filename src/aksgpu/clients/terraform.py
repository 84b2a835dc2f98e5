#!/usr/bin/env python3
"""
Terraform CLI wrapper bound to one working directory.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from aksgpu.core.console import Console

logger = logging.getLogger(__name__)

STATE_FILES = ("terraform.tfstate", ".terraform/terraform.tfstate")


class TerraformCLI:
    """Runs ``terraform`` in ``working_dir``."""

    def __init__(self, working_dir: str, console: Optional[Console] = None):
        self.working_dir = Path(working_dir)
        self.console = console or Console(live_output=True)

    def _tf(
        self, *args: str, timeout: int = 600, canFail: bool = False, quiet: bool = False
    ) -> str:
        return self.console.sh(
            ["terraform", *args],
            canFail=canFail,
            timeout=timeout,
            cwd=str(self.working_dir),
            live=False if quiet else None,
            # quiet calls are parsed; keep terraform warnings out of them
            merge_stderr=not quiet,
        )

    @property
    def exists(self) -> bool:
        return self.working_dir.is_dir()

    def has_state(self) -> bool:
        return any((self.working_dir / name).is_file() for name in STATE_FILES)

    def init(self) -> str:
        return self._tf("init", "-input=false")

    def plan(self, var_file: Optional[str] = None, out: Optional[str] = None) -> str:
        args = ["plan", "-input=false"]
        if var_file:
            args.append(f"-var-file={var_file}")
        if out:
            args.append(f"-out={out}")
        return self._tf(*args, timeout=1800)

    def apply(self, var_file: Optional[str] = None, plan_file: Optional[str] = None) -> str:
        args = ["apply", "-input=false", "-auto-approve"]
        if plan_file:
            args.append(plan_file)
        elif var_file:
            args.append(f"-var-file={var_file}")
        # AKS with a GPU pool routinely takes 15-25 minutes
        return self._tf(*args, timeout=3600)

    def destroy(self) -> str:
        return self._tf("destroy", "-auto-approve", "-input=false", timeout=3600)

    def output(self, name: str) -> Optional[str]:
        result = self.console.run(
            ["terraform", "output", "-raw", name],
            timeout=120,
            cwd=str(self.working_dir),
            live=False,
        )
        if not result.ok or not result.output:
            return None
        return result.output

    def outputs(self) -> Dict[str, Any]:
        raw = self._tf("output", "-json", timeout=120, canFail=True, quiet=True)
        if not raw:
            return {}
        try:
            return {k: v.get("value") for k, v in json.loads(raw).items()}
        except ValueError:
            logger.debug("terraform output -json returned non-JSON output")
            return {}

    def state_list(self) -> List[str]:
        raw = self._tf("state", "list", timeout=120, canFail=True, quiet=True)
        return [line for line in raw.splitlines() if line.strip()]

    def remove_local_state(self) -> List[str]:
        """Delete terraform.tfstate* files and the .terraform directory."""
        removed = []
        for state in self.working_dir.glob("terraform.tfstate*"):
            state.unlink()
            removed.append(state.name)
        dot_terraform = self.working_dir / ".terraform"
        if dot_terraform.is_dir():
            shutil.rmtree(dot_terraform)
            removed.append(".terraform/")
        return removed
