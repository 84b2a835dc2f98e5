#!/usr/bin/env python3
"""
Helm CLI wrapper.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from aksgpu.core.console import Console
from aksgpu.core.errors import CommandError
from aksgpu.utils.retry import retry_cli_operation

logger = logging.getLogger(__name__)


def _seconds(timeout: int) -> str:
    return f"{int(timeout)}s"


class HelmCLI:
    """Runs ``helm`` commands."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(shellVerbose=False)

    def repo_add(self, name: str, url: str) -> bool:
        """Add a chart repository. Returns False if it was already present."""
        result = self.console.run(["helm", "repo", "add", name, url], timeout=120)
        if result.ok:
            return True
        if "already exists" in result.output:
            logger.debug(f"Helm repository {name} already exists")
            return False
        raise CommandError(
            f"helm repo add {name} failed",
            command=result.command,
            returncode=result.returncode,
            output=result.output,
        )

    @retry_cli_operation("helm repo update")
    def repo_update(self) -> None:
        self.console.sh(["helm", "repo", "update"], timeout=300)

    def upgrade_install(
        self,
        release: str,
        chart: str,
        namespace: str,
        values_file: Optional[str] = None,
        version: Optional[str] = None,
        wait: bool = True,
        timeout: int = 600,
        create_namespace: bool = False,
    ) -> str:
        command = ["helm", "upgrade", "--install", release, chart, "--namespace", namespace]
        if create_namespace:
            command.append("--create-namespace")
        if values_file:
            command += ["--values", values_file]
        if version:
            command += ["--version", version]
        if wait:
            command += ["--wait", "--timeout", _seconds(timeout)]
        # helm enforces its own timeout; leave headroom for chart download
        return self.console.sh(command, timeout=timeout + 120)

    def list_releases(self, namespace: str) -> List[Dict[str, Any]]:
        result = self.console.run(
            ["helm", "list", "--namespace", namespace, "--output", "json"],
            timeout=60,
            merge_stderr=False,
        )
        if not result.ok or not result.output:
            return []
        try:
            return json.loads(result.output)
        except ValueError as e:
            raise CommandError(
                f"helm list in {namespace} returned output that is not JSON",
                command=result.command,
                returncode=result.returncode,
                output=result.output,
                cause=e,
            ) from e

    def release_exists(self, release: str, namespace: str) -> bool:
        return any(r.get("name") == release for r in self.list_releases(namespace))

    def uninstall(self, release: str, namespace: str, timeout: int = 300) -> str:
        return self.console.sh(
            [
                "helm", "uninstall", release,
                "--namespace", namespace,
                "--timeout", _seconds(timeout),
            ],
            timeout=timeout + 60,
        )
