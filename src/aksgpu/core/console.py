#!/usr/bin/env python3
"""Module to run external CLI tools.

This module provides a class to run az, helm, kubectl and terraform.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""
# built-in modules
import shlex
import subprocess
import typing
from dataclasses import dataclass

# project modules
from aksgpu.core.errors import CommandError, TimeoutError


@dataclass
class CommandResult:
    """Outcome of an external command."""

    command: typing.List[str]
    returncode: int
    output: str
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Console:
    """Class to run console commands.

    Attributes:
        shellVerbose (bool): The shell verbose flag.
        live_output (bool): The live output flag.
    """

    def __init__(self, shellVerbose: bool = True, live_output: bool = False) -> None:
        """Constructor of the Console class.

        Args:
            shellVerbose (bool): The shell verbose flag.
            live_output (bool): The live output flag.
        """
        self.shellVerbose = shellVerbose
        self.live_output = live_output

    def run(
        self,
        command: typing.List[str],
        timeout: int = 60,
        secret: bool = False,
        prefix: str = "",
        env: typing.Optional[typing.Dict[str, str]] = None,
        cwd: typing.Optional[str] = None,
        live: typing.Optional[bool] = None,
        merge_stderr: bool = True,
    ) -> CommandResult:
        """Run a command and return its exit code and output.

        Args:
            command (list): The command and its arguments.
            timeout (int): The timeout in seconds.
            secret (bool): The flag to hide the command.
            prefix (str): The prefix of live output lines.
            env (dict): The environment variables.
            cwd (str): The working directory.
            live (bool): Override the live output flag for this call.
            merge_stderr (bool): Interleave stderr into the output. When False,
                stderr is kept in CommandResult.stderr and live output is off.

        Returns:
            CommandResult: The exit code and output of the command.

        Raises:
            TimeoutError: If the command does not finish in time.
            CommandError: If the executable cannot be started.
        """
        printable = shlex.join(command)
        if self.shellVerbose and not secret:
            print("> " + printable, flush=True)

        try:
            proc = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
                universal_newlines=False,  # Binary mode
                bufsize=0,
                env=env,
                cwd=cwd,
            )
        except FileNotFoundError as exc:
            raise CommandError(
                f"Executable not found: {command[0]}",
                command=command,
                suggestions=[f"Install {command[0]} and make sure it is on PATH"],
                cause=exc,
            ) from exc

        try:
            errs = ""
            live_output = self.live_output if live is None else live
            # two pipes read line by line could deadlock
            if not live_output or not merge_stderr:
                raw_outs, raw_errs = proc.communicate(timeout=timeout)
                outs = raw_outs.decode("utf-8", errors="replace")
                errs = (raw_errs or b"").decode("utf-8", errors="replace")
            else:
                lines = []
                for raw_line in iter(proc.stdout.readline, b""):
                    line = raw_line.decode("utf-8", errors="replace")
                    print(prefix + line, end="")
                    lines.append(line)
                outs = "".join(lines)
                proc.stdout.close()
                proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.communicate()
            shown = "<secret>" if secret else printable
            raise TimeoutError(
                f"Command '{shown}' timed out after {timeout}s", cause=exc
            ) from exc

        return CommandResult(
            command=command,
            returncode=proc.returncode,
            output=outs.strip(),
            stderr=errs.strip(),
        )

    def sh(
        self,
        command: typing.List[str],
        canFail: bool = False,
        timeout: int = 60,
        secret: bool = False,
        prefix: str = "",
        env: typing.Optional[typing.Dict[str, str]] = None,
        cwd: typing.Optional[str] = None,
        live: typing.Optional[bool] = None,
        merge_stderr: bool = True,
    ) -> str:
        """Run a command and return its output.

        Args:
            command (list): The command and its arguments.
            canFail (bool): The flag to allow failure.
            timeout (int): The timeout in seconds.
            secret (bool): The flag to hide the command.
            prefix (str): The prefix of live output lines.
            env (dict): The environment variables.
            cwd (str): The working directory.
            live (bool): Override the live output flag for this call.
            merge_stderr (bool): Interleave stderr into the output.

        Returns:
            str: The output of the command.

        Raises:
            CommandError: If the command fails and canFail is False.
        """
        result = self.run(
            command,
            timeout=timeout,
            secret=secret,
            prefix=prefix,
            env=env,
            cwd=cwd,
            live=live,
            merge_stderr=merge_stderr,
        )
        if not result.ok and not canFail:
            shown = "<secret>" if secret else shlex.join(command)
            raise CommandError(
                f"Subprocess '{shown}' failed with exit code {result.returncode}",
                command=command,
                returncode=result.returncode,
                output="\n".join(part for part in (result.output, result.stderr) if part),
            )
        return result.output
