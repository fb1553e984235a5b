"""
Subprocess runner — execute shell commands on the real machine.

The single place where ``subprocess.run`` is called. Output is
captured so it can be attached to failures; sudo is prefixed only
when not already root.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time

from devbox.adapters.base import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

# Characters of captured output kept per stream
_OUTPUT_TAIL = 4000

# Exit code reported for timeouts and launch errors (same as coreutils timeout)
TIMEOUT_EXIT_CODE = 124
LAUNCH_ERROR_EXIT_CODE = 127


class SubprocessRunner(CommandRunner):
    """Run commands with ``subprocess.run`` and capture their output."""

    def __init__(self, default_timeout: int = 300, shell_path: str = "/bin/bash"):
        self._default_timeout = default_timeout
        self._shell_path = shell_path

    @property
    def name(self) -> str:
        return "subprocess"

    def which(self, program: str, path: str | None = None) -> str | None:
        if path is not None:
            path = os.path.expandvars(path)
        return shutil.which(program, path=path)

    def _environment(self, overrides: dict[str, str] | None) -> dict[str, str]:
        env = os.environ.copy()
        for key, value in (overrides or {}).items():
            env[key] = os.path.expandvars(value)
        return env

    def run(
        self,
        command: str | list[str],
        *,
        sudo: bool = False,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        use_shell = isinstance(command, str)
        display = command if use_shell else " ".join(command)
        timeout = timeout or self._default_timeout

        needs_prefix = sudo and os.geteuid() != 0
        if needs_prefix:
            if use_shell:
                argv: str | list[str] = f"sudo {self._shell_path} -c {shlex.quote(command)}"
            else:
                argv = ["sudo", *command]
        else:
            argv = command

        logger.debug("Executing: %s (cwd=%s, sudo=%s)", display, cwd, sudo)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                shell=use_shell,
                executable=self._shell_path if use_shell else None,
                cwd=cwd,
                env=self._environment(env),
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=display,
                return_code=TIMEOUT_EXIT_CODE,
                stderr=f"Command timed out after {timeout}s",
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        except OSError as e:
            return CommandResult(
                command=display,
                return_code=LAUNCH_ERROR_EXIT_CODE,
                stderr=f"Command execution error: {e}",
                duration_ms=int((time.monotonic() - start) * 1000),
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return CommandResult(
            command=display,
            return_code=result.returncode,
            stdout=result.stdout[-_OUTPUT_TAIL:].strip(),
            stderr=result.stderr[-_OUTPUT_TAIL:].strip(),
            duration_ms=elapsed_ms,
        )
