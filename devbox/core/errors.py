"""
Error taxonomy for provisioning.

Non-fatal step errors are swallowed into the run report by the executor.
Registry misuse (duplicate names, registering after a run started) is a
programming error and raises immediately.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for all devbox errors."""


class DuplicateNameError(ProvisionError):
    """Raised when a step name is registered twice."""

    def __init__(self, name: str):
        super().__init__(f"Step already registered: {name!r}")
        self.name = name


class RegistryLockedError(ProvisionError):
    """Raised when registering into a registry that is already executing."""


class PreconditionCheckError(ProvisionError):
    """The current state of a step could not be determined.

    Distinct from a clean "not installed" answer: the executor records
    this as a failure, never as a reason to run the action.
    """

    def __init__(self, step: str, message: str):
        super().__init__(f"Precondition check failed for '{step}': {message}")
        self.step = step
        self.message = message


class ActionError(ProvisionError):
    """An install/configuration action returned non-zero or raised."""

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        return_code: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.message = message
        self.command = command
        self.return_code = return_code
        self.stderr = stderr

    def __str__(self) -> str:
        lines = [self.message]
        if self.command:
            lines.append(f"command={self.command}")
        if self.return_code is not None:
            lines.append(f"exit={self.return_code}")
        if self.stderr:
            lines.append(self.stderr)
        return "\n".join(lines)


class ConfigError(ProvisionError):
    """Raised when devbox configuration is invalid or unreadable."""
