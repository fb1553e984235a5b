"""Adapters — the only code that touches the machine.

Public re-exports for convenient access.
"""

from devbox.adapters.base import CommandResult, CommandRunner, Filesystem
from devbox.adapters.mock import MockFilesystem, MockRunner
from devbox.adapters.shell.command import SubprocessRunner
from devbox.adapters.shell.filesystem import LocalFilesystem

__all__ = [
    "CommandResult",
    "CommandRunner",
    "Filesystem",
    "LocalFilesystem",
    "MockFilesystem",
    "MockRunner",
    "SubprocessRunner",
]
