"""
Adapter base — the contract between provisioning steps and the machine.

Steps never call ``subprocess`` or touch files directly: they go through
a CommandRunner and a Filesystem. That keeps every side effect in one
place and lets mock mode swap the whole machine out.

Runners NEVER raise for a failing command — the outcome is captured in
the CommandResult. Interrupts (KeyboardInterrupt) are the exception and
propagate to the executor.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel


class CommandResult(BaseModel):
    """Outcome of one external command."""

    command: str
    return_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.return_code == 0


class CommandRunner(ABC):
    """Runs external commands.

    To create a new runner:
        1. Subclass CommandRunner
        2. Implement name, which, run
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'subprocess', 'mock')."""

    @abstractmethod
    def which(self, program: str, path: str | None = None) -> str | None:
        """Resolve a program on PATH, or on ``path`` when given."""

    @abstractmethod
    def run(
        self,
        command: str | list[str],
        *,
        sudo: bool = False,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """Run a command and return its result.

        A string is run through the shell; a list is executed directly.
        MUST NOT raise for non-zero exits, timeouts or missing programs.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class Filesystem(ABC):
    """File and directory operations used by steps.

    Probing methods (exists, is_dir, read_text, readlink) may raise
    OSError for conditions other than "not there" — a permission error
    must not be mistaken for absence.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The filesystem identifier (e.g., 'local', 'mock')."""

    @abstractmethod
    def exists(self, path: Path) -> bool: ...

    @abstractmethod
    def is_dir(self, path: Path) -> bool: ...

    @abstractmethod
    def read_text(self, path: Path) -> str | None:
        """File content, or None when the file does not exist."""

    @abstractmethod
    def readlink(self, path: Path) -> Path | None:
        """Symlink target, or None when ``path`` is not a symlink."""

    @abstractmethod
    def mtime(self, path: Path) -> float | None:
        """Modification time, or None when the path does not exist."""

    @abstractmethod
    def write_text(self, path: Path, content: str, mode: int | None = None) -> None: ...

    @abstractmethod
    def mkdir(self, path: Path) -> None:
        """Create a directory and its parents; existing directories are fine."""

    @abstractmethod
    def symlink(self, target: Path, link: Path) -> None:
        """Create or replace ``link`` so it points at ``target``."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
