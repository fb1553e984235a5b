"""
Mock adapters — a simulated machine for tests and ``--mock`` runs.

MockRunner answers commands from a table of canned results (default:
success) and records every call. MockFilesystem keeps files,
directories and symlinks in memory. Together they let a whole
provisioning run execute without touching the host.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from devbox.adapters.base import CommandResult, CommandRunner, Filesystem

Handler = Callable[[str | list[str]], CommandResult | None]


class MockRunner(CommandRunner):
    """Command runner that never executes anything.

    Responses are matched by substring against the command text; the
    first match wins. Commands with no canned response go to the first
    matching handler, which may return None to pass. Anything left
    succeeds with empty output.
    """

    def __init__(self, programs: set[str] | None = None):
        self._responses: list[tuple[str, CommandResult]] = []
        self._handlers: list[tuple[str, Handler]] = []
        self._interrupts: set[str] = set()
        self.programs: set[str] = set(programs or ())
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def commands(self) -> list[str]:
        return [c["command"] for c in self.calls]

    def which(self, program: str, path: str | None = None) -> str | None:
        if program in self.programs:
            return f"/usr/bin/{program}"
        return None

    def set_response(
        self,
        match: str,
        return_code: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        """Answer commands containing ``match`` with a canned result."""
        self._responses.append(
            (match, CommandResult(command=match, return_code=return_code, stdout=stdout, stderr=stderr))
        )

    def set_failure(self, match: str, stderr: str = "Mock failure", return_code: int = 1) -> None:
        self.set_response(match, return_code=return_code, stderr=stderr)

    def set_handler(self, match: str, handler: Handler) -> None:
        """Compute the result for commands containing ``match``."""
        self._handlers.append((match, handler))

    def set_interrupt(self, match: str) -> None:
        """Raise KeyboardInterrupt when a matching command runs."""
        self._interrupts.add(match)

    def run(
        self,
        command: str | list[str],
        *,
        sudo: bool = False,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        text = command if isinstance(command, str) else " ".join(command)
        self.calls.append({"command": text, "sudo": sudo, "env": dict(env or {}), "cwd": cwd})

        for match in self._interrupts:
            if match in text:
                raise KeyboardInterrupt(text)

        for match, canned in self._responses:
            if match in text:
                return canned.model_copy(update={"command": text})
        for match, handler in self._handlers:
            if match in text:
                computed = handler(command)
                if computed is not None:
                    return computed.model_copy(update={"command": text})
        return CommandResult(command=text, return_code=0, stdout="")


class MockFilesystem(Filesystem):
    """In-memory filesystem.

    Paths listed in ``denied`` raise PermissionError on any access,
    which is how tests simulate a precondition that cannot see its target.
    """

    def __init__(self) -> None:
        self.files: dict[Path, str] = {}
        self.modes: dict[Path, int] = {}
        self.dirs: set[Path] = set()
        self.links: dict[Path, Path] = {}
        self.mtimes: dict[Path, float] = {}
        self.denied: set[Path] = set()
        self.writes: list[Path] = []

    @property
    def name(self) -> str:
        return "mock"

    def _check(self, path: Path) -> Path:
        path = Path(path)
        if path in self.denied:
            raise PermissionError(13, "Permission denied", str(path))
        return path

    def exists(self, path: Path) -> bool:
        path = self._check(path)
        return path in self.files or path in self.dirs or path in self.links

    def is_dir(self, path: Path) -> bool:
        return self._check(path) in self.dirs

    def read_text(self, path: Path) -> str | None:
        return self.files.get(self._check(path))

    def readlink(self, path: Path) -> Path | None:
        return self.links.get(self._check(path))

    def mtime(self, path: Path) -> float | None:
        path = self._check(path)
        if path in self.mtimes:
            return self.mtimes[path]
        return 0.0 if self.exists(path) else None

    def write_text(self, path: Path, content: str, mode: int | None = None) -> None:
        path = self._check(path)
        self.mkdir(path.parent)
        self.files[path] = content
        if mode is not None:
            self.modes[path] = mode
        self.writes.append(path)

    def mkdir(self, path: Path) -> None:
        path = self._check(path)
        self.dirs.add(path)
        self.dirs.update(p for p in path.parents if p != Path(path.anchor))

    def symlink(self, target: Path, link: Path) -> None:
        link = self._check(link)
        self.links[link] = Path(target)
