"""
Simulated workstation — the machine behind ``devbox run --mock``.

A MockRunner and MockFilesystem seeded to look like a fresh WSL
Ubuntu, with handlers that leave the traces the real installers leave:
dpkg records, programs on PATH, version-manager directories, global
git settings and the login shell. A second run over the same machine
therefore finds every step already satisfied.
"""

from __future__ import annotations

import shlex
import time
from pathlib import Path

from devbox.adapters.base import CommandResult
from devbox.adapters.mock import MockFilesystem, MockRunner
from devbox.core.engine.probes import APT_STAMP, PROC_VERSION
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.context import StepContext

KERNEL = "Linux version 5.15.153.1-microsoft-standard-WSL2"
USER = "devbox"
BASE_PROGRAMS = ("zsh", "git", "curl")

# apt packages whose program name differs from the package name
PACKAGE_PROGRAMS = {
    "mongodb-mongosh": "mongosh",
    "docker-ce": "docker",
}

# installer URL fragment -> (programs it puts on PATH, home dirs it creates)
INSTALLERS = {
    "get.sdkman.io": ((), (".sdkman",)),
    "nvm-sh/nvm": ((), (".nvm",)),
    "sh.rustup.rs": (("rustc", "cargo"), (".cargo/bin",)),
    "go.dev/dl": (("go",), ()),
    "pyenv.run": (("pyenv",), (".pyenv",)),
    "dl.k8s.io": (("kubectl",), ()),
    "awscli": (("aws",), ()),
    "InstallAzureCLIDeb": (("az",), ()),
    "ohmyzsh": ((), (".oh-my-zsh",)),
}


def _argv(command: str | list[str]) -> list[str]:
    return list(command) if isinstance(command, list) else shlex.split(command)


def _ok(stdout: str = "", return_code: int = 0) -> CommandResult:
    return CommandResult(command="", return_code=return_code, stdout=stdout)


class SimulatedMachine:
    """In-memory WSL workstation that remembers what was installed."""

    def __init__(self, config: ProvisionConfig):
        self.config = config
        self.home = config.home_dir
        self.runner = MockRunner(programs=set(BASE_PROGRAMS))
        self.fs = MockFilesystem()
        self.packages: set[str] = set()
        self.git_config: dict[str, str] = {"user.email": f"{USER}@localhost", "user.name": USER}
        self.login_shell = "/bin/bash"

        self.fs.files[PROC_VERSION] = KERNEL
        self.runner.set_response("cmd.exe", stdout=f"{USER}\r\n")

        handlers = {
            "dpkg-query": self._dpkg_query,
            "apt-get install": self._apt_install,
            "apt-get update": self._apt_update,
            "git config": self._git_config,
            "git clone": self._git_clone,
            "getent passwd": self._getent,
            "chsh": self._chsh,
            "-m venv": self._venv,
        }
        for match, handler in handlers.items():
            self.runner.set_handler(match, handler)
        for fragment, (programs, dirs) in INSTALLERS.items():
            self.runner.set_handler(fragment, self._installer(programs, dirs))

    def context(self) -> StepContext:
        return StepContext(config=self.config, runner=self.runner, fs=self.fs, env={"USER": USER})

    # ── apt ─────────────────────────────────────────────────────

    def _dpkg_query(self, command):
        names = [a for a in _argv(command)[1:] if not a.startswith("-")]
        lines = [f"{n} install ok installed" for n in names if n in self.packages]
        return _ok("\n".join(lines), return_code=0 if len(lines) == len(names) else 1)

    def _apt_install(self, command):
        argv = _argv(command)
        names = [a for a in argv[argv.index("install") + 1:] if not a.startswith("-")]
        self.packages.update(names)
        self.runner.programs.update(PACKAGE_PROGRAMS.get(n, n) for n in names)
        return _ok()

    def _apt_update(self, command):
        self.fs.mtimes[APT_STAMP] = time.time()
        return _ok()

    # ── git ─────────────────────────────────────────────────────

    def _git_config(self, command):
        argv = _argv(command)
        if "--get" in argv:
            value = self.git_config.get(argv[-1])
            return _ok(f"{value}\n") if value is not None else _ok(return_code=1)
        key, *value = argv[argv.index("--global") + 1:]
        self.git_config[key] = " ".join(value)
        return _ok()

    def _git_clone(self, command):
        self.fs.mkdir(Path(_argv(command)[-1]))
        return _ok()

    # ── login shell ─────────────────────────────────────────────

    def _getent(self, command):
        user = _argv(command)[-1]
        return _ok(f"{user}:x:1000:1000::{self.home}:{self.login_shell}\n")

    def _chsh(self, command):
        argv = _argv(command)
        self.login_shell = argv[argv.index("-s") + 1]
        return _ok()

    # ── installers ──────────────────────────────────────────────

    def _venv(self, command):
        self.fs.mkdir(Path(_argv(command)[-1]) / "bin")
        return _ok()

    def _installer(self, programs: tuple[str, ...], dirs: tuple[str, ...]):
        def handler(command):
            self.runner.programs.update(programs)
            for d in dirs:
                self.fs.mkdir(self.home / d)
            return _ok()

        return handler


def simulated_context(config: ProvisionConfig) -> StepContext:
    """A fresh simulated machine, as a step context."""
    return SimulatedMachine(config).context()
