"""
Precondition probes — "is the desired state already there?"

Every factory here returns a ``Precondition``: a callable taking the
StepContext and answering True (satisfied, skip the step) or False
(run the action). A probe that cannot reach an answer raises
PreconditionCheckError; OSErrors other than "not found" propagate and
the executor treats them the same way.
"""

from __future__ import annotations

import getpass
import logging
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from devbox.core.errors import PreconditionCheckError
from devbox.core.models.context import StepContext
from devbox.core.models.step import Precondition

logger = logging.getLogger(__name__)

# Values may be given literally or computed from the context at run time
Resolvable = Callable[[StepContext], "object"]

APT_STAMP = Path("/var/lib/apt/periodic/update-success-stamp")
APT_LISTS = Path("/var/lib/apt/lists")
PROC_VERSION = Path("/proc/version")


def _resolve(value, ctx: StepContext):
    return value(ctx) if callable(value) else value


def command_available(program: str) -> Precondition:
    """Satisfied when ``program`` resolves on the step's PATH."""

    def check(ctx: StepContext) -> bool:
        found = ctx.runner.which(program, path=ctx.env.get("PATH"))
        logger.debug("which %s → %s", program, found)
        return found is not None

    return check


def directory_exists(path: str) -> Precondition:
    """Satisfied when ``path`` (relative to home) is a directory."""

    def check(ctx: StepContext) -> bool:
        return ctx.fs.is_dir(ctx.path(path))

    return check


def directories_exist(paths: Iterable[str] | Resolvable) -> Precondition:
    def check(ctx: StepContext) -> bool:
        return all(ctx.fs.is_dir(ctx.path(p)) for p in _resolve(paths, ctx))

    return check


def file_has_content(path: str, content: str | Resolvable) -> Precondition:
    """Satisfied when the file exists with exactly the expected content."""

    def check(ctx: StepContext) -> bool:
        return ctx.fs.read_text(ctx.path(path)) == _resolve(content, ctx)

    return check


def file_contains(path: str, snippet: str | Resolvable) -> Precondition:
    """Satisfied when the file exists and includes ``snippet``."""

    def check(ctx: StepContext) -> bool:
        current = ctx.fs.read_text(ctx.path(path))
        return current is not None and _resolve(snippet, ctx) in current

    return check


def symlink_points_to(link: str, target: str | Resolvable) -> Precondition:
    def check(ctx: StepContext) -> bool:
        current = ctx.fs.readlink(ctx.path(link))
        return current is not None and current == ctx.path(_resolve(target, ctx))

    return check


def all_of(*checks: Precondition) -> Precondition:
    """Satisfied when every probe is; stops at the first unmet one."""

    def check(ctx: StepContext) -> bool:
        return all(c(ctx) for c in checks)

    return check


def when(flag: Callable[[StepContext], bool], probe: Precondition) -> Precondition:
    """Treat the step as satisfied when ``flag`` is off, else defer to ``probe``."""

    def check(ctx: StepContext) -> bool:
        if not flag(ctx):
            logger.debug("[%s] disabled by configuration", ctx.step_name)
            return True
        return probe(ctx)

    return check


def packages_installed(packages: Iterable[str] | Resolvable) -> Precondition:
    """Satisfied when dpkg reports every package as installed."""

    def check(ctx: StepContext) -> bool:
        names = list(_resolve(packages, ctx))
        if not names:
            return True
        result = ctx.run(["dpkg-query", "-W", "-f=${Package} ${Status}\\n", *names], check=False)
        if result.return_code not in (0, 1):
            raise PreconditionCheckError(
                ctx.step_name,
                f"dpkg-query exited with code {result.return_code}: {result.stderr}",
            )
        installed = {
            line.split()[0]
            for line in result.stdout.splitlines()
            if line.strip().endswith("install ok installed")
        }
        missing = [n for n in names if n not in installed]
        if missing:
            logger.debug("Missing packages: %s", ", ".join(missing))
        return not missing

    return check


def git_config_matches(values: dict[str, str] | Resolvable) -> Precondition:
    """Satisfied when every global git setting already has the wanted value."""

    def check(ctx: StepContext) -> bool:
        wanted: dict[str, str] = _resolve(values, ctx)
        for key, value in wanted.items():
            result = ctx.run(["git", "config", "--global", "--get", key], check=False)
            if result.return_code == 1:
                return False
            if result.return_code != 0:
                raise PreconditionCheckError(
                    ctx.step_name,
                    f"git config --get {key} exited with code {result.return_code}: {result.stderr}",
                )
            if result.stdout.strip() != value:
                return False
        return True

    return check


def login_shell_is(program: str) -> Precondition:
    """Satisfied when the user's login shell (from passwd) ends in ``program``."""

    def check(ctx: StepContext) -> bool:
        user = ctx.env.get("USER") or getpass.getuser()
        result = ctx.run(["getent", "passwd", user], check=False)
        if not result.ok:
            raise PreconditionCheckError(ctx.step_name, f"cannot look up passwd entry for {user}")
        fields = result.stdout.strip().split(":")
        return len(fields) >= 7 and Path(fields[6]).name == program

    return check


def apt_lists_fresh(max_age_hours: int | Resolvable) -> Precondition:
    """Satisfied when apt's package index was refreshed recently."""

    def check(ctx: StepContext) -> bool:
        mtime = ctx.fs.mtime(APT_STAMP)
        if mtime is None:
            mtime = ctx.fs.mtime(APT_LISTS)
        if mtime is None:
            return False
        age_hours = (time.time() - mtime) / 3600
        return age_hours < _resolve(max_age_hours, ctx)

    return check


def running_in_wsl() -> Precondition:
    """Satisfied when the kernel identifies itself as WSL."""

    def check(ctx: StepContext) -> bool:
        version = ctx.fs.read_text(PROC_VERSION)
        if version is None:
            return False
        lowered = version.lower()
        return "microsoft" in lowered or "wsl" in lowered

    return check


def git_config_present(keys: Iterable[str]) -> Precondition:
    """Satisfied when every global git key has some value."""

    def check(ctx: StepContext) -> bool:
        for key in keys:
            result = ctx.run(["git", "config", "--global", "--get", key], check=False)
            if result.return_code == 1:
                return False
            if result.return_code != 0:
                raise PreconditionCheckError(
                    ctx.step_name,
                    f"git config --get {key} exited with code {result.return_code}: {result.stderr}",
                )
        return True

    return check
