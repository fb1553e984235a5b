"""
Action factories — "establish the desired state".

Each factory returns a ``StepAction``: a callable taking the
StepContext, performing its side effects through the context's
adapters, and raising ActionError on failure. The optional return
value is a short detail string for the report.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Iterable
from pathlib import Path

from devbox.core.errors import ActionError
from devbox.core.models.context import StepContext
from devbox.core.models.step import StepAction

logger = logging.getLogger(__name__)


def _resolve(value, ctx: StepContext):
    return value(ctx) if callable(value) else value


def shell(*commands: str, sudo: bool = False, detail: str | None = None) -> StepAction:
    """Run shell commands in order; the first failure aborts the action."""

    def action(ctx: StepContext) -> str | None:
        for command in commands:
            logger.debug("[%s] $ %s", ctx.step_name, command)
            ctx.run(command, sudo=sudo)
        return detail

    return action


def sequence(*actions: StepAction) -> StepAction:
    """Run several actions as one unit, joining their details."""

    def action(ctx: StepContext) -> str | None:
        details = [d for d in (a(ctx) for a in actions) if d]
        return "; ".join(details) or None

    return action


def apt_install(packages, *, update: bool = False) -> StepAction:
    """Install apt packages non-interactively."""

    def action(ctx: StepContext) -> str | None:
        names = list(_resolve(packages, ctx))
        if not names:
            return "nothing to install"
        if update:
            ctx.run(["apt-get", "update"], sudo=True)
        ctx.run(["apt-get", "install", "-y", *names], sudo=True)
        return f"{len(names)} package(s)"

    return action


def apt_repository(
    *,
    key_url: str,
    keyring: str,
    source: str,
    list_file: str,
    dearmor: bool = True,
) -> StepAction:
    """Register a vendor apt repository signed by ``keyring``.

    ``source`` is the ``deb ...`` line. ``{keyring}``, ``{arch}`` and
    ``{codename}`` inside it are filled in at run time.
    """

    def action(ctx: StepContext) -> str | None:
        if dearmor:
            fetch = f"curl -fsSL {key_url} | gpg --dearmor --yes -o {keyring}"
        else:
            fetch = f"curl -fsSL {key_url} -o {keyring}"
        ctx.run(fetch, sudo=True)
        ctx.run(["chmod", "go+r", keyring], sudo=True)
        values = {"keyring": keyring, "arch": "", "codename": ""}
        if "{arch}" in source:
            values["arch"] = ctx.run(["dpkg", "--print-architecture"]).stdout.strip()
        if "{codename}" in source:
            values["codename"] = ctx.run(["lsb_release", "-cs"]).stdout.strip()
        line = source.format(**values)
        ctx.run(f"echo {shlex.quote(line)} > {list_file}", sudo=True)
        ctx.run(["apt-get", "update"], sudo=True)
        return None

    return action


def write_file(path: str, content, *, mode: int | None = None) -> StepAction:
    """Write a file (relative to home), creating parent directories."""

    def action(ctx: StepContext) -> str | None:
        target = ctx.path(path)
        try:
            ctx.fs.write_text(target, _resolve(content, ctx), mode=mode)
        except OSError as e:
            raise ActionError(f"Cannot write {target}: {e}") from e
        return f"wrote {target}"

    return action


def append_block(path: str, block) -> StepAction:
    """Append ``block`` to a file unless it already contains it."""

    def action(ctx: StepContext) -> str | None:
        target = ctx.path(path)
        text = _resolve(block, ctx)
        try:
            current = ctx.fs.read_text(target) or ""
            if text in current:
                return None
            separator = "" if not current or current.endswith("\n") else "\n"
            ctx.fs.write_text(target, current + separator + text)
        except OSError as e:
            raise ActionError(f"Cannot update {target}: {e}") from e
        return f"updated {target}"

    return action


def make_directories(paths: Iterable[str] | object) -> StepAction:
    """Create directories (relative to home); existing ones are fine."""

    def action(ctx: StepContext) -> str | None:
        created = 0
        for p in _resolve(paths, ctx):
            target = ctx.path(p)
            try:
                if not ctx.fs.is_dir(target):
                    ctx.fs.mkdir(target)
                    created += 1
            except OSError as e:
                raise ActionError(f"Cannot create {target}: {e}") from e
        return f"{created} director{'y' if created == 1 else 'ies'} created"

    return action


def git_clone(url: str, dest: str, *, depth: int | None = None) -> StepAction:
    def action(ctx: StepContext) -> str | None:
        target = ctx.path(dest)
        command = ["git", "clone"]
        if depth:
            command += [f"--depth={depth}"]
        ctx.run([*command, url, str(target)])
        return f"cloned into {target}"

    return action


def git_config(values, require: tuple[str, ...] = ("user.email", "user.name")) -> StepAction:
    """Set global git config values.

    Keys in ``require`` that are neither given nor already set make the
    action fail after the other values have been applied.
    """

    def action(ctx: StepContext) -> str | None:
        wanted: dict[str, str] = _resolve(values, ctx)
        for key, value in wanted.items():
            ctx.run(["git", "config", "--global", key, value])
        missing = [
            key
            for key in require
            if key not in wanted
            and not ctx.run(["git", "config", "--global", "--get", key], check=False).ok
        ]
        if missing:
            keys = ", ".join(missing)
            raise ActionError(
                f"Git identity not configured ({keys}): set git.email and git.name "
                "in devbox.yml or DEVBOX_GIT_EMAIL / DEVBOX_GIT_NAME"
            )
        return f"{len(wanted)} setting(s)"

    return action


def symlink(link: str, target) -> StepAction:
    def action(ctx: StepContext) -> str | None:
        link_path = ctx.path(link)
        target_path = ctx.path(_resolve(target, ctx))
        try:
            ctx.fs.symlink(target_path, link_path)
        except OSError as e:
            raise ActionError(f"Cannot link {link_path} -> {target_path}: {e}") from e
        return None

    return action


def change_login_shell(program: str) -> StepAction:
    def action(ctx: StepContext) -> str | None:
        path = ctx.runner.which(program, path=ctx.env.get("PATH"))
        if path is None:
            raise ActionError(f"{program} is not installed")
        user = ctx.env.get("USER")
        command = ["chsh", "-s", path] + ([user] if user else [])
        ctx.run(command, sudo=bool(user))
        return f"login shell set to {Path(path)}; restart your terminal"

    return action


def fail(message: str) -> StepAction:
    """An action that always fails, for guard steps."""

    def action(ctx: StepContext) -> str | None:
        raise ActionError(message)

    return action
