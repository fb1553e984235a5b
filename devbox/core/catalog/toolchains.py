"""
Toolchain steps — language runtimes via their version managers.

Each version manager's own state directory is the precondition signal
(``~/.sdkman``, ``~/.nvm``, ``~/.pyenv``). Commands that need the
manager loaded source its init script inside the same shell rather
than relying on an exported environment.
"""

from __future__ import annotations

import shlex

from devbox.core.engine import probes
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.context import StepContext
from devbox.core.models.step import Step


def _sdkman_install(ctx: StepContext) -> str | None:
    init = 'source "$HOME/.sdkman/bin/sdkman-init.sh"'
    ctx.run('curl -s "https://get.sdkman.io?rcupdate=false" | bash')
    for candidate in ctx.config.versions.sdkman_candidates:
        ctx.run(f"{init} && sdk install {candidate} < /dev/null")
    return f"{len(ctx.config.versions.sdkman_candidates)} SDK candidate(s)"


def _nvm_install(ctx: StepContext) -> str | None:
    versions = ctx.config.versions
    init = 'export NVM_DIR="$HOME/.nvm" && . "$NVM_DIR/nvm.sh"'
    ctx.run(
        f"curl -o- https://raw.githubusercontent.com/nvm-sh/nvm/{versions.nvm}/install.sh"
        " | PROFILE=/dev/null bash"
    )
    for node in versions.node:
        ctx.run(f"{init} && nvm install {node}")
    ctx.run(f"{init} && nvm alias default node")
    packages = ctx.config.packages.npm_global
    if packages:
        ctx.run(f"{init} && npm install -g {' '.join(shlex.quote(p) for p in packages)}")
    return f"node {', '.join(versions.node)}"


def _rust_install(ctx: StepContext) -> str | None:
    ctx.run("curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh -s -- -y --no-modify-path")
    tools = ctx.config.packages.cargo
    if tools:
        ctx.run(["cargo", "install", *tools])
    return None


def _go_install(ctx: StepContext) -> str | None:
    version = ctx.config.versions.go
    arch = ctx.run(["dpkg", "--print-architecture"]).stdout.strip() or "amd64"
    tarball = f"go{version}.linux-{arch}.tar.gz"
    ctx.run(
        f"cd /tmp && curl -fsSLO https://go.dev/dl/{tarball}"
        f" && rm -rf /usr/local/go && tar -C /usr/local -xzf {tarball} && rm -f {tarball}",
        sudo=True,
    )
    for tool in ctx.config.packages.go_tools:
        ctx.run(["go", "install", tool])
    return f"go {version}"


def _pyenv_install(ctx: StepContext) -> str | None:
    versions = ctx.config.versions
    ctx.run("curl -fsSL https://pyenv.run | bash")
    for version in versions.python:
        ctx.run(["pyenv", "install", "--skip-existing", version])
    ctx.run(["pyenv", "global", versions.python_global])
    return f"python {versions.python_global}"


def _venv_install(ctx: StepContext) -> str | None:
    venv = ctx.path(".venv")
    pip = str(venv / "bin" / "pip")
    ctx.run(["python3", "-m", "venv", str(venv)])
    ctx.run([pip, "install", "--upgrade", "pip", "setuptools", "wheel"])
    packages = ctx.config.packages.pip
    if packages:
        ctx.run([pip, "install", *packages])
    return f"{len(packages)} package(s) in {venv}"


def toolchain_steps(config: ProvisionConfig) -> list[Step]:
    home = config.home_dir
    cargo_bin = home / ".cargo" / "bin"
    go_path = f"/usr/local/go/bin:{home / 'go' / 'bin'}:$PATH"
    pyenv_root = home / ".pyenv"

    return [
        Step(
            name="sdkman",
            description="SDKMAN and the Java toolchain",
            precondition=probes.directory_exists(".sdkman"),
            action=_sdkman_install,
            writes=("~/.sdkman",),
        ),
        Step(
            name="nvm",
            description="NVM, Node.js and global npm packages",
            precondition=probes.directory_exists(".nvm"),
            action=_nvm_install,
            writes=("~/.nvm",),
        ),
        Step(
            name="rust",
            description="Rust via rustup, plus cargo tools",
            precondition=probes.command_available("rustc"),
            action=_rust_install,
            reads=("PATH",),
            writes=("~/.cargo", "~/.rustup"),
            env={"PATH": f"{cargo_bin}:$PATH"},
        ),
        Step(
            name="go",
            description="Go toolchain and go tools",
            precondition=probes.command_available("go"),
            action=_go_install,
            reads=("PATH",),
            writes=("/usr/local/go", "~/go"),
            env={"PATH": go_path},
        ),
        Step(
            name="pyenv",
            description="pyenv and Python versions",
            precondition=probes.directory_exists(".pyenv"),
            action=_pyenv_install,
            writes=("~/.pyenv",),
            env={"PYENV_ROOT": str(pyenv_root), "PATH": f"{pyenv_root / 'bin'}:$PATH"},
        ),
        Step(
            name="python-venv",
            description="Global virtualenv at ~/.venv with Python tools",
            precondition=probes.directory_exists(".venv/bin"),
            action=_venv_install,
            writes=("~/.venv",),
        ),
    ]
