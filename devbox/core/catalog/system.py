"""
System steps — platform guard, apt, and vendor-packaged CLIs.

These run first: everything after them assumes a refreshed package
index and the essential packages.
"""

from __future__ import annotations

from devbox.core.engine import actions, probes
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.step import Step


def system_steps(config: ProvisionConfig) -> list[Step]:
    return [
        Step(
            name="platform-check",
            description="Verify we are running inside WSL",
            precondition=probes.when(lambda ctx: ctx.config.require_wsl, probes.running_in_wsl()),
            action=actions.fail("This setup is designed for WSL only (set require_wsl: false to override)"),
            fatal=True,
            reads=("/proc/version",),
        ),
        Step(
            name="apt-update",
            description="Refresh the package index and upgrade installed packages",
            precondition=probes.apt_lists_fresh(lambda ctx: ctx.config.apt_max_age_hours),
            action=actions.shell("apt-get update", "apt-get upgrade -y", sudo=True),
            fatal=True,
            writes=("apt",),
            env={"DEBIAN_FRONTEND": "noninteractive"},
        ),
        Step(
            name="essential-packages",
            description="Install essential apt packages",
            precondition=probes.packages_installed(lambda ctx: ctx.config.packages.apt),
            action=actions.apt_install(lambda ctx: ctx.config.packages.apt),
            fatal=True,
            reads=("apt",),
            writes=("apt",),
            env={"DEBIAN_FRONTEND": "noninteractive"},
        ),
        Step(
            name="mongosh",
            description="MongoDB Shell",
            precondition=probes.command_available("mongosh"),
            action=actions.sequence(
                actions.apt_repository(
                    key_url="https://www.mongodb.org/static/pgp/server-7.0.asc",
                    keyring="/usr/share/keyrings/mongodb-server-7.0.gpg",
                    source=(
                        "deb [ arch=amd64,arm64 signed-by={keyring} ] "
                        "https://repo.mongodb.org/apt/ubuntu jammy/mongodb-org/7.0 multiverse"
                    ),
                    list_file="/etc/apt/sources.list.d/mongodb-org-7.0.list",
                ),
                actions.apt_install(["mongodb-mongosh"]),
            ),
            reads=("PATH",),
            writes=("apt",),
            env={"DEBIAN_FRONTEND": "noninteractive"},
        ),
        Step(
            name="github-cli",
            description="GitHub CLI (gh)",
            precondition=probes.command_available("gh"),
            action=actions.sequence(
                actions.apt_repository(
                    key_url="https://cli.github.com/packages/githubcli-archive-keyring.gpg",
                    keyring="/usr/share/keyrings/githubcli-archive-keyring.gpg",
                    source="deb [arch={arch} signed-by={keyring}] https://cli.github.com/packages stable main",
                    list_file="/etc/apt/sources.list.d/github-cli.list",
                    dearmor=False,
                ),
                actions.apt_install(["gh"]),
            ),
            reads=("PATH",),
            writes=("apt",),
            env={"DEBIAN_FRONTEND": "noninteractive"},
        ),
        Step(
            name="docker",
            description="Docker Engine, CLI and compose plugin",
            precondition=probes.command_available("docker"),
            action=actions.sequence(
                actions.apt_repository(
                    key_url="https://download.docker.com/linux/ubuntu/gpg",
                    keyring="/usr/share/keyrings/docker-archive-keyring.gpg",
                    source=(
                        "deb [arch={arch} signed-by={keyring}] "
                        "https://download.docker.com/linux/ubuntu {codename} stable"
                    ),
                    list_file="/etc/apt/sources.list.d/docker.list",
                ),
                actions.apt_install(
                    ["docker-ce", "docker-ce-cli", "containerd.io", "docker-compose-plugin"]
                ),
                actions.shell(
                    'usermod -aG docker "${SUDO_USER:-$USER}"',
                    sudo=True,
                    detail="log out and back in for the docker group to take effect",
                ),
            ),
            reads=("PATH",),
            writes=("apt", "groups"),
            env={"DEBIAN_FRONTEND": "noninteractive"},
        ),
    ]
