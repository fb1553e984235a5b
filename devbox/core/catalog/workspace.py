"""
Workspace steps — directory layout, git, scripts, compose stack, and
the WSL host integration.
"""

from __future__ import annotations

from devbox.core.catalog.templates import COMPOSE_FILE, SCRIPTS_DIR, renderer
from devbox.core.engine import actions, probes
from devbox.core.errors import PreconditionCheckError
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.context import StepContext
from devbox.core.models.step import Step

DB_SCRIPT = f"{SCRIPTS_DIR}/manage-databases.sh"
SUMMARY_FILE = "wsl-setup-summary.txt"
IDENTITY_KEYS = ("user.email", "user.name")

# link (relative to home) → target (relative to home, or absolute)
HOST_LINKS = {
    "desktop": "host/Desktop",
    "docs": "host/Documents",
    "downloads": "host/Downloads",
}


def windows_home(ctx: StepContext) -> str:
    """The Windows user's profile directory as seen from WSL."""
    user = ctx.config.windows_user
    if not user:
        result = ctx.run(["cmd.exe", "/c", "echo %USERNAME%"], check=False)
        user = result.stdout.strip()
        if not result.ok or not user:
            raise PreconditionCheckError(ctx.step_name, "cannot determine the Windows user name")
    return f"/mnt/c/Users/{user}"


def _git_values(ctx: StepContext) -> dict[str, str]:
    return ctx.config.git.as_git_config()


def layout_steps(config: ProvisionConfig) -> list[Step]:
    return [
        Step(
            name="directories",
            description="Project, scripts, backups and docker-data directories",
            precondition=probes.directories_exist(lambda ctx: ctx.config.directories),
            action=actions.make_directories(lambda ctx: ctx.config.directories),
            writes=("~",),
        ),
        Step(
            name="git-config",
            description="Git identity, defaults and aliases",
            precondition=probes.all_of(
                probes.git_config_present(IDENTITY_KEYS),
                probes.git_config_matches(_git_values),
            ),
            action=actions.git_config(_git_values, require=IDENTITY_KEYS),
            writes=("~/.gitconfig",),
        ),
        Step(
            name="db-scripts",
            description="Database management script",
            precondition=probes.file_has_content(DB_SCRIPT, renderer("manage-databases.sh.tmpl")),
            action=actions.write_file(DB_SCRIPT, renderer("manage-databases.sh.tmpl"), mode=0o755),
            writes=(f"~/{DB_SCRIPT}",),
        ),
    ]


def finishing_steps(config: ProvisionConfig) -> list[Step]:
    link_checks = [probes.symlink_points_to("host", windows_home)]
    link_checks += [probes.symlink_points_to(link, target) for link, target in HOST_LINKS.items()]
    link_actions = [actions.symlink("host", windows_home)]
    link_actions += [actions.symlink(link, target) for link, target in HOST_LINKS.items()]

    return [
        Step(
            name="windows-symlinks",
            description="Links to the Windows profile (~/host, ~/desktop, ~/docs, ~/downloads)",
            precondition=probes.all_of(*link_checks),
            action=actions.sequence(*link_actions),
            reads=("/mnt/c",),
            writes=("~/host", "~/desktop", "~/docs", "~/downloads"),
        ),
        Step(
            name="compose-file",
            description="Docker Compose stack for local databases",
            precondition=probes.file_has_content(COMPOSE_FILE, renderer("docker-compose.yml.tmpl")),
            action=actions.write_file(COMPOSE_FILE, renderer("docker-compose.yml.tmpl")),
            writes=(f"~/{COMPOSE_FILE}",),
        ),
        Step(
            name="default-shell",
            description="Make zsh the login shell",
            precondition=probes.login_shell_is("zsh"),
            action=actions.change_login_shell("zsh"),
            writes=("/etc/passwd",),
        ),
        Step(
            name="setup-summary",
            description="Write ~/wsl-setup-summary.txt",
            precondition=probes.file_has_content(SUMMARY_FILE, renderer("setup-summary.txt.tmpl")),
            action=actions.write_file(SUMMARY_FILE, renderer("setup-summary.txt.tmpl")),
            writes=(f"~/{SUMMARY_FILE}",),
        ),
    ]
