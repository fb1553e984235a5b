"""
ProvisionConfig — everything the workstation catalog is parameterized by.

Loaded from devbox.yml. Every field has a default so an empty (or
missing) file provisions the stock workstation.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


def _default_git_aliases() -> dict[str, str]:
    return {
        "st": "status",
        "co": "checkout",
        "br": "branch",
        "ci": "commit",
        "unstage": "reset HEAD --",
        "last": "log -1 HEAD",
        "lg": "log --oneline --graph --decorate",
    }


class GitSettings(BaseModel):
    """Global git identity and defaults."""

    email: str = ""
    name: str = ""
    default_branch: str = "main"
    editor: str = "vim"
    pull_rebase: bool = False
    aliases: dict[str, str] = Field(default_factory=_default_git_aliases)

    def as_git_config(self) -> dict[str, str]:
        """Flatten into ``git config --global`` key/value pairs.

        Identity keys are left out when not configured so an identity
        already present in ~/.gitconfig is kept.
        """
        values: dict[str, str] = {}
        if self.email:
            values["user.email"] = self.email
        if self.name:
            values["user.name"] = self.name
        values.update({
            "init.defaultBranch": self.default_branch,
            "pull.rebase": "true" if self.pull_rebase else "false",
            "core.editor": self.editor,
        })
        for alias, command in self.aliases.items():
            values[f"alias.{alias}"] = command
        return values


class ToolchainVersions(BaseModel):
    """Versions handed to the version managers."""

    go: str = "1.23.3"
    nvm: str = "v0.40.0"
    node: list[str] = Field(default_factory=lambda: ["--lts", "20"])
    python: list[str] = Field(default_factory=lambda: ["3.12.0", "3.11.6"])
    python_global: str = "3.12.0"
    sdkman_candidates: list[str] = Field(
        default_factory=lambda: [
            "java 21-tem",
            "java 17-tem",
            "maven",
            "gradle",
            "kotlin",
            "groovy",
        ]
    )


class PackageLists(BaseModel):
    """Package names per installer. Pure data; order is preserved."""

    apt: list[str] = Field(
        default_factory=lambda: [
            "curl", "wget", "git", "zip", "unzip", "build-essential",
            "software-properties-common", "apt-transport-https",
            "ca-certificates", "gnupg", "lsb-release", "tree", "htop", "vim",
            "jq", "ripgrep", "fd-find", "bat", "tmux", "netcat-openbsd",
            "dnsutils", "openssh-client", "postgresql-client",
            "redis-tools", "python3-pip", "python3-venv", "python3-dev",
            "zsh", "fonts-powerline", "fzf", "ncdu", "duf", "eza", "httpie",
        ]
    )
    npm_global: list[str] = Field(
        default_factory=lambda: [
            "pnpm@latest", "yarn@latest", "typescript", "tsx", "nodemon",
            "pm2", "serve", "vite", "eslint", "prettier",
        ]
    )
    cargo: list[str] = Field(
        default_factory=lambda: ["tokei", "procs", "bottom", "zoxide", "starship"]
    )
    go_tools: list[str] = Field(
        default_factory=lambda: [
            "github.com/jesseduffield/lazygit@latest",
            "github.com/jesseduffield/lazydocker@latest",
        ]
    )
    pip: list[str] = Field(
        default_factory=lambda: [
            "pipenv", "poetry", "black", "flake8", "mypy", "pytest",
            "requests", "ipython",
        ]
    )


class Features(BaseModel):
    """Optional parts of the workstation."""

    windows_symlinks: bool = True
    default_shell_zsh: bool = True
    cloud_clis: bool = True


def _default_directories() -> list[str]:
    dirs = [f"projects/{d}" for d in ("personal", "work", "learning", "sandbox")]
    dirs += ["scripts", "tools", ".config", "backups"]
    dirs += [
        f"docker-data/{d}"
        for d in ("postgres", "mongodb", "redis", "elasticsearch", "nexus", "logs", "init", "config")
    ]
    return dirs


class ProvisionConfig(BaseModel):
    """Root configuration — loaded from devbox.yml."""

    home: str = "~"
    require_wsl: bool = True
    apt_max_age_hours: int = 24
    command_timeout: int = 1800
    windows_user: str | None = None

    git: GitSettings = Field(default_factory=GitSettings)
    versions: ToolchainVersions = Field(default_factory=ToolchainVersions)
    packages: PackageLists = Field(default_factory=PackageLists)
    features: Features = Field(default_factory=Features)
    directories: list[str] = Field(default_factory=_default_directories)
    skip_steps: list[str] = Field(default_factory=list)

    @property
    def home_dir(self) -> Path:
        return Path(self.home).expanduser()
