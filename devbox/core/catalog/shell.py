"""
Shell steps — Oh My Zsh, its theme and plugins, and the dotfiles.

Each plugin is its own step with its own directory check, so an
interrupted first run that installed Oh My Zsh but not every plugin
is completed on the next run.
"""

from __future__ import annotations

from devbox.core.catalog.templates import renderer
from devbox.core.engine import actions, probes
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.step import Step

OMZ_DIR = ".oh-my-zsh"
OMZ_CUSTOM = f"{OMZ_DIR}/custom"
OMZ_INSTALLER = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"

# step name → (repository, destination relative to home, shallow clone)
ZSH_ADDONS = {
    "zsh-theme-powerlevel10k": (
        "https://github.com/romkatv/powerlevel10k.git",
        f"{OMZ_CUSTOM}/themes/powerlevel10k",
        True,
    ),
    "zsh-autosuggestions": (
        "https://github.com/zsh-users/zsh-autosuggestions",
        f"{OMZ_CUSTOM}/plugins/zsh-autosuggestions",
        False,
    ),
    "zsh-syntax-highlighting": (
        "https://github.com/zsh-users/zsh-syntax-highlighting.git",
        f"{OMZ_CUSTOM}/plugins/zsh-syntax-highlighting",
        False,
    ),
    "zsh-completions": (
        "https://github.com/zsh-users/zsh-completions",
        f"{OMZ_CUSTOM}/plugins/zsh-completions",
        False,
    ),
}

_shell_common = renderer("shell_common.sh.tmpl")
_zshrc = renderer("zshrc.tmpl")
_bashrc_block = renderer("bashrc_block.tmpl")


def shell_steps(config: ProvisionConfig) -> list[Step]:
    steps = [
        Step(
            name="oh-my-zsh",
            description="Oh My Zsh framework",
            precondition=probes.directory_exists(OMZ_DIR),
            action=actions.shell(f'sh -c "$(curl -fsSL {OMZ_INSTALLER})" "" --unattended'),
            writes=(f"~/{OMZ_DIR}",),
            env={"RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"},
        ),
    ]

    for name, (repo, dest, shallow) in ZSH_ADDONS.items():
        steps.append(
            Step(
                name=name,
                description=f"Clone {repo.rsplit('/', 1)[-1].removesuffix('.git')}",
                precondition=probes.directory_exists(dest),
                action=actions.git_clone(repo, dest, depth=1 if shallow else None),
                writes=(f"~/{dest}",),
            )
        )

    steps.append(
        Step(
            name="shell-config",
            description="~/.shell_common, ~/.zshrc and the ~/.bashrc block",
            precondition=probes.all_of(
                probes.file_has_content(".shell_common", _shell_common),
                probes.file_has_content(".zshrc", _zshrc),
                probes.file_contains(".bashrc", _bashrc_block),
            ),
            action=actions.sequence(
                actions.write_file(".shell_common", _shell_common),
                actions.write_file(".zshrc", _zshrc),
                actions.append_block(".bashrc", _bashrc_block),
            ),
            reads=("~/.bashrc",),
            writes=("~/.shell_common", "~/.zshrc", "~/.bashrc"),
        )
    )
    return steps
