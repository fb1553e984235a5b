"""
Template rendering for files devbox writes into the home directory.

Templates ship as package data in ``devbox.templates``. Placeholders use
``string.Template`` syntax with a ``devbox_`` prefix (``${devbox_home}``)
so shell variables in the templates are left untouched.
"""

from __future__ import annotations

from importlib import resources
from string import Template

from devbox.core.models.config import ProvisionConfig

TEMPLATE_PACKAGE = "devbox.templates"

SCRIPTS_DIR = "scripts"
COMPOSE_FILE = "docker-compose.yml"
DATA_DIR = "docker-data"


def load_template(name: str) -> str:
    return resources.files(TEMPLATE_PACKAGE).joinpath(name).read_text(encoding="utf-8")


def template_values(config: ProvisionConfig) -> dict[str, str]:
    """Placeholder values derived from the configuration."""
    home = config.home_dir
    values = {
        "devbox_home": str(home),
        "devbox_scripts_dir": str(home / SCRIPTS_DIR),
        "devbox_compose_file": str(home / COMPOSE_FILE),
        "devbox_data_dir": str(home / DATA_DIR),
        "devbox_go_version": config.versions.go,
        "devbox_python_global": config.versions.python_global,
        "devbox_directories": "\n".join(f"- ~/{d}/" for d in config.directories),
    }
    values["devbox_toolchain_env"] = Template(load_template("toolchain_env.sh.tmpl")).safe_substitute(values)
    return values


def render_template(name: str, config: ProvisionConfig) -> str:
    return Template(load_template(name)).safe_substitute(template_values(config))


def renderer(name: str):
    """A content callable for probes/actions: renders ``name`` from ctx.config."""

    def render(ctx) -> str:
        return render_template(name, ctx.config)

    return render
