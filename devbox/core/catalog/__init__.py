"""
Workstation catalog — the concrete, ordered provisioning steps.

Order matters: the package index is refreshed before anything is
installed, version managers come before their dotfile wiring, and the
summary file is written last.
"""

from __future__ import annotations

import logging

from devbox.core.catalog.cloud import cloud_steps
from devbox.core.catalog.shell import shell_steps
from devbox.core.catalog.system import system_steps
from devbox.core.catalog.toolchains import toolchain_steps
from devbox.core.catalog.workspace import finishing_steps, layout_steps
from devbox.core.engine.registry import StepRegistry
from devbox.core.models.config import ProvisionConfig

logger = logging.getLogger(__name__)

CLOUD_STEPS = {"terraform", "kubectl", "aws-cli", "azure-cli"}


def build_registry(config: ProvisionConfig, skip: list[str] | None = None) -> StepRegistry:
    """Build the workstation registry for ``config``.

    Steps switched off by feature flags, ``config.skip_steps`` and the
    extra ``skip`` names are left out entirely.
    """
    registry = StepRegistry()
    for group in (system_steps, toolchain_steps, cloud_steps, layout_steps, shell_steps, finishing_steps):
        for step in group(config):
            registry.register(step)

    excluded = set(config.skip_steps) | set(skip or ())
    if not config.features.cloud_clis:
        excluded |= CLOUD_STEPS
    if not config.features.windows_symlinks:
        excluded.add("windows-symlinks")
    if not config.features.default_shell_zsh:
        excluded.add("default-shell")

    if excluded:
        logger.info("Excluding steps: %s", ", ".join(sorted(excluded)))
        registry = registry.without(excluded)
    return registry


__all__ = ["build_registry"]
