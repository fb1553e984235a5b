"""
StepContext — the explicit world a precondition or action sees.

The provisioning steps never read or mutate process-wide state such as
``os.environ``. What they need (config, home directory, environment
overrides, the machine adapters) is handed to them here.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from devbox.adapters.base import CommandResult, CommandRunner, Filesystem
from devbox.core.errors import ActionError
from devbox.core.models.config import ProvisionConfig

logger = logging.getLogger(__name__)

# Characters of stderr carried into an ActionError
_STDERR_TAIL = 2000


class StepContext(BaseModel):
    """Everything a step needs to inspect or change the machine."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config: ProvisionConfig
    runner: CommandRunner
    fs: Filesystem
    env: dict[str, str] = Field(default_factory=dict)
    dry_run: bool = False
    step_name: str = ""

    @property
    def home(self) -> Path:
        return self.config.home_dir

    def path(self, relative: str) -> Path:
        """Resolve a path against the configured home directory."""
        p = Path(relative).expanduser()
        if p.is_absolute():
            return p
        return self.home / p

    def for_step(self, name: str, env: dict[str, str] | None = None) -> StepContext:
        """Derive the context for a single step, layering its env overrides."""
        merged = dict(self.env)
        merged.update(env or {})
        return self.model_copy(update={"step_name": name, "env": merged})

    def run(
        self,
        command: str | list[str],
        *,
        sudo: bool = False,
        check: bool = True,
        cwd: Path | None = None,
    ) -> CommandResult:
        """Run a command with this step's env and the configured timeout.

        Raises:
            ActionError: if ``check`` is set and the command did not exit 0.
        """
        result = self.runner.run(
            command,
            sudo=sudo,
            env=self.env,
            cwd=str(cwd) if cwd else None,
            timeout=self.config.command_timeout,
        )
        if check and not result.ok:
            logger.debug("[%s] command failed: %s", self.step_name, result.command)
            raise ActionError(
                f"Command exited with code {result.return_code}",
                command=result.command,
                return_code=result.return_code,
                stderr=result.stderr[-_STDERR_TAIL:],
            )
        return result
