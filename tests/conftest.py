"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from devbox.adapters.mock import MockFilesystem, MockRunner
from devbox.core.errors import ActionError
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.context import StepContext
from devbox.core.models.step import Step


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the real state dir and user config."""
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    monkeypatch.setenv("HOME", str(tmp_path / "user-home"))
    for name in (
        "DEVBOX_CONFIG",
        "DEVBOX_GIT_EMAIL",
        "DEVBOX_GIT_NAME",
        "DEVBOX_LOG_LEVEL",
        "DEVBOX_LOG_FILE",
        "DEVBOX_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    return tmp_path / "home"


@pytest.fixture
def config(home: Path) -> ProvisionConfig:
    return ProvisionConfig(home=str(home), require_wsl=False)


@pytest.fixture
def runner() -> MockRunner:
    return MockRunner()


@pytest.fixture
def fs() -> MockFilesystem:
    return MockFilesystem()


@pytest.fixture
def ctx(config: ProvisionConfig, runner: MockRunner, fs: MockFilesystem) -> StepContext:
    return StepContext(config=config, runner=runner, fs=fs)


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def make_step():
    """Build a step from plain booleans.

    ``satisfied`` may be a bool or an exception instance to raise from
    the precondition; ``succeeds`` decides whether the action raises.
    Every action invocation is appended to ``calls``.
    """
    calls: list[str] = []

    def factory(
        name: str,
        satisfied: bool | Exception = False,
        succeeds: bool = True,
        fatal: bool = False,
    ) -> Step:
        def precondition(_ctx):
            if isinstance(satisfied, Exception):
                raise satisfied
            return satisfied

        def action(_ctx):
            calls.append(name)
            if not succeeds:
                raise ActionError(f"{name} broke", command=f"install {name}", return_code=2)
            return f"{name} done"

        return Step(name=name, precondition=precondition, action=action, fatal=fatal)

    factory.calls = calls
    return factory
