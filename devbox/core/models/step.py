"""
Step and StepResult — the unit of provisioning work and its outcome.

A Step pairs a precondition ("is the desired state already there?")
with an action ("establish the desired state"). The executor turns
each step it reaches into exactly one StepResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from devbox.core.models.context import StepContext

Precondition = Callable[["StepContext"], bool]
StepAction = Callable[["StepContext"], "str | None"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def never_satisfied(_ctx: StepContext) -> bool:
    """Precondition for steps that have no way to detect prior success."""
    return False


@dataclass(frozen=True)
class Step:
    """A named unit of provisioning work.

    Attributes:
        name:         Unique identifier (e.g. ``docker``, ``apt-update``).
        precondition: Returns True when the desired state already holds.
                      May raise when the state cannot be determined.
        action:       Establishes the desired state. Raises on failure and
                      may return a short detail string on success.
        fatal:        Abort the remaining steps when this one fails.
        description:  Human-readable label for listings.
        reads/writes: Machine resources the step inspects or mutates.
        env:          Environment overrides its commands need.
    """

    name: str
    precondition: Precondition
    action: StepAction
    fatal: bool = False
    description: str = ""
    reads: tuple[str, ...] = ()
    writes: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "fatal": self.fatal,
            "reads": list(self.reads),
            "writes": list(self.writes),
        }


class StepStatus(str, Enum):
    """Outcome of a single step in a run."""

    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class StepResult(BaseModel):
    """Immutable record of what happened to one step."""

    model_config = ConfigDict(frozen=True)

    step_name: str
    status: StepStatus
    detail: str | None = None
    fatal: bool = False
    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the step left the machine in its desired state."""
        return self.status != StepStatus.FAILED

    @property
    def halts_run(self) -> bool:
        return self.fatal and self.status == StepStatus.FAILED

    @classmethod
    def skipped(cls, step: Step, detail: str | None = None, **kwargs: Any) -> StepResult:
        return cls(
            step_name=step.name,
            status=StepStatus.SKIPPED,
            detail=detail,
            fatal=step.fatal,
            **kwargs,
        )

    @classmethod
    def succeeded(cls, step: Step, detail: str | None = None, **kwargs: Any) -> StepResult:
        return cls(
            step_name=step.name,
            status=StepStatus.SUCCEEDED,
            detail=detail,
            fatal=step.fatal,
            **kwargs,
        )

    @classmethod
    def failed(cls, step: Step, detail: str, **kwargs: Any) -> StepResult:
        return cls(
            step_name=step.name,
            status=StepStatus.FAILED,
            detail=detail,
            fatal=step.fatal,
            **kwargs,
        )
