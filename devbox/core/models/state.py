"""
ProvisionState — what the last run observed, persisted between runs.

Serialized to ~/.local/state/devbox/current.json. It is informational:
preconditions always probe the machine itself, never this file.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepState(BaseModel):
    """Last known outcome of a step."""

    name: str
    last_status: str | None = None  # skipped, succeeded, failed
    last_run_at: str | None = None
    last_detail: str | None = None
    last_succeeded_at: str | None = None


class RunRecord(BaseModel):
    """Summary of the last run."""

    operation_id: str = ""
    started_at: str = ""
    ended_at: str = ""
    status: str = ""  # ok, partial, failed
    dry_run: bool = False
    steps_total: int = 0
    steps_succeeded: int = 0
    steps_skipped: int = 0
    steps_failed: int = 0
    halted_by: str | None = None


class ProvisionState(BaseModel):
    """Root state model."""

    schema_version: int = 1

    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    steps: dict[str, StepState] = Field(default_factory=dict)
    last_run: RunRecord = Field(default_factory=RunRecord)

    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def set_step_state(self, name: str, **kwargs: Any) -> None:
        """Update or create a step state entry."""
        if name in self.steps:
            for key, value in kwargs.items():
                setattr(self.steps[name], key, value)
        else:
            self.steps[name] = StepState(name=name, **kwargs)
