"""
RunReport — the ordered record of every step's outcome for one run.

Created at run start, appended to by the executor as steps complete,
finalized when the run ends. Only the executor writes to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from devbox.core.models.step import StepResult, StepStatus


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class RunReport:
    """Result of executing a step registry."""

    operation_id: str = ""
    dry_run: bool = False
    results: list[StepResult] = field(default_factory=list)
    started_at: str = field(default_factory=_now_iso)
    ended_at: str | None = None
    halted_by: str | None = None

    def append(self, result: StepResult) -> None:
        if self.finalized:
            raise RuntimeError("RunReport is finalized; no more results accepted")
        self.results.append(result)
        if result.halts_run:
            self.halted_by = result.step_name

    def finalize(self) -> None:
        if self.ended_at is None:
            self.ended_at = _now_iso()

    @property
    def finalized(self) -> bool:
        return self.ended_at is not None

    @property
    def success(self) -> bool:
        """True iff no fatal step failed."""
        return not any(r.halts_run for r in self.results)

    @property
    def total(self) -> int:
        return len(self.results)

    def _count(self, status: StepStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(StepStatus.SUCCEEDED)

    @property
    def skipped(self) -> int:
        return self._count(StepStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(StepStatus.FAILED)

    @property
    def status(self) -> str:
        if not self.success:
            return "failed"
        if self.failed:
            return "partial"
        return "ok"

    def get(self, step_name: str) -> StepResult | None:
        for result in self.results:
            if result.step_name == step_name:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "success": self.success,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "halted_by": self.halted_by,
            "total": self.total,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "results": [r.model_dump(mode="json") for r in self.results],
        }
