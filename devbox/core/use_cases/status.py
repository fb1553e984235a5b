"""
Status use cases — what the last run did, the run history, and the
step catalog for the current configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from devbox.core.catalog import build_registry
from devbox.core.config.loader import load_config
from devbox.core.errors import ConfigError
from devbox.core.models.state import ProvisionState
from devbox.core.persistence.audit import AuditEntry, AuditWriter
from devbox.core.persistence.state_file import default_audit_path, default_state_path, load_state


@dataclass
class StatusResult:
    """Last-run summary read from the state file."""

    state: ProvisionState | None = None
    state_path: Path | None = None
    error: str | None = None

    @property
    def has_run(self) -> bool:
        return bool(self.state and self.state.last_run.operation_id)

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["state_path"] = str(self.state_path)
        if self.state:
            result["last_run"] = self.state.last_run.model_dump(mode="json")
            result["steps"] = {
                name: {
                    "last_status": s.last_status,
                    "last_run_at": s.last_run_at,
                    "last_succeeded_at": s.last_succeeded_at,
                }
                for name, s in self.state.steps.items()
            }
        return result


def get_status(state_path: Path | None = None) -> StatusResult:
    state_path = state_path or default_state_path()
    return StatusResult(state=load_state(state_path), state_path=state_path)


@dataclass
class HistoryResult:
    entries: list[AuditEntry] = field(default_factory=list)
    audit_path: Path | None = None

    def to_dict(self) -> dict:
        return {
            "audit_path": str(self.audit_path),
            "entries": [e.model_dump(mode="json") for e in self.entries],
        }


def get_history(n: int = 10, audit_path: Path | None = None) -> HistoryResult:
    """The ``n`` most recent runs, oldest first."""
    audit_path = audit_path or default_audit_path()
    return HistoryResult(entries=AuditWriter(audit_path).read_recent(n), audit_path=audit_path)


def list_steps(config_path: Path | None = None) -> dict:
    """Describe the steps a run would execute, in order.

    Returns:
        {"steps": [...]} or {"error": "..."} on failure.
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        return {"error": str(e)}

    registry = build_registry(config)
    return {"steps": [step.to_dict() for step in registry]}
