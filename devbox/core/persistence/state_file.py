"""
State file persistence — atomic read/write for ProvisionState.

State lives in ~/.local/state/devbox/current.json (XDG state dir).
Writes go to a temp file that is then renamed over the target, so a
crash mid-write never leaves a truncated file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from devbox.core.models.report import RunReport
from devbox.core.models.state import ProvisionState

logger = logging.getLogger(__name__)

STATE_FILE = "current.json"
AUDIT_FILE = "audit.ndjson"


def state_dir() -> Path:
    """devbox's state directory, honouring XDG_STATE_HOME."""
    base = os.environ.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(base).expanduser() / "devbox"


def default_state_path() -> Path:
    return state_dir() / STATE_FILE


def default_audit_path() -> Path:
    return state_dir() / AUDIT_FILE


def load_state(path: Path) -> ProvisionState:
    """Load state; a missing or corrupt file yields a fresh state."""
    if not path.is_file():
        logger.info("No state file at %s — starting fresh", path)
        return ProvisionState()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        state = ProvisionState.model_validate(data)
        logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
        return state
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s — starting fresh", path, e)
        return ProvisionState()
    except Exception as e:
        logger.warning("Cannot load state from %s: %s — starting fresh", path, e)
        return ProvisionState()


def save_state(state: ProvisionState, path: Path) -> None:
    """Save state to a JSON file (atomic write)."""
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
    os.close(fd)
    tmp = Path(tmp_path)
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(path)
        logger.debug("State saved to %s", path)
    except Exception as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save state to %s: %s", path, e)
        raise


def record_run(state: ProvisionState, report: RunReport) -> ProvisionState:
    """Fold a finished run into the state."""
    run = state.last_run
    run.operation_id = report.operation_id
    run.started_at = report.started_at
    run.ended_at = report.ended_at or ""
    run.status = report.status
    run.dry_run = report.dry_run
    run.steps_total = report.total
    run.steps_succeeded = report.succeeded
    run.steps_skipped = report.skipped
    run.steps_failed = report.failed
    run.halted_by = report.halted_by

    # A dry run observes but changes nothing worth remembering per step
    if report.dry_run:
        return state

    for result in report.results:
        updates = {
            "last_status": result.status.value,
            "last_run_at": result.started_at,
            "last_detail": result.detail,
        }
        if result.status.value == "succeeded":
            updates["last_succeeded_at"] = result.started_at
        state.set_step_state(result.step_name, **updates)
    return state
