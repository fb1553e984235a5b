"""
Tests for persistence — state file and audit ledger.
"""

import json
from pathlib import Path

from devbox.core.models.report import RunReport
from devbox.core.models.state import ProvisionState
from devbox.core.models.step import Step, StepResult, never_satisfied
from devbox.core.persistence.audit import AuditEntry, AuditWriter
from devbox.core.persistence.state_file import (
    default_audit_path,
    default_state_path,
    load_state,
    record_run,
    save_state,
)


def _step(name: str, fatal: bool = False) -> Step:
    return Step(name=name, precondition=never_satisfied, action=lambda ctx: None, fatal=fatal)


def _report(dry_run: bool = False) -> RunReport:
    report = RunReport(operation_id="run-1", dry_run=dry_run)
    report.append(StepResult.succeeded(_step("apt-update")))
    report.append(StepResult.skipped(_step("docker"), "already satisfied"))
    report.append(StepResult.failed(_step("nvm"), "curl: (6) Could not resolve host"))
    report.finalize()
    return report


class TestStateFile:
    """Tests for state file persistence."""

    def test_save_and_load(self, tmp_path: Path):
        """State roundtrips through save/load."""
        path = tmp_path / "state" / "current.json"
        state = ProvisionState()
        state.set_step_state("docker", last_status="succeeded")
        save_state(state, path)
        assert path.is_file()

        loaded = load_state(path)
        assert loaded.steps["docker"].last_status == "succeeded"

    def test_load_missing_returns_fresh(self, tmp_path: Path):
        state = load_state(tmp_path / "nonexistent.json")
        assert state.steps == {}
        assert state.last_run.operation_id == ""

    def test_load_corrupt_returns_fresh(self, tmp_path: Path):
        path = tmp_path / "corrupt.json"
        path.write_text("not json at all {{{")
        assert load_state(path).steps == {}

    def test_save_leaves_no_temp_files(self, tmp_state_dir: Path):
        path = tmp_state_dir / "current.json"
        save_state(ProvisionState(), path)
        save_state(ProvisionState(), path)
        assert [p.name for p in tmp_state_dir.iterdir()] == ["current.json"]
        assert json.loads(path.read_text())["schema_version"] == 1

    def test_default_paths_follow_xdg(self, tmp_path: Path):
        assert default_state_path() == tmp_path / "xdg-state" / "devbox" / "current.json"
        assert default_audit_path().parent == default_state_path().parent

    def test_record_run(self):
        state = record_run(ProvisionState(), _report())
        assert state.last_run.operation_id == "run-1"
        assert state.last_run.status == "partial"
        assert state.last_run.steps_total == 3
        assert state.last_run.steps_failed == 1
        assert state.steps["apt-update"].last_succeeded_at is not None
        assert state.steps["nvm"].last_status == "failed"
        assert state.steps["nvm"].last_succeeded_at is None

    def test_record_run_keeps_last_success(self):
        state = record_run(ProvisionState(), _report())
        first_success = state.steps["apt-update"].last_succeeded_at

        report = RunReport(operation_id="run-2")
        report.append(StepResult.failed(_step("apt-update"), "no network"))
        report.finalize()
        record_run(state, report)
        assert state.steps["apt-update"].last_status == "failed"
        assert state.steps["apt-update"].last_succeeded_at == first_success

    def test_dry_run_does_not_touch_step_state(self):
        state = record_run(ProvisionState(), _report(dry_run=True))
        assert state.last_run.dry_run is True
        assert state.steps == {}


class TestAuditLedger:
    def test_entry_from_report(self):
        entry = AuditEntry.from_report(_report(), mock=True)
        assert entry.status == "partial"
        assert entry.failed_steps == ["nvm"]
        assert entry.steps_skipped == 1
        assert entry.context == {"mock": True}

    def test_append_and_read(self, tmp_path: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        for i in range(3):
            writer.write(AuditEntry(operation_id=f"run-{i}", status="ok"))
        entries = writer.read_all()
        assert [e.operation_id for e in entries] == ["run-0", "run-1", "run-2"]
        assert [e.operation_id for e in writer.read_recent(2)] == ["run-1", "run-2"]
        assert len((tmp_path / "audit.ndjson").read_text().splitlines()) == 3

    def test_corrupt_lines_skipped(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        writer = AuditWriter(path)
        writer.write(AuditEntry(operation_id="run-1"))
        with path.open("a") as f:
            f.write("{broken\n")
        writer.write(AuditEntry(operation_id="run-2"))
        assert [e.operation_id for e in writer.read_all()] == ["run-1", "run-2"]

    def test_missing_ledger(self, tmp_path: Path):
        assert AuditWriter(tmp_path / "none.ndjson").read_all() == []
