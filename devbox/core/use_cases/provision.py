"""
Provision use case — the full run, from config file to audited report.

Loads configuration, builds the workstation registry, picks the
adapters (real machine or simulated), runs the executor and persists
the outcome: state file, audit ledger and a plain-text summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from devbox.adapters.shell.command import SubprocessRunner
from devbox.adapters.shell.filesystem import LocalFilesystem
from devbox.core.catalog import build_registry
from devbox.core.catalog.simulation import simulated_context
from devbox.core.config.loader import load_config
from devbox.core.engine.executor import Executor, ProgressListener
from devbox.core.engine.registry import StepRegistry
from devbox.core.engine.report_writer import ReportWriter
from devbox.core.errors import ConfigError
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.context import StepContext
from devbox.core.models.report import RunReport
from devbox.core.persistence.audit import AuditEntry, AuditWriter
from devbox.core.persistence.state_file import (
    default_audit_path,
    default_state_path,
    load_state,
    record_run,
    save_state,
)

logger = logging.getLogger(__name__)

SUMMARY_FILE = "last-run.txt"


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    report: RunReport | None = None
    registry: StepRegistry | None = None
    config: ProvisionConfig | None = None
    summary: str = ""
    summary_path: Path | None = None
    mock_mode: bool = False
    error: str | None = None
    excluded: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None and self.report is not None and self.report.success

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["mock"] = self.mock_mode
        result["home"] = str(self.config.home_dir) if self.config else ""
        result["steps_registered"] = len(self.registry) if self.registry else 0
        if self.excluded:
            result["excluded"] = self.excluded
        if self.report:
            result["report"] = self.report.to_dict()
        if self.summary_path:
            result["summary_path"] = str(self.summary_path)
        return result


def machine_context(config: ProvisionConfig) -> StepContext:
    return StepContext(
        config=config,
        runner=SubprocessRunner(default_timeout=config.command_timeout),
        fs=LocalFilesystem(),
    )


def run_provision(
    config_path: Path | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    skip: list[str] | None = None,
    listener: ProgressListener | None = None,
    context: StepContext | None = None,
    state_path: Path | None = None,
    audit_path: Path | None = None,
) -> ProvisionResult:
    """Provision the workstation.

    Args:
        config_path: Optional explicit path to devbox.yml.
        dry_run: Probe only; report what would run.
        mock_mode: Run against a simulated machine.
        skip: Extra step names to leave out of this run.
        listener: Receives live per-step progress.
        context: Pre-built step context (overrides ``mock_mode``).
        state_path: Override for the state file location.
        audit_path: Override for the audit ledger location.

    Returns:
        ProvisionResult with the run report, or an error message when
        the configuration could not be loaded.
    """
    result = ProvisionResult(mock_mode=mock_mode)

    # ── Load config ──────────────────────────────────────────────
    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.config = config

    # ── Build registry ───────────────────────────────────────────
    registry = build_registry(config, skip=skip)
    result.registry = registry
    result.excluded = sorted(set(config.skip_steps) | set(skip or ()))

    # ── Execute ──────────────────────────────────────────────────
    if context is None:
        context = simulated_context(config) if mock_mode else machine_context(config)
    executor = Executor(context=context, listener=listener, dry_run=dry_run)
    report = executor.run(registry)
    result.report = report

    writer = ReportWriter()
    result.summary = writer.render(report, registry)

    # ── Persist state ────────────────────────────────────────────
    state_path = state_path or default_state_path()
    state = load_state(state_path)
    record_run(state, report)
    state.metadata["mock"] = mock_mode
    try:
        save_state(state, state_path)
    except OSError as e:
        logger.warning("State not saved: %s", e)

    # ── Write audit log and summary ──────────────────────────────
    AuditWriter(audit_path or default_audit_path()).write(
        AuditEntry.from_report(report, mock=mock_mode, home=str(config.home_dir))
    )
    summary_path = state_path.parent / SUMMARY_FILE
    try:
        result.summary_path = writer.write(report, summary_path, registry)
    except OSError as e:
        logger.warning("Run summary not written to %s: %s", summary_path, e)

    return result
