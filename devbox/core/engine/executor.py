"""
Engine executor — the provisioning loop.

Runs every step of a registry in order:

    precondition satisfied?  → Skipped
    else run action          → Succeeded | Failed
    Failed and fatal         → stop, report is unsuccessful

A precondition that cannot be evaluated is a failure, never a cue to
install. Steps are never retried within a run; re-running devbox is
the retry mechanism.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import UTC, datetime

from devbox.adapters.shell.command import SubprocessRunner
from devbox.adapters.shell.filesystem import LocalFilesystem
from devbox.core.engine.registry import StepRegistry
from devbox.core.errors import ActionError, PreconditionCheckError
from devbox.core.models.config import ProvisionConfig
from devbox.core.models.context import StepContext
from devbox.core.models.report import RunReport
from devbox.core.models.step import Step, StepResult, StepStatus

logger = logging.getLogger(__name__)

DRY_RUN_DETAIL = "[dry-run] would run"
SATISFIED_DETAIL = "already satisfied"
INTERRUPTED_DETAIL = "interrupted"


def generate_operation_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"


class ProgressListener:
    """Receives live progress from the executor. Default: does nothing."""

    def run_started(self, total: int) -> None:
        pass

    def step_started(self, step: Step) -> None:
        pass

    def step_finished(self, step: Step, result: StepResult) -> None:
        pass


def default_context() -> StepContext:
    """Context for the real machine with default configuration."""
    return StepContext(
        config=ProvisionConfig(),
        runner=SubprocessRunner(),
        fs=LocalFilesystem(),
    )


class Executor:
    """Sequential step executor.

    Args:
        context: Base context handed (per step) to preconditions and actions.
        listener: Optional progress listener.
        dry_run: Evaluate preconditions only; unmet steps are reported
            as skipped instead of being run.
    """

    def __init__(
        self,
        context: StepContext | None = None,
        listener: ProgressListener | None = None,
        dry_run: bool = False,
    ):
        self.context = (context or default_context()).model_copy(update={"dry_run": dry_run})
        self.listener = listener or ProgressListener()
        self.dry_run = dry_run

    def run(self, registry: StepRegistry) -> RunReport:
        """Execute every step in registration order and return the report."""
        registry.freeze()
        report = RunReport(operation_id=generate_operation_id(), dry_run=self.dry_run)
        steps = registry.all()
        logger.info("Run %s: %d steps%s", report.operation_id, len(steps), " (dry-run)" if self.dry_run else "")
        self.listener.run_started(len(steps))

        for step in steps:
            self.listener.step_started(step)
            result = self._run_step(step)
            report.append(result)
            self.listener.step_finished(step, result)

            if result.halts_run:
                logger.error("Fatal step '%s' failed; halting run", step.name)
                break

        report.finalize()
        logger.info(
            "Run %s finished: %s (%d succeeded, %d skipped, %d failed)",
            report.operation_id,
            report.status,
            report.succeeded,
            report.skipped,
            report.failed,
        )
        return report

    def _run_step(self, step: Step) -> StepResult:
        ctx = self.context.for_step(step.name, step.env)
        start = time.monotonic()

        def finish(status: StepStatus, detail: str | None) -> StepResult:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            marker = {"skipped": "⊘", "succeeded": "✓", "failed": "✗"}[status.value]
            logger.info("%s %s → %s", marker, step.name, status.value)
            if status == StepStatus.SKIPPED:
                return StepResult.skipped(step, detail, duration_ms=elapsed_ms)
            if status == StepStatus.SUCCEEDED:
                return StepResult.succeeded(step, detail, duration_ms=elapsed_ms)
            return StepResult.failed(step, detail or "failed", duration_ms=elapsed_ms)

        try:
            satisfied = self._check(step, ctx)
        except PreconditionCheckError as e:
            logger.warning("%s", e)
            return finish(StepStatus.FAILED, str(e))
        except KeyboardInterrupt:
            logger.warning("Step '%s' interrupted during precondition check", step.name)
            return finish(StepStatus.FAILED, INTERRUPTED_DETAIL)

        if satisfied:
            return finish(StepStatus.SKIPPED, SATISFIED_DETAIL)

        if self.dry_run:
            return finish(StepStatus.SKIPPED, DRY_RUN_DETAIL)

        try:
            detail = step.action(ctx)
        except ActionError as e:
            logger.debug("Step '%s' action failed: %s", step.name, e)
            return finish(StepStatus.FAILED, str(e))
        except KeyboardInterrupt:
            logger.warning("Step '%s' interrupted", step.name)
            return finish(StepStatus.FAILED, INTERRUPTED_DETAIL)
        except Exception as e:
            logger.exception("Step '%s' raised during action", step.name)
            return finish(StepStatus.FAILED, str(ActionError(f"Unexpected error: {e}")))

        return finish(StepStatus.SUCCEEDED, detail)

    @staticmethod
    def _check(step: Step, ctx: StepContext) -> bool:
        try:
            return bool(step.precondition(ctx))
        except PreconditionCheckError:
            raise
        except Exception as e:
            raise PreconditionCheckError(step.name, str(e) or type(e).__name__) from e
