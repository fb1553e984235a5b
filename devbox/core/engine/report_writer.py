"""
Report writer — renders a RunReport as a human-scannable summary.

Output is deterministic: steps appear in registration order and the
body carries no timestamps, so two runs against the same machine
produce identical (diff-able) text.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devbox.core.engine.registry import StepRegistry
from devbox.core.models.report import RunReport
from devbox.core.models.step import StepResult, StepStatus

logger = logging.getLogger(__name__)

_MARKERS = {
    StepStatus.SUCCEEDED: "✓",
    StepStatus.SKIPPED: "⊘",
    StepStatus.FAILED: "✗",
}

NOT_RUN = "not run"


class ReportWriter:
    """Render run reports.

    Args:
        show_details: Include the first line of each failure's detail.
        show_timing: Append per-step durations (breaks diff-ability).
    """

    def __init__(self, show_details: bool = True, show_timing: bool = False):
        self.show_details = show_details
        self.show_timing = show_timing

    def render(self, report: RunReport, registry: StepRegistry | None = None) -> str:
        """Render the summary block.

        When ``registry`` is given, steps the run never reached (after a
        fatal failure) are listed as ``not run``.
        """
        names = [r.step_name for r in report.results]
        if registry is not None:
            names += [n for n in registry.names() if report.get(n) is None]
        width = max((len(n) for n in names), default=0)

        title = "Provisioning summary" + (" (dry-run)" if report.dry_run else "")
        lines = [title, "=" * len(title)]

        for result in report.results:
            lines.append(self._render_result(result, width))
        for name in names[len(report.results):]:
            lines.append(f"  - {name:<{width}}  {NOT_RUN}")

        lines.append("")
        lines.append(
            f"Steps: {report.total} | succeeded: {report.succeeded} | "
            f"skipped: {report.skipped} | failed: {report.failed}"
        )
        lines.append(self.overall_line(report))
        return "\n".join(lines) + "\n"

    def _render_result(self, result: StepResult, width: int) -> str:
        line = f"  {_MARKERS[result.status]} {result.step_name:<{width}}  {result.status.value}"
        if result.fatal and result.status == StepStatus.FAILED:
            line += " (fatal)"
        if self.show_timing:
            line += f" [{result.duration_ms}ms]"
        if self.show_details and result.status == StepStatus.FAILED and result.detail:
            first = next(iter(result.detail.strip().splitlines()), "")
            if first:
                line += f"\n      {first}"
        return line

    @staticmethod
    def overall_line(report: RunReport) -> str:
        if report.success:
            if report.failed:
                return f"Overall: OK with {report.failed} non-fatal failure(s)"
            return "Overall: OK"
        return f"Overall: FAILED (halted at '{report.halted_by}')"

    def write(self, report: RunReport, path: Path, registry: StepRegistry | None = None) -> Path:
        """Write the rendered summary to ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(report, registry), encoding="utf-8")
        logger.debug("Run summary written to %s", path)
        return path
