"""
Tests for the engine — registry, executor, and report rendering.
"""

from pathlib import Path

import pytest

from devbox.adapters.mock import MockFilesystem
from devbox.core.engine.executor import (
    DRY_RUN_DETAIL,
    INTERRUPTED_DETAIL,
    SATISFIED_DETAIL,
    Executor,
    ProgressListener,
    generate_operation_id,
)
from devbox.core.engine.registry import StepRegistry
from devbox.core.engine.report_writer import ReportWriter
from devbox.core.errors import DuplicateNameError, PreconditionCheckError, RegistryLockedError
from devbox.core.models.report import RunReport
from devbox.core.models.step import Step, StepResult, StepStatus, never_satisfied

S, OK, F = StepStatus.SKIPPED, StepStatus.SUCCEEDED, StepStatus.FAILED


def _statuses(report: RunReport) -> list[tuple[str, StepStatus]]:
    return [(r.step_name, r.status) for r in report.results]


# ── Registry ────────────────────────────────────────────────────────


class TestStepRegistry:
    def test_register_preserves_order(self, make_step):
        registry = StepRegistry()
        for name in ("apt-update", "docker", "nvm"):
            registry.register(make_step(name))
        assert registry.names() == ["apt-update", "docker", "nvm"]
        assert [s.name for s in registry.all()] == ["apt-update", "docker", "nvm"]
        assert len(registry) == 3

    def test_duplicate_docker_rejected(self, make_step):
        registry = StepRegistry()
        registry.register(make_step("docker"))
        with pytest.raises(DuplicateNameError) as exc:
            registry.register(make_step("docker", fatal=True))
        assert exc.value.name == "docker"
        assert len(registry) == 1

    def test_all_is_read_only(self, make_step):
        registry = StepRegistry([make_step("a")])
        steps = registry.all()
        assert isinstance(steps, tuple)
        with pytest.raises(AttributeError):
            steps.append(make_step("b"))  # type: ignore[attr-defined]

    def test_frozen_registry_rejects_register(self, make_step):
        registry = StepRegistry([make_step("a")])
        registry.freeze()
        with pytest.raises(RegistryLockedError):
            registry.register(make_step("b"))

    def test_get_and_contains(self, make_step):
        registry = StepRegistry([make_step("a"), make_step("b")])
        assert registry.get("b").name == "b"
        assert registry.get("zzz") is None
        assert "a" in registry
        assert "zzz" not in registry

    def test_without_keeps_order(self, make_step):
        registry = StepRegistry([make_step(n) for n in ("a", "b", "c", "d")])
        trimmed = registry.without(["b", "unknown"])
        assert trimmed.names() == ["a", "c", "d"]
        assert registry.names() == ["a", "b", "c", "d"]


# ── Executor ────────────────────────────────────────────────────────


class TestExecutor:
    def test_one_result_per_step_in_order(self, ctx, make_step):
        registry = StepRegistry([
            make_step("a"),
            make_step("b", satisfied=True),
            make_step("c", succeeds=False),
            make_step("d"),
        ])
        report = Executor(ctx).run(registry)
        assert [r.step_name for r in report.results] == ["a", "b", "c", "d"]
        assert report.total == 4
        assert report.finalized

    def test_satisfied_step_skipped_without_running_action(self, ctx, make_step):
        report = Executor(ctx).run(StepRegistry([make_step("a", satisfied=True)]))
        assert _statuses(report) == [("a", S)]
        assert report.results[0].detail == SATISFIED_DETAIL
        assert make_step.calls == []

    def test_succeeded_step_keeps_action_detail(self, ctx, make_step):
        report = Executor(ctx).run(StepRegistry([make_step("a")]))
        assert report.results[0].status == OK
        assert report.results[0].detail == "a done"

    def test_raising_precondition_is_failed(self, ctx, make_step):
        registry = StepRegistry([
            make_step("a", satisfied=PermissionError("permission denied")),
            make_step("b"),
        ])
        report = Executor(ctx).run(registry)
        assert _statuses(report) == [("a", F), ("b", OK)]
        assert "Precondition check failed for 'a'" in report.results[0].detail
        assert "permission denied" in report.results[0].detail
        assert make_step.calls == ["b"]

    def test_precondition_check_error_passes_through(self, ctx, make_step):
        step = make_step("a", satisfied=PreconditionCheckError("a", "dpkg broke"))
        report = Executor(ctx).run(StepRegistry([step]))
        assert report.results[0].status == F
        assert report.results[0].detail.count("Precondition check failed") == 1

    def test_raising_precondition_on_fatal_step_halts(self, ctx, make_step):
        registry = StepRegistry([
            make_step("a", satisfied=OSError("io"), fatal=True),
            make_step("b"),
        ])
        report = Executor(ctx).run(registry)
        assert _statuses(report) == [("a", F)]
        assert not report.success
        assert report.halted_by == "a"

    def test_non_fatal_failure_continues(self, ctx, make_step):
        registry = StepRegistry([make_step("a", succeeds=False), make_step("b"), make_step("c")])
        report = Executor(ctx).run(registry)
        assert _statuses(report) == [("a", F), ("b", OK), ("c", OK)]
        assert report.success
        assert report.status == "partial"

    def test_fatal_failure_halts(self, ctx, make_step):
        registry = StepRegistry([
            make_step("a"),
            make_step("b", satisfied=True),
            make_step("c", succeeds=False, fatal=True),
            make_step("d"),
            make_step("e"),
        ])
        report = Executor(ctx).run(registry)
        assert report.total == 3
        assert _statuses(report)[-1] == ("c", F)
        assert report.get("d") is None
        assert not report.success
        assert report.status == "failed"
        assert make_step.calls == ["a", "c"]

    def test_scenario_fatal_success_then_skip_then_non_fatal_failure(self, ctx, make_step):
        registry = StepRegistry([
            make_step("A", satisfied=False, succeeds=True, fatal=True),
            make_step("B", satisfied=True),
            make_step("C", satisfied=False, succeeds=False, fatal=False),
        ])
        report = Executor(ctx).run(registry)
        assert _statuses(report) == [("A", OK), ("B", S), ("C", F)]
        assert report.success is True

    def test_scenario_fatal_failure_first(self, ctx, make_step):
        registry = StepRegistry([
            make_step("A", satisfied=False, succeeds=False, fatal=True),
            make_step("B"),
        ])
        report = Executor(ctx).run(registry)
        assert _statuses(report) == [("A", F)]
        assert report.get("B") is None
        assert report.success is False

    def test_failure_detail_carries_command_and_exit_code(self, ctx, make_step):
        report = Executor(ctx).run(StepRegistry([make_step("a", succeeds=False)]))
        detail = report.results[0].detail
        assert "a broke" in detail
        assert "command=install a" in detail
        assert "exit=2" in detail

    def test_unexpected_exception_in_action_is_failed(self, ctx):
        def boom(_ctx):
            raise ValueError("bad value")

        step = Step(name="a", precondition=never_satisfied, action=boom)
        report = Executor(ctx).run(StepRegistry([step]))
        assert report.results[0].status == F
        assert "bad value" in report.results[0].detail

    def test_interrupt_is_failed_and_non_fatal_continues(self, ctx, make_step):
        def interrupted(_ctx):
            raise KeyboardInterrupt

        registry = StepRegistry([
            Step(name="a", precondition=never_satisfied, action=interrupted),
            make_step("b"),
        ])
        report = Executor(ctx).run(registry)
        assert _statuses(report) == [("a", F), ("b", OK)]
        assert report.results[0].detail == INTERRUPTED_DETAIL

    def test_interrupt_on_fatal_step_halts(self, ctx, make_step):
        def interrupted(_ctx):
            raise KeyboardInterrupt

        registry = StepRegistry([
            Step(name="a", precondition=never_satisfied, action=interrupted, fatal=True),
            make_step("b"),
        ])
        report = Executor(ctx).run(registry)
        assert report.total == 1
        assert not report.success

    def test_dry_run_never_invokes_actions(self, ctx, make_step):
        registry = StepRegistry([make_step("a"), make_step("b", satisfied=True)])
        report = Executor(ctx, dry_run=True).run(registry)
        assert _statuses(report) == [("a", S), ("b", S)]
        assert report.results[0].detail == DRY_RUN_DETAIL
        assert report.dry_run
        assert make_step.calls == []

    def test_registry_frozen_after_run(self, ctx, make_step):
        registry = StepRegistry([make_step("a")])
        Executor(ctx).run(registry)
        assert registry.frozen
        with pytest.raises(RegistryLockedError):
            registry.register(make_step("b"))

    def test_step_env_reaches_context(self, ctx):
        seen = {}

        def action(step_ctx):
            seen.update(step_ctx.env)
            seen["step"] = step_ctx.step_name

        step = Step(name="rust", precondition=never_satisfied, action=action, env={"PATH": "/x:$PATH"})
        Executor(ctx).run(StepRegistry([step]))
        assert seen == {"PATH": "/x:$PATH", "step": "rust"}

    def test_listener_receives_progress(self, ctx, make_step):
        events = []

        class Recorder(ProgressListener):
            def run_started(self, total):
                events.append(("start", total))

            def step_started(self, step):
                events.append(("begin", step.name))

            def step_finished(self, step, result):
                events.append(("end", step.name, result.status))

        registry = StepRegistry([make_step("a"), make_step("b", succeeds=False, fatal=True), make_step("c")])
        Executor(ctx, listener=Recorder()).run(registry)
        assert events == [
            ("start", 3),
            ("begin", "a"),
            ("end", "a", OK),
            ("begin", "b"),
            ("end", "b", F),
        ]


class TestIdempotence:
    """A second run on the machine the first run left behind skips everything."""

    @staticmethod
    def _file_step(name: str, path: Path, content: str) -> Step:
        def precondition(ctx):
            return ctx.fs.read_text(path) == content

        def action(ctx):
            ctx.fs.write_text(path, content)

        return Step(name=name, precondition=precondition, action=action)

    def test_second_run_all_skipped(self, ctx, fs: MockFilesystem, tmp_path: Path):
        def build() -> StepRegistry:
            return StepRegistry([
                self._file_step(f"file-{i}", tmp_path / f"f{i}", f"content {i}")
                for i in range(5)
            ])

        first = Executor(ctx).run(build())
        assert all(r.status == OK for r in first.results)

        writes_after_first = len(fs.writes)
        second = Executor(ctx).run(build())
        assert [r.status for r in second.results] == [S] * 5
        assert len(fs.writes) == writes_after_first


# ── Models ──────────────────────────────────────────────────────────


class TestRunReport:
    def test_append_after_finalize_rejected(self, make_step):
        report = RunReport()
        report.finalize()
        with pytest.raises(RuntimeError):
            report.append(StepResult.succeeded(make_step("a")))

    def test_result_is_immutable(self, make_step):
        result = StepResult.failed(make_step("a"), "broke")
        with pytest.raises(Exception):
            result.status = StepStatus.SUCCEEDED  # type: ignore[misc]

    def test_to_dict(self, make_step):
        report = RunReport(operation_id="run-1")
        report.append(StepResult.succeeded(make_step("a")))
        report.append(StepResult.failed(make_step("b", fatal=True), "broke"))
        report.finalize()
        data = report.to_dict()
        assert data["operation_id"] == "run-1"
        assert data["success"] is False
        assert data["halted_by"] == "b"
        assert [r["status"] for r in data["results"]] == ["succeeded", "failed"]

    def test_operation_id_format(self):
        op = generate_operation_id()
        assert op.startswith("run-")
        assert generate_operation_id() != op


# ── Report rendering ────────────────────────────────────────────────


class TestReportWriter:
    def _registry(self, make_step) -> StepRegistry:
        return StepRegistry([
            make_step("apt-update"),
            make_step("docker", satisfied=True),
            make_step("nvm", succeeds=False),
            make_step("rust", succeeds=False, fatal=True),
            make_step("go"),
        ])

    def test_render_lists_steps_in_order(self, ctx, make_step):
        registry = self._registry(make_step)
        report = Executor(ctx).run(registry)
        text = ReportWriter().render(report, registry)
        lines = text.splitlines()
        assert lines[0] == "Provisioning summary"
        order = ["apt-update", "docker", "nvm", "rust", "go"]
        positions = [text.index(f" {n} ") for n in order]
        assert positions == sorted(positions)
        assert "✓ apt-update" in text
        assert "⊘ docker" in text
        assert "✗ nvm" in text
        assert "failed (fatal)" in text
        assert "- go" in text and "not run" in text
        assert lines[-1] == "Overall: FAILED (halted at 'rust')"

    def test_render_is_deterministic(self, ctx, make_step):
        registry = StepRegistry([make_step("a"), make_step("b", satisfied=True)])
        first = ReportWriter().render(Executor(ctx).run(registry))
        registry = StepRegistry([make_step("a"), make_step("b", satisfied=True)])
        second = ReportWriter().render(Executor(ctx).run(registry))
        assert first == second

    def test_overall_line_variants(self, ctx, make_step):
        ok = Executor(ctx).run(StepRegistry([make_step("a")]))
        assert ReportWriter.overall_line(ok) == "Overall: OK"

        partial = Executor(ctx).run(StepRegistry([make_step("a", succeeds=False)]))
        assert ReportWriter.overall_line(partial) == "Overall: OK with 1 non-fatal failure(s)"

    def test_failure_detail_shown(self, ctx, make_step):
        report = Executor(ctx).run(StepRegistry([make_step("nvm", succeeds=False)]))
        assert "      nvm broke" in ReportWriter().render(report)
        assert "nvm broke" not in ReportWriter(show_details=False).render(report)

    def test_blank_failure_detail(self, make_step):
        report = RunReport()
        report.append(StepResult.failed(make_step("nvm"), "  \n \t"))
        report.finalize()
        lines = ReportWriter().render(report).splitlines()
        assert lines[2].strip() == "✗ nvm  failed"
        assert lines[3] == ""

    def test_dry_run_title(self, ctx, make_step):
        report = Executor(ctx, dry_run=True).run(StepRegistry([make_step("a")]))
        assert ReportWriter().render(report).startswith("Provisioning summary (dry-run)\n")

    def test_write(self, ctx, make_step, tmp_path: Path):
        report = Executor(ctx).run(StepRegistry([make_step("a")]))
        path = ReportWriter().write(report, tmp_path / "out" / "summary.txt")
        assert path.read_text(encoding="utf-8").endswith("Overall: OK\n")
