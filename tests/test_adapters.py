"""
Tests for adapters — subprocess runner, local filesystem, and mocks.
"""

from pathlib import Path

import pytest

from devbox.adapters.base import CommandResult
from devbox.adapters.mock import MockFilesystem, MockRunner
from devbox.adapters.shell.command import (
    LAUNCH_ERROR_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    SubprocessRunner,
)
from devbox.adapters.shell.filesystem import LocalFilesystem

# ── SubprocessRunner ────────────────────────────────────────────────


class TestSubprocessRunner:
    def test_string_command_runs_in_shell(self):
        result = SubprocessRunner().run("echo hello && echo world")
        assert result.ok
        assert result.stdout == "hello\nworld"

    def test_list_command(self):
        result = SubprocessRunner().run(["echo", "$HOME"])
        assert result.stdout == "$HOME"

    def test_non_zero_exit_is_returned_not_raised(self):
        result = SubprocessRunner().run("echo oops >&2; exit 3")
        assert not result.ok
        assert result.return_code == 3
        assert result.stderr == "oops"

    def test_missing_program(self):
        result = SubprocessRunner().run(["definitely-not-a-real-program-xyz"])
        assert result.return_code == LAUNCH_ERROR_EXIT_CODE
        assert "execution error" in result.stderr

    def test_timeout(self):
        result = SubprocessRunner().run("sleep 5", timeout=1)
        assert result.return_code == TIMEOUT_EXIT_CODE
        assert "timed out" in result.stderr

    def test_env_overrides_are_expanded(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DEVBOX_TEST_BASE", "/opt/base")
        result = SubprocessRunner().run('echo "$TOOL_DIR"', env={"TOOL_DIR": "$DEVBOX_TEST_BASE/bin"})
        assert result.stdout == "/opt/base/bin"

    def test_cwd(self, tmp_path: Path):
        result = SubprocessRunner().run("pwd", cwd=str(tmp_path))
        assert Path(result.stdout).resolve() == tmp_path.resolve()

    def test_which(self, tmp_path: Path):
        runner = SubprocessRunner()
        assert runner.which("sh") is not None
        assert runner.which("sh", path=str(tmp_path)) is None


# ── LocalFilesystem ─────────────────────────────────────────────────


class TestLocalFilesystem:
    def test_missing_paths(self, tmp_path: Path):
        fs = LocalFilesystem()
        missing = tmp_path / "nope"
        assert fs.exists(missing) is False
        assert fs.is_dir(missing) is False
        assert fs.read_text(missing) is None
        assert fs.readlink(missing) is None
        assert fs.mtime(missing) is None

    def test_write_creates_parents_and_sets_mode(self, tmp_path: Path):
        fs = LocalFilesystem()
        target = tmp_path / "scripts" / "run.sh"
        fs.write_text(target, "#!/bin/sh\n", mode=0o755)
        assert fs.read_text(target) == "#!/bin/sh\n"
        assert target.stat().st_mode & 0o777 == 0o755
        assert fs.mtime(target) is not None

    def test_symlink_replaces_existing_link(self, tmp_path: Path):
        fs = LocalFilesystem()
        link = tmp_path / "host"
        fs.symlink(tmp_path / "first", link)
        fs.symlink(tmp_path / "second", link)
        assert fs.readlink(link) == tmp_path / "second"
        assert fs.exists(link)

    def test_mkdir_is_idempotent(self, tmp_path: Path):
        fs = LocalFilesystem()
        target = tmp_path / "a" / "b"
        fs.mkdir(target)
        fs.mkdir(target)
        assert fs.is_dir(target)


# ── Mocks ───────────────────────────────────────────────────────────


class TestMockRunner:
    def test_default_success_and_call_log(self):
        runner = MockRunner()
        result = runner.run(["apt-get", "install", "-y", "zsh"], sudo=True, env={"A": "1"})
        assert result.ok
        assert runner.call_count == 1
        assert runner.commands == ["apt-get install -y zsh"]
        assert runner.calls[0]["sudo"] is True
        assert runner.calls[0]["env"] == {"A": "1"}

    def test_canned_responses_match_by_substring(self):
        runner = MockRunner()
        runner.set_response("lsb_release", stdout="jammy")
        runner.set_failure("apt-get update", stderr="no network", return_code=100)

        assert runner.run(["lsb_release", "-cs"]).stdout == "jammy"
        failed = runner.run("apt-get update")
        assert failed.return_code == 100
        assert failed.stderr == "no network"
        assert failed.command == "apt-get update"

    def test_interrupt(self):
        runner = MockRunner()
        runner.set_interrupt("nvm install")
        with pytest.raises(KeyboardInterrupt):
            runner.run("nvm install 20")

    def test_which_uses_known_programs(self):
        runner = MockRunner(programs={"zsh"})
        assert runner.which("zsh") == "/usr/bin/zsh"
        assert runner.which("docker") is None

    def test_handler_computes_result(self):
        runner = MockRunner()
        seen = []

        def handler(command):
            seen.append(command)
            return CommandResult(command="", return_code=0, stdout="computed")

        runner.set_handler("git config", handler)
        result = runner.run(["git", "config", "--global", "--get", "user.name"])
        assert result.stdout == "computed"
        assert result.command == "git config --global --get user.name"
        assert seen == [["git", "config", "--global", "--get", "user.name"]]

    def test_canned_response_wins_over_handler(self):
        runner = MockRunner()
        runner.set_handler("apt-get", lambda command: CommandResult(command="", return_code=0))
        runner.set_failure("apt-get update", return_code=100)
        assert runner.run("apt-get update").return_code == 100
        assert runner.run("apt-get upgrade -y").ok

    def test_handler_may_pass(self):
        runner = MockRunner()
        runner.set_handler("curl", lambda command: None)
        assert runner.run("curl -fsSL https://example.invalid").ok


class TestMockFilesystem:
    def test_write_and_read(self):
        fs = MockFilesystem()
        fs.write_text(Path("/home/u/.zshrc"), "export A=1\n", mode=0o644)
        assert fs.read_text(Path("/home/u/.zshrc")) == "export A=1\n"
        assert fs.is_dir(Path("/home/u"))
        assert fs.modes[Path("/home/u/.zshrc")] == 0o644

    def test_denied_path_raises(self):
        fs = MockFilesystem()
        fs.denied.add(Path("/root/.nvm"))
        with pytest.raises(PermissionError):
            fs.is_dir(Path("/root/.nvm"))

    def test_mtime(self):
        fs = MockFilesystem()
        assert fs.mtime(Path("/x")) is None
        fs.mkdir(Path("/x"))
        assert fs.mtime(Path("/x")) == 0.0
        fs.mtimes[Path("/x")] = 42.0
        assert fs.mtime(Path("/x")) == 42.0


class TestCommandResult:
    def test_ok(self):
        assert CommandResult(command="true", return_code=0).ok
        assert not CommandResult(command="false", return_code=1).ok
