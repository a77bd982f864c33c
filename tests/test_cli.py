"""Tests for the mega-tail command line."""

import signal
import threading
from pathlib import Path
from typing import List

import pytest
from typer.testing import CliRunner

from megatail import __version__, paths
from megatail.cli import _stop_on_signals, app
from megatail.follower import LogFollower

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_default_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(paths, "config_file", lambda: tmp_path / "absent" / "config.yaml")


@pytest.fixture
def one_poll(monkeypatch: pytest.MonkeyPatch) -> List[LogFollower]:
    """Replace the blocking loop with a single scan + poll."""
    seen: List[LogFollower] = []

    def fake_run(self: LogFollower, stop) -> None:
        seen.append(self)
        self.scan()
        self.poll()

    monkeypatch.setattr(LogFollower, "run", fake_run)
    return seen


class TestUsage:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for opt in ("--glob", "--poll-interval", "--scan-interval", "--initial-lines", "--color"):
            assert opt in result.output

    def test_short_help(self) -> None:
        assert runner.invoke(app, ["-h"]).exit_code == 0

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_directory_is_required(self) -> None:
        result = runner.invoke(app, [])
        assert result.exit_code != 0

    def test_unknown_option(self, log_root: Path) -> None:
        result = runner.invoke(app, [str(log_root), "--frobnicate"])
        assert result.exit_code != 0

    def test_non_numeric_interval(self, log_root: Path) -> None:
        result = runner.invoke(app, [str(log_root), "--poll-interval", "soon"])
        assert result.exit_code != 0

    def test_invalid_color(self, log_root: Path) -> None:
        result = runner.invoke(app, [str(log_root), "--color", "rainbow"])
        assert result.exit_code != 0


class TestConfigErrors:
    def test_missing_directory(self, tmp_path: Path) -> None:
        result = runner.invoke(app, [str(tmp_path / "nowhere")])
        assert result.exit_code == 1
        assert "Error: not a directory" in result.output

    def test_zero_interval(self, log_root: Path) -> None:
        result = runner.invoke(app, [str(log_root), "--scan-interval", "0"])
        assert result.exit_code == 1
        assert "must be positive" in result.output

    def test_negative_initial_lines(self, log_root: Path) -> None:
        result = runner.invoke(app, [str(log_root), "-n", "-3"])
        assert result.exit_code == 1
        assert "initial-lines" in result.output

    def test_broken_config_file(self, log_root: Path, tmp_path: Path) -> None:
        cfg = tmp_path / "bad.yaml"
        cfg.write_text("just a string\n")
        result = runner.invoke(app, [str(log_root), "--config", str(cfg)])
        assert result.exit_code == 1
        assert "mapping" in result.output

    def test_empty_glob_value(self, log_root: Path) -> None:
        result = runner.invoke(app, [str(log_root), "--glob", "", "--color", "never"])
        assert result.exit_code == 1
        assert "Error: --glob requires a value" in result.output

    def test_empty_glob_list_in_config(self, log_root: Path, tmp_path: Path) -> None:
        cfg = tmp_path / "empty.yaml"
        cfg.write_text("globs: []\n")
        result = runner.invoke(app, [str(log_root), "--config", str(cfg)])
        assert result.exit_code == 1
        assert "globs" in result.output


class TestRun:
    def test_banner_initial_lines_and_stop(self, log_root: Path, one_poll: List[LogFollower]) -> None:
        (log_root / "a.log").write_text("one\ntwo\nthree\n")

        result = runner.invoke(app, [str(log_root), "-n", "2", "--color", "never"])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].startswith("[a.log] [") and lines[0].endswith("] two")
        assert lines[1].endswith("] three")
        assert lines[2] == (
            f"Monitoring 1 files under {log_root} (globs: *.log, *.log.* | poll=0.2s | scan=1s). "
            "Press Ctrl+C to stop."
        )
        assert lines[-1] == "Stopping mega-tail."
        assert "\x1b[" not in result.output

    def test_globs_are_cumulative(self, log_root: Path, one_poll: List[LogFollower]) -> None:
        (log_root / "notes.txt").write_text("n\n")
        (log_root / "job.out").write_text("o\n")
        (log_root / "a.log").write_text("l\n")

        result = runner.invoke(
            app, [str(log_root), "--glob", "*.txt", "--glob", "*.OUT", "-n", "1", "--color", "never"]
        )

        assert result.exit_code == 0, result.output
        assert "[job.out]" in result.output
        assert "[notes.txt]" in result.output
        assert "[a.log]" not in result.output
        assert "globs: *.txt, *.OUT" in result.output

    def test_options_reach_the_follower(self, log_root: Path, one_poll: List[LogFollower]) -> None:
        result = runner.invoke(
            app, [str(log_root), "--poll-interval", "0.5", "--scan-interval", "3", "--color", "never"]
        )

        assert result.exit_code == 0, result.output
        follower = one_poll[0]
        assert follower.poll_interval == 0.5
        assert follower.scan_interval == 3.0
        assert follower.root == str(log_root)

    def test_config_file_values(self, log_root: Path, tmp_path: Path, one_poll: List[LogFollower]) -> None:
        cfg = tmp_path / "megatail.yaml"
        cfg.write_text("globs: ['*.txt']\nscan_interval: 2\ncolor: never\n")
        (log_root / "notes.txt").write_text("")

        result = runner.invoke(app, [str(log_root), "--config", str(cfg)])

        assert result.exit_code == 0, result.output
        assert "Monitoring 1 files" in result.output
        assert one_poll[0].scan_interval == 2.0

    def test_always_color(self, log_root: Path, one_poll: List[LogFollower]) -> None:
        result = runner.invoke(app, [str(log_root), "--color", "always"])
        assert result.exit_code == 0, result.output
        assert "\x1b[38;5;244m" in result.output


class TestSignals:
    def test_sigint_sets_stop_and_restores_handler(self) -> None:
        previous = signal.getsignal(signal.SIGINT)
        stop = threading.Event()

        with _stop_on_signals(stop):
            assert signal.getsignal(signal.SIGINT) is not previous
            signal.raise_signal(signal.SIGINT)
            assert stop.is_set()

        assert signal.getsignal(signal.SIGINT) is previous

    @pytest.mark.skipif(not hasattr(signal, "SIGTERM"), reason="no SIGTERM on this platform")
    def test_sigterm_sets_stop_and_restores_handler(self) -> None:
        previous = signal.getsignal(signal.SIGTERM)
        stop = threading.Event()

        with _stop_on_signals(stop):
            signal.raise_signal(signal.SIGTERM)
            assert stop.is_set()

        assert signal.getsignal(signal.SIGTERM) is previous

    def test_signal_during_startup_stops_cleanly(
        self, log_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        seen = []

        def interrupted_start(self: LogFollower) -> int:
            signal.raise_signal(signal.SIGINT)
            return 0

        def record_run(self: LogFollower, stop: threading.Event) -> None:
            seen.append(stop.is_set())

        monkeypatch.setattr(LogFollower, "start", interrupted_start)
        monkeypatch.setattr(LogFollower, "run", record_run)

        result = runner.invoke(app, [str(log_root), "--color", "never"])

        assert result.exit_code == 0, result.output
        assert seen == [True]
        assert result.output.splitlines()[-1] == "Stopping mega-tail."

    def test_keyboard_interrupt_during_startup(
        self, log_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def interrupted_start(self: LogFollower) -> int:
            raise KeyboardInterrupt

        monkeypatch.setattr(LogFollower, "start", interrupted_start)

        result = runner.invoke(app, [str(log_root), "--color", "never"])

        assert result.exit_code == 0, result.output
        assert "Monitoring" not in result.output
        assert result.output.splitlines() == ["Stopping mega-tail."]
