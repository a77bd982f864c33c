"""Shared fixtures for mega-tail tests."""

import io
from datetime import datetime
from pathlib import Path
from typing import List

import pytest

from megatail.render import Printer

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, 678000)


class FakeClock:
    """Monotonic clock driven by the test."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def log_root(tmp_path: Path) -> Path:
    """Create an empty root directory to watch."""
    root = tmp_path / "logs"
    root.mkdir()
    return root


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def printer(log_root: Path, out: io.StringIO) -> Printer:
    """Plain (no color) printer with a frozen wall clock."""
    return Printer(str(log_root), color=False, out=out, clock=lambda: FIXED_NOW)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def output_lines(out: io.StringIO) -> List[str]:
    return out.getvalue().splitlines()
