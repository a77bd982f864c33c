from __future__ import annotations

import os
import sys
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional, TextIO

import typer
from rich.color import ColorSystem
from rich.style import Style


class ColorMode(str, Enum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


STYLE_TIMESTAMP = Style.parse("color(81)")
STYLE_FILE = Style.parse("color(245)")
STYLE_CONTENT = Style.parse("color(252)")
STYLE_INFO = Style.parse("color(244)")


def color_enabled(mode: ColorMode, stream: Optional[TextIO] = None) -> bool:
    if mode == ColorMode.ALWAYS:
        return True
    if mode == ColorMode.NEVER:
        return False
    if stream is None:
        stream = sys.stdout
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty()) and os.environ.get("TERM") != "dumb"


def detection_timestamp(now: datetime) -> str:
    """YYYY-MM-DD HH:MM:SS.mmm (local time)."""
    return now.strftime("%Y-%m-%d %H:%M:%S") + f".{now.microsecond // 1000:03d}"


def relative_display(root: str, path: str) -> str:
    """Path relative to root with '/' separators; absolute path if outside root."""
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        # Windows: different drive
        return path
    if not rel or rel == "." or rel == os.pardir or rel.startswith(os.pardir + os.sep) or os.path.isabs(rel):
        return path
    return rel.replace(os.sep, "/")


class Printer:
    """
    Output side of the follower: one formatted line per log line plus the
    banner / [watch] / stop info lines. Color is decided once and passed in.
    """

    def __init__(
        self,
        root: str,
        color: bool = False,
        out: Optional[TextIO] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.root = root
        self.color = color
        self.out = out
        self.clock = clock

    def paint(self, text: str, style: Style) -> str:
        if not self.color:
            return text
        return style.render(text, color_system=ColorSystem.EIGHT_BIT)

    def _echo(self, text: str) -> None:
        typer.echo(text, file=self.out, color=self.color)

    def format_line(self, path: str, line: str) -> str:
        rel = relative_display(self.root, path)
        file_block = self.paint(f"[{rel}]", STYLE_FILE)
        ts_block = self.paint(f"[{detection_timestamp(self.clock())}]", STYLE_TIMESTAMP)
        content = self.paint(line, STYLE_CONTENT)
        return f"{file_block} {ts_block} {content}"

    def line(self, path: str, line: str) -> None:
        self._echo(self.format_line(path, line))

    def info(self, message: str) -> None:
        self._echo(self.paint(message, STYLE_INFO))

    def watch(self, path: str) -> None:
        self.info(f"[watch] {relative_display(self.root, path)}")

    def banner(self, count: int, globs: Iterable[str], poll_interval: float, scan_interval: float) -> None:
        self.info(
            f"Monitoring {count} files under {self.root} "
            f"(globs: {', '.join(globs)} | poll={poll_interval:g}s | scan={scan_interval:g}s). "
            "Press Ctrl+C to stop."
        )

    def stopping(self) -> None:
        self.info("Stopping mega-tail.")
