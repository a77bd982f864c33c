from __future__ import annotations

import logging
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from megatail import __version__
from megatail.config import ConfigError, build_config, load_config_file
from megatail.follower import LogFollower
from megatail.globs import GlobSet
from megatail.render import ColorMode, Printer, color_enabled

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mega-tail {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@contextmanager
def _stop_on_signals(stop: threading.Event) -> Iterator[None]:
    """SIGINT/SIGTERM -> stop.set(); previous handlers restored on exit."""
    sigs = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        sigs.append(signal.SIGTERM)

    def _handler(signum, frame) -> None:
        stop.set()

    previous = {}
    try:
        for s in sigs:
            previous[s] = signal.signal(s, _handler)
    except ValueError:
        # not in the main thread: rely on KeyboardInterrupt
        pass
    try:
        yield
    finally:
        for s, h in previous.items():
            signal.signal(s, h)


@app.command()
def main(
    directory: str = typer.Argument(..., help="Root directory to watch (searched recursively)."),
    glob: Optional[List[str]] = typer.Option(
        None, "--glob", help="Add include glob (repeatable). Default: *.log, *.log.*"
    ),
    poll_interval: Optional[float] = typer.Option(
        None, "--poll-interval", help="Read loop interval in seconds (default: 0.2)."
    ),
    scan_interval: Optional[float] = typer.Option(
        None, "--scan-interval", help="New-file scan interval in seconds (default: 1.0)."
    ),
    initial_lines: Optional[int] = typer.Option(
        None, "--initial-lines", "-n", help="Show last N lines of each file on startup (default: 0)."
    ),
    color: Optional[ColorMode] = typer.Option(
        None, "--color", case_sensitive=False, help="Color mode (default: auto)."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="YAML config file (default: ~/.config/megatail/config.yaml if present)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Diagnostic logging on stderr."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
):
    """
    mega-tail - Tail dynamic log files in a directory tree.

    New files matching the globs are picked up while running; rotated or
    truncated files are followed from their new start.
    """
    _setup_logging(verbose)

    try:
        cfg = build_config(
            directory,
            load_config_file(config),
            globs=glob,
            poll_interval=poll_interval,
            scan_interval=scan_interval,
            initial_lines=initial_lines,
            color=color,
        )
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    printer = Printer(cfg.root, color=color_enabled(cfg.color))
    follower = LogFollower(
        cfg.root,
        GlobSet.from_patterns(cfg.globs),
        printer,
        poll_interval=cfg.poll_interval,
        scan_interval=cfg.scan_interval,
        initial_lines=cfg.initial_lines,
    )

    stop = threading.Event()
    with _stop_on_signals(stop):
        try:
            count = follower.start()
            printer.banner(count, cfg.globs, cfg.poll_interval, cfg.scan_interval)
            follower.run(stop)
        except KeyboardInterrupt:
            stop.set()

    printer.stopping()


def run_cli() -> None:
    app()


if __name__ == "__main__":
    run_cli()
