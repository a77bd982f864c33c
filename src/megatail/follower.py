from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from megatail.cursor import TailCursor, tail_lines
from megatail.discovery import discover_files
from megatail.globs import GlobSet
from megatail.render import Printer

logger = logging.getLogger(__name__)


class LogFollower:
    """
    Owns the path -> TailCursor mapping and runs the two cadences:
      - scan: re-discover files, add new ones (from byte 0), drop vanished ones
      - poll: drain every tracked file in path order and print the lines
    Everything runs on the caller's thread; nothing here is thread-safe
    except the stop event handed to run().
    """

    def __init__(
        self,
        root: str,
        globs: GlobSet,
        printer: Printer,
        poll_interval: float = 0.2,
        scan_interval: float = 1.0,
        initial_lines: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.root = root
        self.globs = globs
        self.printer = printer
        self.poll_interval = poll_interval
        self.scan_interval = scan_interval
        self.initial_lines = initial_lines
        self.clock = clock
        self._cursors: Dict[str, TailCursor] = {}
        self._last_scan: Optional[float] = None

    @property
    def tracked(self) -> List[str]:
        return sorted(self._cursors)

    def cursor(self, path: str) -> Optional[TailCursor]:
        return self._cursors.get(path)

    def start(self) -> int:
        """Initial discovery: existing files are followed from their current end."""
        for path in sorted(discover_files(self.root, self.globs)):
            try:
                cur = TailCursor.at_end(path)
            except OSError as e:
                logger.debug(f"Skipping {path} at startup: {e}")
                continue
            self._cursors[path] = cur

            if self.initial_lines > 0:
                for line in tail_lines(path, self.initial_lines, end=cur.offset):
                    self.printer.line(path, line)

        self._last_scan = self.clock()
        return len(self._cursors)

    def scan(self) -> List[str]:
        current = discover_files(self.root, self.globs)

        added = sorted(p for p in current if p not in self._cursors)
        for path in added:
            self._cursors[path] = TailCursor.fresh(path)
            logger.debug(f"Tracking new file {path}")
            self.printer.watch(path)

        for path in [p for p in self._cursors if p not in current]:
            # pending fragment is dropped with the cursor
            del self._cursors[path]
            logger.debug(f"No longer tracking {path}")

        self._last_scan = self.clock()
        return added

    def poll(self) -> int:
        emitted = 0
        for path in sorted(self._cursors):
            for line in self._cursors[path].drain():
                self.printer.line(path, line)
                emitted += 1
        return emitted

    def scan_due(self) -> bool:
        if self._last_scan is None:
            return True
        return self.clock() - self._last_scan >= self.scan_interval

    def run(self, stop: threading.Event) -> None:
        while not stop.is_set():
            if self.scan_due():
                self.scan()
            self.poll()
            if stop.is_set():
                break
            stop.wait(self.poll_interval)
