from __future__ import annotations

import logging
import os
from typing import List, Set

from megatail.globs import GlobSet

logger = logging.getLogger(__name__)


def discover_files(root: str, globs: GlobSet) -> Set[str]:
    """
    Walk `root` and return the absolute paths of regular files whose
    basename matches `globs`.
    - unreadable or vanished directories are skipped
    - symlinks, sockets, devices are ignored (no follow)
    """
    matches: Set[str] = set()
    stack: List[str] = [os.path.abspath(root)]

    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            logger.debug(f"Skipping directory {current}: {e}")
            continue

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    stack.append(entry.path)
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
            except OSError:
                continue

            if globs.matches(entry.name):
                matches.add(entry.path)

    return matches
