from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


DEFAULT_GLOBS: Tuple[str, ...] = ("*.log", "*.log.*")


def _bracket(pattern: str, start: int) -> Optional[Tuple[str, int]]:
    """
    Translate the bracket expression opening just before `start`.
    Returns (regex, index after the closing bracket), or None when the
    expression is unterminated or holds a reversed range.
    """
    n = len(pattern)
    j = start
    negate = False
    if j < n and pattern[j] == "!":
        negate = True
        j += 1
    first = j
    # ']' subito dopo '[' o '[!' e' un membro letterale
    if j < n and pattern[j] == "]":
        j += 1
    while j < n and pattern[j] != "]":
        j += 1
    if j >= n:
        return None

    members = pattern[first:j]
    parts: List[str] = []
    k = 0
    while k < len(members):
        ch = members[k]
        if k + 2 < len(members) and members[k + 1] == "-":
            hi = members[k + 2]
            if ch > hi:
                return None
            parts.append(f"{re.escape(ch)}-{re.escape(hi)}")
            k += 3
            continue
        parts.append(re.escape(ch))
        k += 1

    return "[" + ("^" if negate else "") + "".join(parts) + "]", j + 1


def translate(pattern: str) -> str:
    """Glob -> anchored regex source (no separator semantics)."""
    out: List[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        i += 1
        if ch == "*":
            if not out or out[-1] != ".*":
                out.append(".*")
        elif ch == "?":
            out.append(".")
        elif ch == "[":
            res = _bracket(pattern, i)
            if res is None:
                logger.debug(f"Bracket expression at {i - 1} in {pattern!r} matched literally")
                out.append(re.escape("["))
            else:
                body, i = res
                out.append(body)
        else:
            out.append(re.escape(ch))
    return "(?s:" + "".join(out) + r")\Z"


@dataclass(frozen=True)
class GlobPattern:
    glob: str
    regex: re.Pattern

    def matches(self, name: str) -> bool:
        return self.regex.match(name.lower()) is not None


def compile_glob(glob: str) -> GlobPattern:
    return GlobPattern(glob=glob, regex=re.compile(translate(glob.lower())))


@dataclass(frozen=True)
class GlobSet:
    """OR of several patterns. Empty set matches nothing."""

    patterns: Tuple[GlobPattern, ...] = ()

    @classmethod
    def from_patterns(cls, globs: Iterable[str]) -> "GlobSet":
        return cls(tuple(compile_glob(g) for g in globs))

    @property
    def globs(self) -> List[str]:
        return [p.glob for p in self.patterns]

    def matches(self, name: str) -> bool:
        lower = name.lower()
        return any(p.regex.match(lower) is not None for p in self.patterns)
