"""Per-file incremental reading with rotation and truncation detection.

A TailCursor remembers a byte offset, an identity token (device + inode)
and the unterminated tail of the last read. Each drain() reads whatever was
appended since the previous call and returns the complete lines, resetting
to the start of the file when it was replaced or truncated.
"""

from __future__ import annotations

import codecs
import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

_TERMINATOR = re.compile(r"\r\n|\n|\r")
_TERMINATOR_BYTES = re.compile(rb"\r\n|\n|\r")

Identity = Tuple[int, int]


def file_identity(st: os.stat_result) -> Optional[Identity]:
    """(st_dev, st_ino), or None where the platform reports no inode."""
    if not st.st_ino:
        return None
    return (st.st_dev, st.st_ino)


class LineSplitter:
    """
    Bytes in, complete lines out.
    Keeps the unterminated remainder between feeds, completes multi-byte
    sequences split across reads, and treats a '\\r' at the end of one feed
    followed by '\\n' at the start of the next as a single terminator.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self.fragment = ""
        self._after_cr = False
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")

    def reset(self) -> None:
        self.fragment = ""
        self._after_cr = False
        self._decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")

    def feed(self, data: bytes) -> List[str]:
        text = self._decoder.decode(data)
        if not text:
            return []

        if self._after_cr:
            self._after_cr = False
            if text.startswith("\n"):
                text = text[1:]
                if not text:
                    return []

        parts = _TERMINATOR.split(self.fragment + text)
        self.fragment = parts.pop()
        self._after_cr = text.endswith("\r")
        return parts


@dataclass
class TailCursor:
    path: str
    offset: int = 0
    identity: Optional[Identity] = None
    observed: bool = False
    splitter: LineSplitter = field(default_factory=LineSplitter, repr=False)

    @classmethod
    def at_end(cls, path: str) -> "TailCursor":
        """Cursor for a file present at startup: existing content is not replayed."""
        st = os.stat(path)
        return cls(path=path, offset=st.st_size, identity=file_identity(st), observed=True)

    @classmethod
    def fresh(cls, path: str) -> "TailCursor":
        """Cursor for a file that appeared while running: read from byte 0."""
        return cls(path=path)

    @property
    def fragment(self) -> str:
        return self.splitter.fragment

    def drain(self) -> List[str]:
        """
        Read the bytes appended since the last call and return the complete
        lines they finish. Open or read failures return [] and leave the
        cursor untouched.

        Size and identity come from the open handle: a file replaced just
        before the open is read from byte 0 of the new file, never from the
        old offset.
        """
        try:
            with open(self.path, "rb") as f:
                st = os.fstat(f.fileno())
                identity = file_identity(st)
                size = st.st_size
                baseline = self.identity if self.observed else identity

                rotated = identity is not None and baseline is not None and identity != baseline
                truncated = size < self.offset
                reset = rotated or truncated
                start = 0 if reset else self.offset

                data = b""
                if size > start:
                    f.seek(start)
                    data = f.read(size - start)
        except OSError as e:
            logger.debug(f"read failed for {self.path}: {e}")
            return []

        if reset:
            self._reset(identity, rotated)
        self.identity = identity
        self.observed = True
        # short read: advance only by what we actually got
        self.offset = start + len(data)

        if not data:
            return []
        return self.splitter.feed(data)

    def _reset(self, identity: Optional[Identity], rotated: bool) -> None:
        if rotated:
            logger.info(f"Rotation detected for {self.path} (identity {self.identity} -> {identity})")
        else:
            logger.info(f"Truncation detected for {self.path} (offset {self.offset})")
        self.offset = 0
        self.splitter.reset()


def _split_tail(buf: bytes, at_start: bool) -> List[bytes]:
    parts = _TERMINATOR_BYTES.split(buf)
    if not at_start:
        # first piece belongs to a line that starts before the buffer
        parts.pop(0)
    if parts and not parts[-1]:
        parts.pop()
    return parts


def tail_lines(path: str, count: int, end: Optional[int] = None, chunk_size: int = 64 * 1024) -> List[str]:
    """
    Last `count` lines of the first `end` bytes of `path` (whole file when
    `end` is None). Reads backwards in chunks until enough lines are seen.
    A final line without terminator is included. Unreadable file -> [].
    """
    if count <= 0:
        return []

    try:
        with open(path, "rb") as f:
            size = f.seek(0, os.SEEK_END)
            pos = size if end is None else min(end, size)
            limit = pos
            buf = b""
            while pos > 0:
                step = min(chunk_size, pos)
                pos -= step
                f.seek(pos)
                buf = f.read(step) + buf
                if len(_split_tail(buf, pos == 0)) >= count:
                    break
    except OSError as e:
        logger.debug(f"Cannot read initial lines from {path}: {e}")
        return []

    logger.debug(f"Read {len(buf)} of {limit} bytes for initial lines of {path}")
    parts = _split_tail(buf, pos == 0)[-count:]
    return [p.decode("utf-8", errors="replace") for p in parts]
