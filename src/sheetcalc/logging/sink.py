"""Append-only NDJSON file holding calculation events.

One event per line in ``<log_dir>/events.ndjson``, keys sorted.  Appends
hold an exclusive ``flock`` and reads a shared one, so concurrent CLI runs
sharing a log directory never interleave partial lines.  Where ``fcntl``
is unavailable the locks are skipped.

Reads only look at the last ``tail_bytes`` of the file.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sheetcalc.logging.events import CalcEvent

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None

EVENTS_FILENAME = "events.ndjson"
DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
MAX_READ_LIMIT = 2000


@contextmanager
def _open_locked(path: Path, flags: int, exclusive: bool) -> Iterator[int]:
    fd = os.open(str(path), flags, 0o644)
    try:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        yield fd
    finally:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)


class EventSink:
    """Writer and reader for one log directory.

    Args:
        log_dir: Directory for ``events.ndjson``; created if missing.
        fsync: Flush each append to disk before returning.
        tail_bytes: How much of the end of the file ``read`` looks at.
    """

    def __init__(self, log_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.log_dir = log_dir
        self.fsync = fsync
        self.tail_bytes = DEFAULT_TAIL_BYTES if tail_bytes is None else tail_bytes
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.log_dir / EVENTS_FILENAME

    def write(self, event: CalcEvent) -> None:
        payload = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str)
        with _open_locked(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, exclusive=True) as fd:
            os.write(fd, (payload + "\n").encode("utf-8"))
            if self.fsync:
                os.fsync(fd)

    def read(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Newest-first events, optionally filtered by level and type.

        *limit* is capped at 2000.
        """
        matches = [
            evt
            for evt in self._iter_events()
            if (level is None or evt.get("level") == level)
            and (event_type is None or evt.get("event_type") == event_type)
        ]
        matches.reverse()
        return matches[: min(limit, MAX_READ_LIMIT)]

    def _iter_events(self) -> Iterator[dict[str, Any]]:
        """Parsed events in file order; blank and corrupt lines are skipped."""
        if not self.path.exists():
            return
        for line in self._tail().splitlines():
            if not line.strip():
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue

    def _tail(self) -> str:
        with _open_locked(self.path, os.O_RDONLY, exclusive=False) as fd:
            size = os.fstat(fd).st_size
            offset = max(0, size - self.tail_bytes)
            os.lseek(fd, offset, os.SEEK_SET)
            data = os.read(fd, size - offset)
        if offset:
            # The first line was cut by the seek.
            data = data.partition(b"\n")[2]
        return data.decode("utf-8", errors="replace")
