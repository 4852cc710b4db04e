"""Calculation events and the module-level emit helpers.

Events describe what the engine did that a person reading a log would care
about: a formula that blew up internally, a circular reference, the start
and end of a recalculation, a sheet file being read.  They are written to
an ``EventSink`` once ``set_log_dir`` has pointed the module at a
directory; until then every ``emit`` is a no-op.

Timestamps are UTC ISO-8601 with a ``Z`` suffix.  Nothing in this module
raises into calculation code.
"""

from __future__ import annotations

import re
import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    """Every event the engine can emit."""

    formula_exception = "formula_exception"  # internal failure shown as #ERROR!
    formula_cycle = "formula_cycle"  # circular reference shown as #CIRC!
    recalc_started = "recalc_started"
    recalc_completed = "recalc_completed"
    recalc_capped = "recalc_capped"  # iteration cap hit before values settled
    sheet_loaded = "sheet_loaded"
    sheet_load_failed = "sheet_load_failed"


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------

REDACTED = "[REDACTED]"
TRUNCATED_SUFFIX = "...[truncated]"
MAX_CONTEXT_STRING = 256

_SENSITIVE_KEY_RE = re.compile(
    r"password|passwd|secret|token|api_?key|authorization|cookie|session",
    re.IGNORECASE,
)


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return redact_context(value)
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    if isinstance(value, str) and len(value) > MAX_CONTEXT_STRING:
        return value[:MAX_CONTEXT_STRING] + TRUNCATED_SUFFIX
    return value


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """Copy *context*, masking sensitive keys and truncating long strings.

    Values under keys that look like credentials become ``[REDACTED]``.
    Nested dicts and lists are walked.  The input is not modified.
    """
    return {
        key: REDACTED if _SENSITIVE_KEY_RE.search(str(key)) else _scrub(value)
        for key, value in context.items()
    }


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class CalcEvent(BaseModel):
    """One line of the event log.

    Attributes:
        schema_version: Bumped when fields change meaning.
        ts: UTC timestamp, ``Z`` suffixed.
        level: Severity.
        event_type: What happened.
        context: Free-form details (cycle path, iteration count, ...).
        message: Human-readable summary.
        error_code: The sentinel a formula produced, when there is one.
    """

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


# ---------------------------------------------------------------------------
# Sink configuration
# ---------------------------------------------------------------------------

_sink: Any = None  # EventSink once set_log_dir() has run


def set_log_dir(
    log_dir: str | Path | None,
    *,
    fsync: bool = False,
    tail_bytes: int | None = None,
) -> None:
    """Send events to ``events.ndjson`` under *log_dir*; ``None`` turns logging off."""
    global _sink
    from sheetcalc.logging.sink import EventSink

    _sink = None if log_dir is None else EventSink(Path(log_dir), fsync=fsync, tail_bytes=tail_bytes)


def get_sink() -> Any:
    """The active ``EventSink``, or ``None`` when logging is off."""
    return _sink


# ---------------------------------------------------------------------------
# Emitting
# ---------------------------------------------------------------------------

_WARN_EVERY_SECS = 60.0
_last_warned = float("-inf")


def _report_failure() -> None:
    """Tell stderr that the log could not be written, at most once a minute."""
    global _last_warned
    now = time.monotonic()
    if now - _last_warned < _WARN_EVERY_SECS:
        return
    _last_warned = now
    try:
        sys.stderr.write(f"[sheetcalc] event logging failed: {traceback.format_exc(limit=2)}\n")
    except OSError:
        pass


def emit(event: CalcEvent) -> None:
    """Redact and write *event*.  Never raises."""
    sink = _sink
    if sink is None:
        return
    try:
        sink.write(event.model_copy(update={"context": redact_context(event.context)}))
    except Exception:
        _report_failure()


def _emit_at(
    level: EventLevel,
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None,
    error_code: str | None = None,
) -> None:
    emit(
        CalcEvent(
            level=level,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        )
    )


def emit_info(event_type: EventType, message: str, context: dict[str, Any] | None = None) -> None:
    _emit_at(EventLevel.info, event_type, message, context)


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    _emit_at(EventLevel.warning, event_type, message, context, error_code)


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    _emit_at(EventLevel.error, event_type, message, context, error_code)
