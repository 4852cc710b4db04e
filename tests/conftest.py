"""Shared fixtures."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _reset_event_sink():
    """Keep the module-level event sink from leaking between tests."""
    import sheetcalc.logging.events as mod

    old_sink = mod._sink
    mod._sink = None
    try:
        yield
    finally:
        mod._sink = old_sink
