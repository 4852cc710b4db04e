"""Load a Cell Store from a sheet file.

Supported formats:

- ``.yaml`` / ``.yml`` / ``.json`` -- a mapping of cell key to content,
  optionally nested under a top-level ``cells:`` key.
- ``.csv`` -- a grid without a header row; row 1 column 1 is ``A1``.
  Empty cells are omitted.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import polars as pl
import yaml

from sheetcalc.logging.events import EventType, emit_error, emit_info
from sheetcalc.refs import make_key, parse_cell_ref, to_cell_key


def load_sheet(path: Path) -> dict[str, Any]:
    """Read *path* into a Cell Store.

    Raises:
        ValueError: On an unsupported extension, unparseable content, a
            non-mapping document, or a key that is not a cell reference.
    """
    try:
        store = _read_store(path)
    except ValueError as exc:
        emit_error(
            EventType.sheet_load_failed,
            str(exc),
            {"path": str(path)},
        )
        raise

    emit_info(
        EventType.sheet_loaded,
        f"Loaded sheet {path.name}",
        {"path": str(path), "cells": len(store)},
    )
    return store


def _read_store(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as exc:
            raise ValueError(f"{path}: invalid YAML: {exc}") from exc
        return _from_mapping(data or {}, path)
    if suffix == ".json":
        return _from_mapping(json.loads(path.read_text()), path)
    if suffix == ".csv":
        return _from_csv(path)
    raise ValueError(f"Unsupported sheet file type: {path.suffix!r}")


def _from_mapping(data: Any, path: Path) -> dict[str, Any]:
    if isinstance(data, dict) and isinstance(data.get("cells"), dict):
        data = data["cells"]
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of cell keys to content")
    store: dict[str, Any] = {}
    for key, content in data.items():
        if parse_cell_ref(str(key)) is None:
            raise ValueError(f"{path}: {key!r} is not a cell reference")
        store[to_cell_key(str(key))] = content
    return store


def _from_csv(path: Path) -> dict[str, Any]:
    # Every column as text: content is raw, typing happens at evaluation.
    df = pl.read_csv(path, has_header=False, infer_schema_length=0)
    store: dict[str, Any] = {}
    for r, row in enumerate(df.iter_rows()):
        for c, content in enumerate(row):
            if content is None or content == "":
                continue
            store[make_key(r, c)] = content
    return store
