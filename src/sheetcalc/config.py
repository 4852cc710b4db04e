"""Configuration: ``sheetcalc.yaml`` merged over built-in defaults."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "sheetcalc.yaml"

DEFAULT_CONFIG = {
    "max_iterations": 100,
    "log_dir": None,  # None: event logging disabled
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
    "output": "table",
}

_OUTPUT_FORMATS = ("table", "json")


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from ``sheetcalc.yaml``, with defaults.

    Args:
        path: A directory containing ``sheetcalc.yaml``, or the config file
            itself.  ``None`` or a missing file yields the defaults.

    Returns:
        Merged configuration dict.  Unknown keys are kept.

    Raises:
        ValueError: If the file is not a mapping or ``max_iterations`` is
            not a positive integer.
    """
    config = dict(DEFAULT_CONFIG)
    if path is None:
        return config

    config_path = path / CONFIG_FILENAME if path.is_dir() else path
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path}: expected a mapping, got {type(user_config).__name__}")
        config.update(user_config)

    _validate(config)
    return config


def _validate(config: dict[str, Any]) -> None:
    max_iterations = config.get("max_iterations")
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, int) or max_iterations < 1:
        raise ValueError(f"max_iterations must be a positive integer, got {max_iterations!r}")
    if config.get("output") not in _OUTPUT_FORMATS:
        config["output"] = "table"


def configure_logging(config: dict[str, Any], base_dir: Path | None = None) -> None:
    """Point the event sink at ``config['log_dir']`` (relative to *base_dir*).

    Disables the sink when ``log_dir`` is unset.
    """
    from sheetcalc.logging.events import set_log_dir

    log_dir = config.get("log_dir")
    if not log_dir:
        set_log_dir(None)
        return
    log_path = Path(log_dir)
    if base_dir is not None and not log_path.is_absolute():
        log_path = base_dir / log_path
    tail_bytes = config.get("logging_tail_bytes")
    set_log_dir(
        log_path,
        fsync=bool(config.get("logging_fsync", False)),
        tail_bytes=int(tail_bytes) if tail_bytes is not None else None,
    )
