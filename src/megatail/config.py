from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from megatail import paths
from megatail.globs import DEFAULT_GLOBS
from megatail.render import ColorMode

DEFAULT_POLL_INTERVAL = 0.2
DEFAULT_SCAN_INTERVAL = 1.0


class ConfigError(ValueError):
    """Invalid option value, config file or root directory."""


@dataclass(frozen=True)
class TailConfig:
    root: str
    globs: Tuple[str, ...] = DEFAULT_GLOBS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    scan_interval: float = DEFAULT_SCAN_INTERVAL
    initial_lines: int = 0
    color: ColorMode = ColorMode.AUTO


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Read the YAML config. Without an explicit path the default file is
    optional (missing -> {}); an explicit path must exist.
    """
    explicit = path is not None
    cfg_path = path if path is not None else paths.config_file()

    if not cfg_path.exists():
        if explicit:
            raise ConfigError(f"config file not found: {cfg_path}")
        return {}

    try:
        raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config file {cfg_path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {cfg_path} must contain a mapping")
    return raw


def _file_globs(raw: Any) -> Optional[List[str]]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, list) and all(isinstance(g, str) for g in raw):
        if not raw:
            raise ConfigError("config 'globs' must not be an empty list")
        return list(raw)
    raise ConfigError("config 'globs' must be a string or a list of strings")


def _number(raw: Any, name: str, kind: type) -> Any:
    if isinstance(raw, bool):
        raise ConfigError(f"config '{name}' must be a number")
    try:
        value = kind(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"config '{name}' must be a number") from e
    if kind is int and isinstance(raw, float) and raw != value:
        raise ConfigError(f"config '{name}' must be an integer")
    return value


def build_config(
    directory: str,
    file_values: Optional[Dict[str, Any]] = None,
    *,
    globs: Optional[List[str]] = None,
    poll_interval: Optional[float] = None,
    scan_interval: Optional[float] = None,
    initial_lines: Optional[int] = None,
    color: Optional[ColorMode] = None,
) -> TailConfig:
    """CLI values > config file > defaults, then validate()."""
    fv = file_values or {}

    if not globs:
        file_globs = _file_globs(fv.get("globs"))
        globs = list(DEFAULT_GLOBS) if file_globs is None else file_globs
    if poll_interval is None:
        poll_interval = _number(fv.get("poll_interval", DEFAULT_POLL_INTERVAL), "poll_interval", float)
    if scan_interval is None:
        scan_interval = _number(fv.get("scan_interval", DEFAULT_SCAN_INTERVAL), "scan_interval", float)
    if initial_lines is None:
        initial_lines = _number(fv.get("initial_lines", 0), "initial_lines", int)
    if color is None:
        try:
            color = ColorMode(str(fv.get("color", ColorMode.AUTO.value)).lower())
        except ValueError as e:
            raise ConfigError("--color must be one of: auto, always, never") from e

    root = os.path.abspath(os.path.expanduser(directory))

    cfg = TailConfig(
        root=root,
        globs=tuple(globs),
        poll_interval=float(poll_interval),
        scan_interval=float(scan_interval),
        initial_lines=int(initial_lines),
        color=color,
    )
    validate(cfg)
    return cfg


def validate(cfg: TailConfig) -> None:
    if not os.path.isdir(cfg.root):
        raise ConfigError(f"not a directory: {cfg.root}")
    for value in (cfg.poll_interval, cfg.scan_interval):
        if not math.isfinite(value) or value <= 0:
            raise ConfigError("poll and scan intervals must be positive")
    if cfg.initial_lines < 0:
        raise ConfigError("--initial-lines must be >= 0")
    if not isinstance(cfg.color, ColorMode):
        raise ConfigError("--color must be one of: auto, always, never")
    if not cfg.globs:
        raise ConfigError("at least one glob is required")
    if any(not g for g in cfg.globs):
        raise ConfigError("--glob requires a value")
