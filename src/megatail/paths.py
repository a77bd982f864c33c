from __future__ import annotations
from pathlib import Path


def config_dir() -> Path:
    """Cartella config utente (Linux standard)."""
    return Path.home() / ".config" / "megatail"


def config_file() -> Path:
    return config_dir() / "config.yaml"
