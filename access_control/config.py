"""
access_control.config: storage backend selection, identifier caps and logging.

This module has NO third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (ACCESS_CONTROL_*)
  2) Hardcoded safe defaults below

Key env vars:
  - ACCESS_CONTROL_BACKEND            (str)    default: memory   (memory | sqlite)
  - ACCESS_CONTROL_DB                 (path)   default: access_control.db
  - ACCESS_CONTROL_MAX_ACCOUNT_BYTES  (int)    default: 64       (clamped to 1..256)
  - ACCESS_CONTROL_LOG_LEVEL          (str)    default: INFO
  - ACCESS_CONTROL_LOG_FORMAT         (str)    default: auto     (json | text | auto)

Usage:
    from access_control.config import load_config
    CFG = load_config()
    if CFG.backend == "sqlite": ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

BACKENDS = ("memory", "sqlite")
LOG_FORMATS = ("json", "text", "auto")

DEFAULT_DB_PATH = "access_control.db"
DEFAULT_MAX_ACCOUNT_BYTES = 64


# ----------------------------- helpers ---------------------------------------


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_choice(name: str, default: str, choices: tuple) -> str:
    val = _env_str(name, default).lower()
    return val if val in choices else default


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class AccessConfig:
    backend: str = "memory"
    db_path: Path = Path(DEFAULT_DB_PATH)

    # Upper bound for principal identifiers (bytes).
    max_account_bytes: int = DEFAULT_MAX_ACCOUNT_BYTES

    log_level: str = "INFO"
    log_format: str = "auto"

    @property
    def log_json(self) -> Optional[bool]:
        """True/False when the format is pinned, None for auto-detection."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "db_path": str(self.db_path),
            "max_account_bytes": self.max_account_bytes,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


@lru_cache(maxsize=1)
def load_config() -> AccessConfig:
    """
    Build and cache an AccessConfig from environment + safe defaults.
    Call ``load_config.cache_clear()`` after changing the environment.
    """
    return AccessConfig(
        backend=_env_choice("ACCESS_CONTROL_BACKEND", "memory", BACKENDS),
        db_path=Path(_env_str("ACCESS_CONTROL_DB", DEFAULT_DB_PATH)).expanduser(),
        max_account_bytes=_env_int(
            "ACCESS_CONTROL_MAX_ACCOUNT_BYTES", DEFAULT_MAX_ACCOUNT_BYTES, min_v=1, max_v=256
        ),
        log_level=_env_str("ACCESS_CONTROL_LOG_LEVEL", "INFO").upper(),
        log_format=_env_choice("ACCESS_CONTROL_LOG_FORMAT", "auto", LOG_FORMATS),
    )


__all__ = ["AccessConfig", "load_config", "BACKENDS", "LOG_FORMATS", "DEFAULT_DB_PATH"]
