# -*- coding: utf-8 -*-
"""
tests.property package bootstrap.

Registers Hypothesis profiles for the registry property tests and selects one:
HYPOTHESIS_PROFILE if set, otherwise "ci" when CI is truthy and "dev" locally.

Environment knobs:
- HYPOTHESIS_PROFILE=dev|ci|stress
- CI=true

Per-test overrides still go through @settings(...).
"""
from __future__ import annotations

import os
from typing import Final

from hypothesis import HealthCheck, settings

_SUPPRESSED = (HealthCheck.too_slow,)

settings.register_profile(
    "dev",
    settings(deadline=None, suppress_health_check=_SUPPRESSED, derandomize=False),
)
settings.register_profile(
    "ci",
    settings(deadline=None, suppress_health_check=_SUPPRESSED, derandomize=True),
)
settings.register_profile(
    "stress",
    settings(
        max_examples=1000,
        deadline=None,
        suppress_health_check=_SUPPRESSED + (HealthCheck.data_too_large,),
        derandomize=True,
    ),
)


def _env_truthy(name: str) -> bool:
    return (os.getenv(name) or "").lower() not in ("", "0", "false", "no", "off")


_active: Final[str] = os.getenv("HYPOTHESIS_PROFILE") or ("ci" if _env_truthy("CI") else "dev")
settings.load_profile(_active)


def active_profile() -> str:
    """Name of the loaded Hypothesis profile."""
    return _active
