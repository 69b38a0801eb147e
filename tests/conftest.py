"""
Shared pytest fixtures:
- Deterministic principal identifiers (sha3-derived, 20 bytes)
- A bootstrapped registry where ``accounts["a0"]`` holds ROOT
- Clean config cache / environment per test
"""
from __future__ import annotations

import hashlib
import os
from typing import Dict

import pytest

from access_control.bootstrap import RegistryBootstrap
from access_control.config import load_config
from access_control.events import EventLog
from access_control.ids import ROOT
from access_control.registry import RoleRegistry
from access_control.storage import MemoryBackend

os.environ.setdefault("PYTHONHASHSEED", "0")
os.environ.setdefault("TZ", "UTC")


def det_address(tag: str) -> bytes:
    """Stable 20-byte account id from a tag."""
    return hashlib.sha3_256(tag.encode("utf-8")).digest()[:20]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for key in list(os.environ):
        if key.startswith("ACCESS_CONTROL_"):
            monkeypatch.delenv(key, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def accounts() -> Dict[str, bytes]:
    return {tag: det_address(tag) for tag in ("deployer", "a0", "a1", "a2", "a3", "outsider")}


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def registry(backend: MemoryBackend, accounts: Dict[str, bytes], event_log: EventLog) -> RoleRegistry:
    """ROOT held by a0; the bootstrap event is cleared from the log."""
    boot = RegistryBootstrap(backend, deployer=accounts["deployer"], event_log=event_log)
    boot.setup_role(ROOT, accounts["a0"])
    reg = boot.finish()
    event_log.clear()
    return reg
