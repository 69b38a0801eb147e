"""
Privileged initialization: unchecked setup grants, sealing, single use.
"""
from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Dict

import pytest

from access_control.bootstrap import RegistryBootstrap, is_sealed
from access_control.errors import BootstrapClosed, InvalidIdentifier, UnauthorizedRole
from access_control.events import EventLog, RoleAdminChanged, RoleGranted
from access_control.ids import ROOT, derive_role_id
from access_control.registry import RoleRegistry
from access_control.storage import MemoryBackend, SqliteBackend

EDITOR = derive_role_id("EDITOR")
MODERATOR = derive_role_id("MODERATOR")


def test_setup_role_needs_no_admin(backend: MemoryBackend, accounts: Dict[str, bytes]):
    boot = RegistryBootstrap(backend, deployer=accounts["deployer"])

    # Nobody holds ROOT yet; a gated grant would fail here.
    events = boot.setup_role(ROOT, accounts["a0"])

    assert events == [RoleGranted(ROOT, accounts["a0"], accounts["deployer"])]
    reg = boot.finish()
    assert reg.has_role(ROOT, accounts["a0"])
    assert reg.has_role(ROOT, accounts["deployer"]) is False


def test_setup_role_is_idempotent(backend: MemoryBackend, accounts: Dict[str, bytes]):
    boot = RegistryBootstrap(backend, deployer=accounts["deployer"])
    boot.setup_role(EDITOR, accounts["a1"])
    assert boot.setup_role(EDITOR, accounts["a1"]) == []
    assert len(boot.events) == 1


def test_bootstrap_events_reach_the_log(backend: MemoryBackend, accounts: Dict[str, bytes]):
    log = EventLog()
    boot = RegistryBootstrap(backend, deployer=accounts["deployer"], event_log=log)
    boot.setup_role(ROOT, accounts["a0"])
    boot.set_role_admin(EDITOR, MODERATOR)
    boot.finish()

    assert list(log) == [
        RoleGranted(ROOT, accounts["a0"], accounts["deployer"]),
        RoleAdminChanged(EDITOR, ROOT, MODERATOR),
    ]
    assert tuple(boot.events) == log.snapshot()


def test_finish_consumes_the_bootstrap(backend: MemoryBackend, accounts: Dict[str, bytes]):
    boot = RegistryBootstrap(backend, deployer=accounts["deployer"])
    boot.setup_role(ROOT, accounts["a0"])
    reg = boot.finish()
    assert boot.registry is reg

    with pytest.raises(BootstrapClosed):
        boot.setup_role(EDITOR, accounts["outsider"])
    with pytest.raises(BootstrapClosed):
        boot.set_role_admin(EDITOR, EDITOR)
    with pytest.raises(BootstrapClosed):
        boot.finish()
    assert reg.has_role(EDITOR, accounts["outsider"]) is False


def test_sealed_store_rejects_a_second_bootstrap(backend: MemoryBackend, accounts: Dict[str, bytes]):
    assert is_sealed(backend) is False
    RegistryBootstrap(backend, deployer=accounts["deployer"]).finish()
    assert is_sealed(backend)

    with pytest.raises(BootstrapClosed) as ei:
        RegistryBootstrap(backend, deployer=accounts["outsider"])
    assert ei.value.code == "bootstrap_closed"


def test_after_bootstrap_only_gated_grants(registry: RoleRegistry, accounts: Dict[str, bytes]):
    assert not hasattr(registry, "setup_role")
    with pytest.raises(UnauthorizedRole):
        registry.grant_role(ROOT, accounts["outsider"], accounts["outsider"])


def test_context_manager_finishes_on_clean_exit(backend: MemoryBackend, accounts: Dict[str, bytes]):
    with RegistryBootstrap(backend, deployer=accounts["deployer"]) as boot:
        boot.setup_role(ROOT, accounts["a0"])
    assert is_sealed(backend)
    assert boot.registry is not None
    assert boot.registry.has_role(ROOT, accounts["a0"])


def test_context_manager_does_not_seal_on_error(backend: MemoryBackend, accounts: Dict[str, bytes]):
    with pytest.raises(RuntimeError):
        with RegistryBootstrap(backend, deployer=accounts["deployer"]) as boot:
            boot.setup_role(ROOT, accounts["a0"])
            raise RuntimeError("abort")
    assert is_sealed(backend) is False
    assert boot.registry is None


def test_context_manager_tolerates_explicit_finish(backend: MemoryBackend, accounts: Dict[str, bytes]):
    with RegistryBootstrap(backend, deployer=accounts["deployer"]) as boot:
        reg = boot.finish()
    assert boot.registry is reg


def test_deployer_is_validated(backend: MemoryBackend):
    with pytest.raises(InvalidIdentifier):
        RegistryBootstrap(backend, deployer=b"")


def test_seal_survives_reopen(tmp_path: Path, accounts: Dict[str, bytes]):
    path = tmp_path / "roles.db"
    with SqliteBackend(path) as store:
        with RegistryBootstrap(store, deployer=accounts["deployer"]) as boot:
            boot.setup_role(ROOT, accounts["a0"])

    with SqliteBackend(path) as store:
        assert is_sealed(store)
        with pytest.raises(BootstrapClosed):
            RegistryBootstrap(store, deployer=accounts["deployer"])
        assert RoleRegistry(store).has_role(ROOT, accounts["a0"])


def test_finish_and_setup_role_do_not_interleave(backend: MemoryBackend, accounts: Dict[str, bytes]):
    boot = RegistryBootstrap(backend, deployer=accounts["deployer"])
    boot.setup_role(ROOT, accounts["a0"])
    outcome = []

    def late_setup() -> None:
        try:
            boot.setup_role(EDITOR, accounts["outsider"])
            outcome.append("granted")
        except BootstrapClosed:
            outcome.append("closed")

    # Hold the registry lock so setup_role queues behind finish().
    boot._registry._lock.acquire()
    try:
        t = threading.Thread(target=late_setup)
        t.start()
        time.sleep(0.1)
        reg = boot.finish()
    finally:
        boot._registry._lock.release()
    t.join(5)

    assert outcome == ["closed"]
    assert reg.has_role(EDITOR, accounts["outsider"]) is False
