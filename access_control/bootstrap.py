"""
access_control.bootstrap: privileged initialization of a role store.

:class:`RegistryBootstrap` is the only place where a role can be granted
without an admin check. It is meant for system bring-up, before any admin
hierarchy exists:

    boot = RegistryBootstrap(backend, deployer=deployer)
    boot.setup_role(ROOT, admin)
    boot.set_role_admin(EDITOR, MODERATOR)
    registry = boot.finish()

``finish()`` seals the store and consumes the bootstrap object. After that:

- every method on the bootstrap raises :class:`BootstrapClosed`;
- opening a new bootstrap over the same (sealed) store raises as well;
- the returned :class:`RoleRegistry` only exposes gated mutations.

Never hand an unconsumed bootstrap to externally reachable code: ``setup_role``
performs NO authorization check.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from .config import AccessConfig
from .errors import BootstrapClosed
from .events import EventLog, RoleEvent
from .ids import normalize_role
from .registry import RoleRegistry
from .storage import BOOTSTRAP_KEY, FLAG, StorageBackend

log = logging.getLogger(__name__)

__all__ = ["RegistryBootstrap", "is_sealed"]


def is_sealed(backend: StorageBackend) -> bool:
    """True once a bootstrap has finished on `backend`."""
    v = backend.get(BOOTSTRAP_KEY)
    return v is not None and len(v) > 0


class RegistryBootstrap:
    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        *,
        deployer: bytes,
        config: Optional[AccessConfig] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        lock = threading.RLock()
        self._registry = RoleRegistry(backend, config=config, event_log=event_log, lock=lock)
        if is_sealed(self._registry.backend):
            raise BootstrapClosed("role store already initialized")
        self.deployer = self._registry._account(deployer)
        self.events: List[RoleEvent] = []
        self.registry: Optional[RoleRegistry] = None
        self._consumed = False

    def _ensure_open(self) -> None:
        if self._consumed:
            raise BootstrapClosed("bootstrap already finished")

    def setup_role(self, role: bytes, account: bytes) -> List[RoleEvent]:
        """
        Grant `role` to `account` with NO admin check; ``grantedBy`` is the
        deployer. Idempotent like ``grant_role``.
        """
        reg = self._registry
        role = normalize_role(role)
        account = reg._account(account)
        with reg._lock:
            self._ensure_open()
            with reg._atomic():
                out = reg._grant(role, account, self.deployer)
            self.events.extend(out)
        if out:
            log.info(
                "bootstrap role granted",
                extra={"role": role.hex(), "account": account.hex()},
            )
        return out

    def set_role_admin(self, role: bytes, new_admin_role: bytes) -> List[RoleEvent]:
        """Same semantics as :meth:`RoleRegistry.set_role_admin`."""
        with self._registry._lock:
            self._ensure_open()
            out = self._registry.set_role_admin(role, new_admin_role)
            self.events.extend(out)
        return out

    def finish(self) -> RoleRegistry:
        """Seal the store and hand out the gated registry. Single use."""
        reg = self._registry
        with reg._lock:
            self._ensure_open()
            with reg._atomic():
                reg.backend.set(BOOTSTRAP_KEY, FLAG)
            self._consumed = True
            self.registry = reg
        log.info("role store sealed", extra={"bootstrap_events": len(self.events)})
        return reg

    def __enter__(self) -> "RegistryBootstrap":
        self._ensure_open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None and not self._consumed:
            self.finish()
