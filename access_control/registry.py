# -*- coding: utf-8 -*-
"""
access_control.registry
=======================

The authorization core: role membership, the admin hierarchy over it, and
the single enforcement primitive :meth:`RoleRegistry.check_role`.

Semantics
---------
- ``has_role(role, account)`` is true iff `account` is a current member.
- Every role has exactly one admin role; unset means ``ROOT``.
- Members of a role's admin role may grant/revoke that role.
- Granting a held role or revoking an unheld one is a successful no-op that
  emits **no** event.
- A principal may always renounce its own membership, admin or not, and
  never anyone else's.
- Nothing cascades: losing admin membership does not undo earlier grants.
- ``set_role_admin`` always emits ``RoleAdminChanged``, even when the admin
  role does not change. Grant/revoke suppress no-op events; this one does
  not, and consumers count on one event per call.

Atomicity
---------
Every public method runs under one registry-wide ``RLock``: the admin check
and the mutation it gates are a single step, and readers never observe a
half-applied write.

Mutations additionally run inside the backend's ``tx()``. For a SQLite
store opened by several registries (or processes) this is ``BEGIN
IMMEDIATE``, so no other writer can revoke the caller's admin membership or
re-point the admin role between the check and the write. Events are
appended to the attached ``EventLog`` inside that transaction, so a log
shared by several registries is in commit order.

Privileged bootstrap
--------------------
There is no ``setup_role`` here. Unchecked grants only exist on
:class:`access_control.bootstrap.RegistryBootstrap`, which is consumed once
initialization is done.

Usage
-----
    boot = RegistryBootstrap(deployer=deployer)
    boot.setup_role(ROOT, admin)
    registry = boot.finish()

    events = registry.grant_role(EDITOR, alice, caller=admin)

    def publish(caller: bytes, text: str) -> None:
        registry.check_role(EDITOR, caller)
        ...
"""
from __future__ import annotations

import contextlib
import logging
import threading
from dataclasses import dataclass
from typing import ContextManager, List, Optional, Tuple

from . import interfaces
from .config import AccessConfig, load_config
from .errors import InvalidSelfRenounce, UnauthorizedRole
from .events import EventLog, RoleAdminChanged, RoleEvent, RoleGranted, RoleRevoked
from .ids import ROLE_ID_LEN, ROOT, normalize_account, normalize_role
from .storage import (
    FLAG,
    MemoryBackend,
    StorageBackend,
    admin_key,
    member_key,
    member_prefix,
)

log = logging.getLogger(__name__)

__all__ = ["RoleRecord", "RoleRegistry"]


@dataclass(frozen=True)
class RoleRecord:
    """Point-in-time view of one role."""

    role: bytes
    admin_role: bytes
    members: Tuple[bytes, ...]


class RoleRegistry:
    """
    Owner of all role state. Construct it through
    :class:`~access_control.bootstrap.RegistryBootstrap` to seed the first
    admins; constructing it directly over a store gives the gated surface only.
    """

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        *,
        config: Optional[AccessConfig] = None,
        event_log: Optional[EventLog] = None,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self.config = config or load_config()
        self.backend: StorageBackend = backend if backend is not None else MemoryBackend()
        self.event_log = event_log
        self._lock = lock if lock is not None else threading.RLock()

    # ---- normalization -------------------------------------------------------

    def _account(self, account: bytes) -> bytes:
        return normalize_account(account, max_len=self.config.max_account_bytes)

    def _atomic(self) -> ContextManager[None]:
        """Backend transaction around an admin check and the write it gates."""
        tx = getattr(self.backend, "tx", None)
        return tx() if tx is not None else contextlib.nullcontext()

    # ---- unlocked internals (callers hold self._lock) -------------------------

    def _has_role(self, role: bytes, account: bytes) -> bool:
        v = self.backend.get(member_key(role, account))
        return v is not None and len(v) > 0

    def _get_role_admin(self, role: bytes) -> bytes:
        v = self.backend.get(admin_key(role))
        if v is None or len(v) != ROLE_ID_LEN:
            return ROOT
        return v

    def _check_role(self, role: bytes, account: bytes) -> None:
        if not self._has_role(role, account):
            log.warning(
                "role check denied",
                extra={"role": role.hex(), "account": account.hex()},
            )
            raise UnauthorizedRole(role, account)

    def _grant(self, role: bytes, account: bytes, sender: bytes) -> List[RoleEvent]:
        if self._has_role(role, account):
            return []
        self.backend.set(member_key(role, account), FLAG)
        return self._emit(RoleGranted(role, account, sender))

    def _revoke(self, role: bytes, account: bytes, sender: bytes) -> List[RoleEvent]:
        if not self._has_role(role, account):
            return []
        self.backend.delete(member_key(role, account))
        return self._emit(RoleRevoked(role, account, sender))

    def _set_role_admin(self, role: bytes, new_admin_role: bytes) -> List[RoleEvent]:
        previous = self._get_role_admin(role)
        self.backend.set(admin_key(role), new_admin_role)
        return self._emit(RoleAdminChanged(role, previous, new_admin_role))

    def _emit(self, event: RoleEvent) -> List[RoleEvent]:
        if self.event_log is not None:
            self.event_log.extend([event])
        log.info(event.name.decode("ascii"), extra=event.to_dict())
        return [event]

    # ---- queries -------------------------------------------------------------

    def has_role(self, role: bytes, account: bytes) -> bool:
        role = normalize_role(role)
        account = self._account(account)
        with self._lock:
            return self._has_role(role, account)

    def get_role_admin(self, role: bytes) -> bytes:
        """Admin role-id for `role`, or ROOT if never set."""
        role = normalize_role(role)
        with self._lock:
            return self._get_role_admin(role)

    def check_role(self, role: bytes, account: bytes) -> None:
        """
        Raise :class:`UnauthorizedRole` unless `account` holds `role` right now.

        This is the composition point for protected operations: call it first,
        then do the work. Nothing is cached between calls.
        """
        role = normalize_role(role)
        account = self._account(account)
        with self._lock:
            self._check_role(role, account)

    def role_members(self, role: bytes) -> Tuple[bytes, ...]:
        """Current members of `role`, sorted."""
        role = normalize_role(role)
        prefix = member_prefix(role)
        with self._lock:
            return tuple(k[len(prefix):] for k, v in self.backend.iter_prefix(prefix) if v)

    def role_record(self, role: bytes) -> RoleRecord:
        role = normalize_role(role)
        with self._lock:
            return RoleRecord(
                role=role,
                admin_role=self._get_role_admin(role),
                members=self.role_members(role),
            )

    def supports_interface(self, interface_id: bytes) -> bool:
        return interfaces.supports_interface(interface_id)

    # ---- gated mutations -----------------------------------------------------

    def grant_role(self, role: bytes, account: bytes, caller: bytes) -> List[RoleEvent]:
        """
        Grant `role` to `account`. `caller` must hold ``get_role_admin(role)``.

        Returns ``[RoleGranted]`` on change, ``[]`` if `account` already held it.
        """
        role = normalize_role(role)
        account = self._account(account)
        caller = self._account(caller)
        with self._lock, self._atomic():
            self._check_role(self._get_role_admin(role), caller)
            return self._grant(role, account, caller)

    def revoke_role(self, role: bytes, account: bytes, caller: bytes) -> List[RoleEvent]:
        """
        Revoke `role` from `account`. `caller` must hold ``get_role_admin(role)``.

        Returns ``[RoleRevoked]`` on change, ``[]`` if `account` did not hold it.
        """
        role = normalize_role(role)
        account = self._account(account)
        caller = self._account(caller)
        with self._lock, self._atomic():
            self._check_role(self._get_role_admin(role), caller)
            return self._revoke(role, account, caller)

    def renounce_role(self, role: bytes, account: bytes, caller: bytes) -> List[RoleEvent]:
        """
        Drop the caller's own membership. `account` must equal `caller`; the
        admin role is not consulted.
        """
        role = normalize_role(role)
        account = self._account(account)
        caller = self._account(caller)
        if account != caller:
            raise InvalidSelfRenounce(role, caller, account)
        with self._lock, self._atomic():
            return self._revoke(role, account, caller)

    # ---- administrative mutation ---------------------------------------------

    def set_role_admin(self, role: bytes, new_admin_role: bytes) -> List[RoleEvent]:
        """
        Point `role` at a new admin role.

        Not gated here: whoever exposes this must do its own authorization.
        Always emits ``RoleAdminChanged``, including when nothing changes.
        Self-admin and cycles are accepted; a role whose admin chain nobody
        holds can no longer be granted or revoked until reconfigured.
        """
        role = normalize_role(role)
        new_admin_role = normalize_role(new_admin_role)
        with self._lock, self._atomic():
            return self._set_role_admin(role, new_admin_role)
