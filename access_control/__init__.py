"""
access_control: role-based access control core.

Principals hold roles; each role has an admin role whose members may grant
and revoke it; ``check_role`` is the single enforcement primitive protected
operations compose with.

    from access_control import RegistryBootstrap, ROOT, derive_role_id

    EDITOR = derive_role_id("EDITOR")

    boot = RegistryBootstrap(deployer=b"deployer")
    boot.setup_role(ROOT, b"admin")
    registry = boot.finish()

    registry.grant_role(EDITOR, b"alice", caller=b"admin")
    registry.check_role(EDITOR, b"alice")
"""

from __future__ import annotations

from .bootstrap import RegistryBootstrap, is_sealed
from .errors import (
    AccessError,
    BootstrapClosed,
    InvalidIdentifier,
    InvalidSelfRenounce,
    StorageError,
    UnauthorizedRole,
)
from .events import (
    EventLog,
    RoleAdminChanged,
    RoleEvent,
    RoleGranted,
    RoleRevoked,
    event_from_dict,
)
from .guard import only_role, require_role
from .ids import DEFAULT_ADMIN_ROLE, ROOT, derive_role_id
from .interfaces import (
    ACCESS_CONTROL_INTERFACE_ID,
    INTROSPECTION_INTERFACE_ID,
    supports_interface,
)
from .registry import RoleRecord, RoleRegistry
from .storage import MemoryBackend, SqliteBackend, StorageBackend, open_backend
from .version import __version__

__all__ = [
    "__version__",
    # identifiers
    "ROOT",
    "DEFAULT_ADMIN_ROLE",
    "derive_role_id",
    # core
    "RoleRegistry",
    "RoleRecord",
    "RegistryBootstrap",
    "is_sealed",
    "only_role",
    "require_role",
    # events
    "RoleGranted",
    "RoleRevoked",
    "RoleAdminChanged",
    "RoleEvent",
    "EventLog",
    "event_from_dict",
    # errors
    "AccessError",
    "UnauthorizedRole",
    "InvalidSelfRenounce",
    "InvalidIdentifier",
    "BootstrapClosed",
    "StorageError",
    # storage
    "StorageBackend",
    "MemoryBackend",
    "SqliteBackend",
    "open_backend",
    # introspection
    "ACCESS_CONTROL_INTERFACE_ID",
    "INTROSPECTION_INTERFACE_ID",
    "supports_interface",
]
