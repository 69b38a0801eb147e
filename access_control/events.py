"""
access_control.events
=====================

Change events produced by the registry.

Every mutation returns the list of events it produced (zero or one). Callers
decide on delivery and persistence; an :class:`EventLog` can be attached to a
registry to collect them in completion order.

Event schema
------------
- **RoleGranted**      : {"role": bytes32, "account": bytes, "grantedBy": bytes}
- **RoleRevoked**      : {"role": bytes32, "account": bytes, "revokedBy": bytes}
- **RoleAdminChanged** : {"role": bytes32, "previousAdminRole": bytes32, "newAdminRole": bytes32}

Encodings
---------
- ``to_dict()``   : JSON-friendly, ``{"event": "RoleGranted", "role": "0x..", ...}``
- ``to_receipt()``: canonical receipt form

      name: "0x" + hex-encoded event name bytes
      args: sequence of {"k", "t", "v"} dicts, t="b" => 0x-prefixed hex bytes
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple, Union

from .errors import InvalidIdentifier

EV_ROLE_GRANTED = b"RoleGranted"
EV_ROLE_REVOKED = b"RoleRevoked"
EV_ROLE_ADMIN_CHANGED = b"RoleAdminChanged"


def _hex(b: bytes) -> str:
    return "0x" + b.hex()


def _unhex(v: Any, key: str) -> bytes:
    if not isinstance(v, str) or not v.lower().startswith("0x"):
        raise InvalidIdentifier(
            "event field must be 0x-prefixed hex", code="hex", context={"where": key}
        )
    try:
        return bytes.fromhex(v[2:])
    except ValueError:
        raise InvalidIdentifier("invalid hex string", code="hex", context={"where": key}) from None


class _EventBase:
    name: bytes = b""

    def args(self) -> Dict[str, bytes]:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, str]:
        out = {"event": self.name.decode("ascii")}
        out.update({k: _hex(v) for k, v in self.args().items()})
        return out

    def to_receipt(self) -> Dict[str, Any]:
        return {
            "name": _hex(self.name),
            "args": tuple({"k": k, "t": "b", "v": _hex(v)} for k, v in self.args().items()),
        }


@dataclass(frozen=True)
class RoleGranted(_EventBase):
    role: bytes
    account: bytes
    granted_by: bytes

    name = EV_ROLE_GRANTED

    def args(self) -> Dict[str, bytes]:
        return {"role": self.role, "account": self.account, "grantedBy": self.granted_by}


@dataclass(frozen=True)
class RoleRevoked(_EventBase):
    role: bytes
    account: bytes
    revoked_by: bytes

    name = EV_ROLE_REVOKED

    def args(self) -> Dict[str, bytes]:
        return {"role": self.role, "account": self.account, "revokedBy": self.revoked_by}


@dataclass(frozen=True)
class RoleAdminChanged(_EventBase):
    role: bytes
    previous_admin_role: bytes
    new_admin_role: bytes

    name = EV_ROLE_ADMIN_CHANGED

    def args(self) -> Dict[str, bytes]:
        return {
            "role": self.role,
            "previousAdminRole": self.previous_admin_role,
            "newAdminRole": self.new_admin_role,
        }


RoleEvent = Union[RoleGranted, RoleRevoked, RoleAdminChanged]

_BY_NAME = {
    "RoleGranted": (RoleGranted, ("role", "account", "grantedBy")),
    "RoleRevoked": (RoleRevoked, ("role", "account", "revokedBy")),
    "RoleAdminChanged": (RoleAdminChanged, ("role", "previousAdminRole", "newAdminRole")),
}


def event_from_dict(data: Mapping[str, Any]) -> RoleEvent:
    """Inverse of ``to_dict()``; used when replaying an exported audit log."""
    entry = _BY_NAME.get(str(data.get("event")))
    if entry is None:
        raise InvalidIdentifier(
            "unknown event name", code="event_name", context={"event": data.get("event")}
        )
    cls, keys = entry
    return cls(*(_unhex(data.get(k), k) for k in keys))


class EventLog:
    """
    Append-only, thread-safe collector of role events.

    Order is completion order of the operations that produced the events.
    """

    def __init__(self) -> None:
        self._events: List[RoleEvent] = []
        self._lock = threading.Lock()

    def extend(self, events: Sequence[RoleEvent]) -> None:
        with self._lock:
            self._events.extend(events)

    def snapshot(self) -> Tuple[RoleEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def for_role(self, role: bytes) -> List[RoleEvent]:
        return [e for e in self.snapshot() if e.role == role]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __iter__(self) -> Iterator[RoleEvent]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


__all__ = [
    "EV_ROLE_GRANTED",
    "EV_ROLE_REVOKED",
    "EV_ROLE_ADMIN_CHANGED",
    "RoleGranted",
    "RoleRevoked",
    "RoleAdminChanged",
    "RoleEvent",
    "EventLog",
    "event_from_dict",
]
