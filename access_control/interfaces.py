# -*- coding: utf-8 -*-
"""
access_control.interfaces
=========================

Capability introspection for the access-control contract.

External code can ask a registry "do you speak AccessControl v1?" via
:func:`supports_interface`. Interface ids are 8 bytes and stable:

    selector(sig)  = sha3_256("animica:abi:v1|" + sig)[:8]
    interface_id   = XOR of the selectors of the interface's functions

Identifiers published by this module:

- ``ACCESS_CONTROL_INTERFACE_ID`` : hasRole, getRoleAdmin, grantRole,
  revokeRole, renounceRole
- ``INTROSPECTION_INTERFACE_ID``  : supportsInterface(bytes8)

``0xffffffffffffffff`` is reserved as "invalid" and never supported.

:data:`ACCESS_CONTROL_INTERFACE` carries the ABI description (functions and
events) for tooling and codegen.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

__all__ = [
    "SELECTOR_DOMAIN",
    "INVALID_INTERFACE_ID",
    "InterfaceSpec",
    "selector",
    "interface_id",
    "ACCESS_CONTROL_INTERFACE",
    "ACCESS_CONTROL_INTERFACE_ID",
    "INTROSPECTION_INTERFACE_ID",
    "supports_interface",
]

SELECTOR_DOMAIN = "animica:abi:v1|"
SELECTOR_LEN = 8
INVALID_INTERFACE_ID = b"\xff" * SELECTOR_LEN

AbiEntry = Mapping[str, Any]


@dataclass(frozen=True)
class InterfaceSpec:
    """
    Description of a reusable interface (ABI bundle).

    Attributes
    ----------
    name : str
        Stable identifier, UpperCamelCase.
    abi : Sequence[AbiEntry]
        ABI entries, each with at least {"type": ...}.
    version : Optional[str]
        Semver of the interface (not the implementation).
    """

    name: str
    abi: Sequence[AbiEntry]
    version: Optional[str] = None
    description: Optional[str] = None

    def function_signatures(self) -> List[str]:
        out = []
        for ent in self.abi:
            if ent.get("type") != "function":
                continue
            types = [inp["type"] for inp in ent.get("inputs", [])]
            out.append(f"{ent['name']}(" + ",".join(types) + ")")
        return out

    @property
    def interface_id(self) -> bytes:
        return interface_id(self.function_signatures())


def selector(signature: str) -> bytes:
    data = (SELECTOR_DOMAIN + signature).encode("utf8")
    return hashlib.sha3_256(data).digest()[:SELECTOR_LEN]


def interface_id(signatures: Sequence[str]) -> bytes:
    acc = 0
    for sig in signatures:
        acc ^= int.from_bytes(selector(sig), "big")
    return acc.to_bytes(SELECTOR_LEN, "big")


def _fn(name: str, inputs: Sequence[str], outputs: Sequence[str] = ()) -> dict:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
        "outputs": [{"type": t} for t in outputs],
    }


def _ev(name: str, fields: Sequence[str]) -> dict:
    return {
        "type": "event",
        "name": name,
        "inputs": [{"name": f, "type": "bytes"} for f in fields],
    }


ACCESS_CONTROL_INTERFACE = InterfaceSpec(
    name="AccessControl",
    version="1.0.0",
    description="Role membership with per-role admin roles",
    abi=[
        _fn("hasRole", ["bytes32", "bytes"], ["bool"]),
        _fn("getRoleAdmin", ["bytes32"], ["bytes32"]),
        _fn("grantRole", ["bytes32", "bytes"]),
        _fn("revokeRole", ["bytes32", "bytes"]),
        _fn("renounceRole", ["bytes32", "bytes"]),
        _ev("RoleGranted", ["role", "account", "grantedBy"]),
        _ev("RoleRevoked", ["role", "account", "revokedBy"]),
        _ev("RoleAdminChanged", ["role", "previousAdminRole", "newAdminRole"]),
    ],
)

ACCESS_CONTROL_INTERFACE_ID: bytes = ACCESS_CONTROL_INTERFACE.interface_id
INTROSPECTION_INTERFACE_ID: bytes = selector("supportsInterface(bytes8)")

_SUPPORTED = frozenset({ACCESS_CONTROL_INTERFACE_ID, INTROSPECTION_INTERFACE_ID})


def supports_interface(interface_id: bytes) -> bool:
    if not isinstance(interface_id, (bytes, bytearray)) or len(interface_id) != SELECTOR_LEN:
        return False
    return bytes(interface_id) in _SUPPORTED
