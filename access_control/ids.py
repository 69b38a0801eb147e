# -*- coding: utf-8 -*-
"""
access_control.ids
==================

Role and principal identifiers.

- **Role ids** are exactly 32 bytes. By convention a role id is
  ``sha3_256(name)`` (see :func:`derive_role_id`), but the registry never
  parses or interprets them. Bytes sort totally, which gives deterministic
  enumeration order.
- **Principals** (accounts) are opaque, non-empty byte strings. Their upper
  length bound comes from ``AccessConfig.max_account_bytes``.
- **ROOT** (a.k.a. ``DEFAULT_ADMIN_ROLE``) is 32 zero bytes. It is the admin
  of every role that has never been configured otherwise, including itself.

Text helpers (:func:`parse_role`, :func:`parse_account`, :func:`to_hex`) are
used by the CLI and by tests to move between human input and bytes.
"""
from __future__ import annotations

import hashlib
from typing import Union

from .errors import InvalidIdentifier

__all__ = [
    "ROLE_ID_LEN",
    "ROOT",
    "DEFAULT_ADMIN_ROLE",
    "derive_role_id",
    "normalize_role",
    "normalize_account",
    "parse_role",
    "parse_account",
    "to_hex",
]

ROLE_ID_LEN = 32

DEFAULT_ADMIN_ROLE: bytes = b"\x00" * ROLE_ID_LEN
ROOT = DEFAULT_ADMIN_ROLE

_ROOT_ALIASES = ("ROOT", "DEFAULT_ADMIN", "DEFAULT_ADMIN_ROLE")

BytesLike = Union[bytes, bytearray]


def derive_role_id(name: Union[str, BytesLike]) -> bytes:
    """
    Deterministic role id derivation: sha3_256(name) → bytes32.
    """
    if isinstance(name, str):
        name = name.encode("utf-8")
    if not isinstance(name, (bytes, bytearray)):
        raise InvalidIdentifier(
            "role name must be str or bytes", code="role_type", context={"where": "derive"}
        )
    return hashlib.sha3_256(bytes(name)).digest()


def normalize_role(role: BytesLike) -> bytes:
    """
    Ensure `role` is exactly 32 bytes and return it as immutable bytes.
    """
    if not isinstance(role, (bytes, bytearray)):
        raise InvalidIdentifier(
            "role id must be bytes",
            code="role_type",
            context={"where": "role", "py_type": type(role).__name__},
        )
    if len(role) != ROLE_ID_LEN:
        raise InvalidIdentifier(
            f"role id must be exactly {ROLE_ID_LEN} bytes",
            code="role_len",
            context={"where": "role", "len": len(role)},
        )
    return bytes(role)


def normalize_account(account: BytesLike, *, max_len: int = 64) -> bytes:
    """
    Ensure `account` is non-empty bytes no longer than `max_len`.
    """
    if not isinstance(account, (bytes, bytearray)):
        raise InvalidIdentifier(
            "account must be bytes",
            code="account_type",
            context={"where": "account", "py_type": type(account).__name__},
        )
    if len(account) == 0 or len(account) > max_len:
        raise InvalidIdentifier(
            f"account must be 1..{max_len} bytes",
            code="account_len",
            context={"where": "account", "len": len(account)},
        )
    return bytes(account)


def _from_hex(text: str, where: str) -> bytes:
    try:
        return bytes.fromhex(text[2:])
    except ValueError:
        raise InvalidIdentifier(
            "invalid hex string", code="hex", context={"where": where}
        ) from None


def parse_role(text: str) -> bytes:
    """
    Human input → role id.

    ``0x``-prefixed hex is decoded verbatim, ``ROOT`` / ``DEFAULT_ADMIN_ROLE``
    map to :data:`ROOT`, anything else is hashed with :func:`derive_role_id`.
    """
    s = text.strip()
    if s.lower().startswith("0x"):
        return normalize_role(_from_hex(s, "role"))
    if s.upper() in _ROOT_ALIASES:
        return ROOT
    return derive_role_id(s)


def parse_account(text: str) -> bytes:
    """
    Human input → principal bytes: ``0x`` hex is decoded, other text is UTF-8.
    """
    s = text.strip()
    if s.lower().startswith("0x"):
        return _from_hex(s, "account")
    return s.encode("utf-8")


def to_hex(b: BytesLike) -> str:
    return "0x" + bytes(b).hex()
