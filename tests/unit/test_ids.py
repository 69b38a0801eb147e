from __future__ import annotations

import hashlib

import pytest

from access_control.errors import InvalidIdentifier
from access_control.ids import (
    DEFAULT_ADMIN_ROLE,
    ROLE_ID_LEN,
    ROOT,
    derive_role_id,
    normalize_account,
    normalize_role,
    parse_account,
    parse_role,
    to_hex,
)


def test_root_is_all_zero_bytes32():
    assert ROOT == DEFAULT_ADMIN_ROLE == b"\x00" * 32
    assert ROLE_ID_LEN == 32


def test_derive_role_id_is_sha3_256():
    assert derive_role_id("EDITOR") == hashlib.sha3_256(b"EDITOR").digest()
    assert derive_role_id(b"EDITOR") == derive_role_id("EDITOR")
    assert derive_role_id("EDITOR") != derive_role_id("editor")
    assert len(derive_role_id("")) == 32


def test_derive_role_id_rejects_other_types():
    with pytest.raises(InvalidIdentifier) as ei:
        derive_role_id(42)  # type: ignore[arg-type]
    assert ei.value.code == "role_type"


def test_normalize_role_codes():
    assert normalize_role(bytearray(32)) == ROOT
    assert isinstance(normalize_role(bytearray(32)), bytes)

    with pytest.raises(InvalidIdentifier) as ei:
        normalize_role(b"\x01" * 20)
    assert ei.value.code == "role_len"
    assert ei.value.context["len"] == 20

    with pytest.raises(InvalidIdentifier) as ei:
        normalize_role("ROOT")  # type: ignore[arg-type]
    assert ei.value.code == "role_type"


def test_invalid_identifier_is_a_value_error():
    with pytest.raises(ValueError):
        normalize_role(b"")


@pytest.mark.parametrize("account", [b"\x01", b"x" * 64, bytearray(b"alice")])
def test_normalize_account_accepts(account):
    assert normalize_account(account) == bytes(account)


def test_normalize_account_bounds():
    with pytest.raises(InvalidIdentifier) as ei:
        normalize_account(b"")
    assert ei.value.code == "account_len"

    with pytest.raises(InvalidIdentifier):
        normalize_account(b"x" * 65)

    assert normalize_account(b"x" * 100, max_len=128) == b"x" * 100

    with pytest.raises(InvalidIdentifier) as ei:
        normalize_account("alice")  # type: ignore[arg-type]
    assert ei.value.code == "account_type"


@pytest.mark.parametrize("alias", ["ROOT", "root", "DEFAULT_ADMIN", "default_admin_role", "  ROOT  "])
def test_parse_role_root_aliases(alias):
    assert parse_role(alias) == ROOT


def test_parse_role_hex_and_names():
    rid = derive_role_id("EDITOR")
    assert parse_role(to_hex(rid)) == rid
    assert parse_role("0X" + rid.hex()) == rid
    assert parse_role("EDITOR") == rid


def test_parse_role_bad_hex():
    with pytest.raises(InvalidIdentifier) as ei:
        parse_role("0xzz")
    assert ei.value.code == "hex"

    with pytest.raises(InvalidIdentifier) as ei:
        parse_role("0xabcd")
    assert ei.value.code == "role_len"


def test_parse_account():
    assert parse_account("0xa0") == b"\xa0"
    assert parse_account("alice") == b"alice"
    with pytest.raises(InvalidIdentifier):
        parse_account("0xabc")


def test_to_hex():
    assert to_hex(b"\x01\xff") == "0x01ff"
    assert to_hex(bytearray()) == "0x"
