"""
access_control.cli
------------------

Command-line front end over a SQLite-backed role store.

Roles are given as 0x-hex ids, ``ROOT``, or names (hashed with sha3_256).
Accounts are 0x-hex or plain UTF-8 text.

Examples
--------
# Initialize a store and make 0xa0 the first ROOT member
access-control --db roles.db init --admin 0xa0

# ROOT grants EDITOR to 0xa1, then 0xa1 gives it up
access-control --db roles.db grant EDITOR 0xa1 --caller 0xa0
access-control --db roles.db renounce EDITOR --caller 0xa1

# Queries, JSON output
access-control --db roles.db --json has-role EDITOR 0xa1
access-control --db roles.db members ROOT

``set_role_admin`` is not exposed here; it performs no
authorization check of its own.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import typer

from . import interfaces
from . import logging as alog
from .bootstrap import RegistryBootstrap, is_sealed
from .config import load_config
from .errors import AccessError
from .events import RoleEvent
from .ids import parse_account, parse_role, to_hex
from .registry import RoleRegistry
from .storage import SqliteBackend

app = typer.Typer(
    name="access-control",
    add_completion=False,
    no_args_is_help=True,
    help="Inspect and administer role membership in an access-control store.",
)

log = alog.get_logger(__name__)


class _State:
    def __init__(self) -> None:
        self.db: Path = load_config().db_path
        self.json_output: bool = False


_state = _State()


@app.callback()
def main_callback(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(
        None, "--db", help="SQLite role store", envvar="ACCESS_CONTROL_DB"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
    log_level: str = typer.Option(
        "WARNING", "--log-level", help="Log level", envvar="ACCESS_CONTROL_LOG_LEVEL"
    ),
) -> None:
    cfg = load_config()
    _state.db = db or cfg.db_path
    _state.json_output = json_output
    alog.configure(json=cfg.log_json, level=log_level)
    # One trace id per invocation; the scope closes with the click context.
    ctx.with_resource(alog.trace_scope())
    alog.bind(component="cli", command=ctx.invoked_subcommand)


# -------------------- helpers --------------------


def _fail(err: AccessError) -> None:
    if _state.json_output:
        typer.echo(json.dumps(err.to_dict()))
    else:
        typer.echo(f"error [{err.code}]: {err.message}", err=True)
    raise typer.Exit(code=1)


def _role(text: str) -> bytes:
    try:
        return parse_role(text)
    except AccessError as e:
        raise typer.BadParameter(e.message) from None


def _account(text: str) -> bytes:
    try:
        return parse_account(text)
    except AccessError as e:
        raise typer.BadParameter(e.message) from None


def _open(*, create: bool = False) -> SqliteBackend:
    """
    Open the role store. Only ``init`` creates a missing file; every other
    command opens it ``mode=rw`` and fails on a mistyped --db.
    """
    target = str(_state.db)
    if not create:
        target = _state.db.expanduser().resolve().as_uri() + "?mode=rw"
    try:
        return SqliteBackend(target)
    except AccessError as e:
        _fail(e)
        raise  # unreachable


def _emit(obj: Dict[str, Any], text: str) -> None:
    typer.echo(json.dumps(obj) if _state.json_output else text)


def _print_events(events: Sequence[RoleEvent]) -> None:
    rows: List[Dict[str, str]] = [e.to_dict() for e in events]
    if _state.json_output:
        typer.echo(json.dumps({"events": rows}))
        return
    if not rows:
        typer.echo("no change")
    for r in rows:
        fields = " ".join(f"{k}={v}" for k, v in r.items() if k != "event")
        typer.echo(f"{r['event']} {fields}")


def _mutate(op: str, *args: bytes) -> None:
    if not _state.db.expanduser().exists():
        typer.echo("role store not initialized (run `init` first)", err=True)
        raise typer.Exit(code=1)
    with _open() as backend:
        try:
            if not is_sealed(backend):
                typer.echo("role store not initialized (run `init` first)", err=True)
                raise typer.Exit(code=1)
            events = getattr(RoleRegistry(backend), op)(*args)
        except AccessError as e:
            _fail(e)
    _print_events(events)


# -------------------- commands --------------------


@app.command("role-id")
def role_id(name: str = typer.Argument(..., help="Role name, 0x-hex id, or ROOT")) -> None:
    """Print the 32-byte id for a role."""
    rid = _role(name)
    _emit({"name": name, "role": to_hex(rid)}, to_hex(rid))


@app.command("init")
def init(
    admin: str = typer.Option(..., "--admin", help="First ROOT member"),
    deployer: Optional[str] = typer.Option(
        None, "--deployer", help="Identity recorded as grantedBy (default: --admin)"
    ),
) -> None:
    """Bootstrap an empty store: grant ROOT to --admin and seal it."""
    admin_b = _account(admin)
    deployer_b = _account(deployer) if deployer else admin_b
    with _open(create=True) as backend:
        try:
            with RegistryBootstrap(backend, deployer=deployer_b) as boot:
                boot.setup_role(parse_role("ROOT"), admin_b)
        except AccessError as e:
            _fail(e)
    log.info("store initialized", extra={"db": str(_state.db)})
    _print_events(boot.events)


@app.command("has-role")
def has_role(role: str, account: str) -> None:
    """Check membership (exit code 0 either way)."""
    role_b, account_b = _role(role), _account(account)
    with _open() as backend:
        try:
            held = RoleRegistry(backend).has_role(role_b, account_b)
        except AccessError as e:
            _fail(e)
    _emit({"role": to_hex(role_b), "account": to_hex(account_b), "hasRole": held}, str(held).lower())


@app.command("admin-of")
def admin_of(role: str) -> None:
    """Print the admin role of ROLE."""
    role_b = _role(role)
    with _open() as backend:
        try:
            admin = RoleRegistry(backend).get_role_admin(role_b)
        except AccessError as e:
            _fail(e)
    _emit({"role": to_hex(role_b), "adminRole": to_hex(admin)}, to_hex(admin))


@app.command("members")
def members(role: str) -> None:
    """List current members of ROLE."""
    role_b = _role(role)
    with _open() as backend:
        try:
            found = RoleRegistry(backend).role_members(role_b)
        except AccessError as e:
            _fail(e)
    hexes = [to_hex(m) for m in found]
    _emit({"role": to_hex(role_b), "members": hexes}, "\n".join(hexes))


@app.command("grant")
def grant(
    role: str,
    account: str,
    caller: str = typer.Option(..., "--caller", help="Acting principal"),
) -> None:
    """Grant ROLE to ACCOUNT (caller must hold the admin role)."""
    alog.bind(caller=caller)
    _mutate("grant_role", _role(role), _account(account), _account(caller))


@app.command("revoke")
def revoke(
    role: str,
    account: str,
    caller: str = typer.Option(..., "--caller", help="Acting principal"),
) -> None:
    """Revoke ROLE from ACCOUNT (caller must hold the admin role)."""
    alog.bind(caller=caller)
    _mutate("revoke_role", _role(role), _account(account), _account(caller))


@app.command("renounce")
def renounce(
    role: str,
    caller: str = typer.Option(..., "--caller", help="Acting principal"),
    account: Optional[str] = typer.Option(None, "--account", help="Defaults to --caller"),
) -> None:
    """Give up the caller's own membership in ROLE."""
    alog.bind(caller=caller)
    _mutate("renounce_role", _role(role), _account(account or caller), _account(caller))


@app.command("supports")
def supports(interface_id: str = typer.Argument(..., help="8-byte 0x-hex interface id")) -> None:
    """Capability introspection."""
    try:
        iid = bytes.fromhex(interface_id[2:] if interface_id.lower().startswith("0x") else interface_id)
    except ValueError:
        raise typer.BadParameter("interface id must be hex") from None
    ok = interfaces.supports_interface(iid)
    _emit({"interfaceId": to_hex(iid), "supported": ok}, str(ok).lower())


def main() -> None:  # pragma: no cover - console entrypoint
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
