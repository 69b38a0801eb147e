"""
access_control.errors
=====================

Structured error taxonomy for the authorization core.

Every error carries:
    code:    short machine-readable code string
    message: human-readable message
    context: extra fields for diagnostics / RPC wiring (bytes kept as bytes;
             use :meth:`AccessError.to_dict` for a JSON-friendly view)

All errors are raised *before* any state is written, so a failed call never
leaves a partial mutation behind.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


def _jsonable(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    return v


class AccessError(Exception):
    """Base class for every error raised by access_control."""

    code: str = "access_error"

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "context": {k: _jsonable(v) for k, v in self.context.items()},
        }


class UnauthorizedRole(AccessError):
    """`account` does not hold `role` at the time of the check."""

    code = "unauthorized_role"

    def __init__(self, role: bytes, account: bytes) -> None:
        self.role = bytes(role)
        self.account = bytes(account)
        super().__init__(
            f"account 0x{self.account.hex()} is missing role 0x{self.role.hex()}",
            context={"role": self.role, "account": self.account},
        )

    def __reduce__(self):
        return (type(self), (self.role, self.account))


class InvalidSelfRenounce(AccessError):
    """A principal tried to renounce a role on behalf of someone else."""

    code = "invalid_self_renounce"

    def __init__(self, role: bytes, attempted_by: bytes, target_account: bytes) -> None:
        self.role = bytes(role)
        self.attempted_by = bytes(attempted_by)
        self.target_account = bytes(target_account)
        super().__init__(
            "roles can only be renounced for self",
            context={
                "role": self.role,
                "attempted_by": self.attempted_by,
                "target_account": self.target_account,
            },
        )

    def __reduce__(self):
        return (type(self), (self.role, self.attempted_by, self.target_account))


class InvalidIdentifier(AccessError, ValueError):
    """Malformed role id or principal identifier."""

    code = "invalid_identifier"


class BootstrapClosed(AccessError):
    """The privileged bootstrap phase is over for this store or object."""

    code = "bootstrap_closed"


class StorageError(AccessError):
    """Backend failure (I/O, corrupt value, closed handle)."""

    code = "storage_error"


__all__ = [
    "AccessError",
    "UnauthorizedRole",
    "InvalidSelfRenounce",
    "InvalidIdentifier",
    "BootstrapClosed",
    "StorageError",
]
