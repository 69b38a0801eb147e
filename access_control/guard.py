"""
access_control.guard: wrap protected operations with a role check.

A protected operation runs only if its caller holds the required role *at
call time*. The check is delegated to :meth:`RoleRegistry.check_role` on every
invocation; nothing is cached.

Usage:
    GREETER = derive_role_id("GREETER")

    @only_role(registry, GREETER)
    def set_greeting(caller: bytes, text: str) -> None:
        ...

    set_greeting(alice, "hello")     # UnauthorizedRole unless alice holds GREETER

The caller is looked up by parameter name (``caller`` by default), so it can
be passed positionally or by keyword.
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, TypeVar

from .registry import RoleRegistry

F = TypeVar("F", bound=Callable[..., Any])

__all__ = ["only_role", "require_role"]


def require_role(registry: RoleRegistry, role: bytes, caller: bytes) -> None:
    """Imperative form, for code paths that cannot be decorated."""
    registry.check_role(role, caller)


def only_role(registry: RoleRegistry, role: bytes, *, caller_arg: str = "caller") -> Callable[[F], F]:
    """
    Decorator: ``registry.check_role(role, <caller_arg>)`` before the call.

    Raises TypeError at decoration time if the function has no `caller_arg`
    parameter.
    """

    def decorator(fn: F) -> F:
        sig = inspect.signature(fn)
        if caller_arg not in sig.parameters:
            raise TypeError(f"{fn.__qualname__} has no parameter named {caller_arg!r}")

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound = sig.bind(*args, **kwargs)
            bound.apply_defaults()
            registry.check_role(role, bound.arguments[caller_arg])
            return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
