"""Propagate the caller's identity (user, role, tenant) through the call stack."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.models import Identity

_current_identity: ContextVar["Identity | None"] = ContextVar("current_identity", default=None)


def get_current_identity() -> "Identity":
    """
    Get the authenticated caller from context.

    Raises RuntimeError if no identity is set. Tenant-scoped code running
    outside an authenticated request is a bug, not an anonymous caller.
    """
    identity = _current_identity.get()
    if identity is None:
        raise RuntimeError(
            "No identity in context. This usually means you're calling "
            "tenant-scoped code outside of an authenticated request."
        )
    return identity


def set_current_identity(identity: "Identity") -> None:
    """Set caller identity. Called by the auth middleware after verification."""
    _current_identity.set(identity)


def clear_current_identity() -> None:
    """
    Clear identity context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_identity.set(None)


@contextmanager
def identity_context(identity: "Identity"):
    """
    Temporarily act as the given identity.

    Used by tests, the seed command and admin tooling:

        with identity_context(admin):
            tenants = tenant_service.list_all()
    """
    previous = _current_identity.get()
    set_current_identity(identity)
    try:
        yield identity
    finally:
        if previous is None:
            clear_current_identity()
        else:
            set_current_identity(previous)
