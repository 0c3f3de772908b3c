"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, today_utc
from utils.tenant_context import (
    get_current_identity,
    set_current_identity,
    clear_current_identity,
    identity_context,
)
