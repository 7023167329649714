"""Shared API dependencies: single import point for all routers.

Re-exports database session, identity and rate-limit dependencies so that
router modules can import everything they need from one place::

    from app.api.deps import get_db, get_scope, require_roles
"""

from app.auth.dependencies import (
    get_current_active_user,
    get_current_user,
    get_scope,
    require_roles,
)
from app.auth.rate_limit import get_login_rate_limiter
from app.database import get_db

__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "get_scope",
    "require_roles",
    "get_login_rate_limiter",
]
