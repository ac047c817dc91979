"""
Tenant Scoping Helpers

WHY: Centralize tenant validation logic for reuse across services and routes.
Every request is scoped to a tenant (the authenticated user), and records
owned by another tenant must look exactly like records that don't exist.

SECURITY INVARIANTS:
1. flock_id values from client input are validated against the tenant
2. Single-row lookups go through scoped_get, never Model.query.get

USAGE:
    from poultrydesk.services.tenant_service import require_flock_owned

    flock = require_flock_owned(flock_id, g.user_id)
"""

from flask import current_app

from ..extensions import db
from ..models import Flock
from ..validation import NotFoundError


def scoped_get(model, row_id: int, user_id: int, label: str | None = None):
    """
    Fetch one tenant-owned row or raise NotFoundError.

    Cross-tenant ids raise the same error as missing ids.
    """
    row = db.session.query(model).filter(
        model.id == row_id,
        model.user_id == user_id,
    ).first()
    if row is None:
        name = label or model.__name__
        raise NotFoundError(f"{name} not found")
    return row


def require_flock_owned(flock_id, user_id: int) -> Flock:
    """
    Validate that a flock belongs to the tenant.

    SECURITY: Core tenant isolation check. Call this before any operation
    that uses a flock_id from client input.
    """
    try:
        flock_id = int(flock_id)
    except (TypeError, ValueError):
        raise NotFoundError("Flock not found")

    flock = db.session.query(Flock).filter_by(id=flock_id).first()
    if flock is not None and flock.user_id != user_id:
        current_app.logger.warning(
            "Cross-tenant flock access denied: user_id=%s flock_id=%s", user_id, flock_id
        )
        flock = None
    if flock is None:
        raise NotFoundError("Flock not found")
    return flock

