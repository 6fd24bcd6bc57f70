"""
Audit trail for access to sensitive fields.

Entries name the fields an action touched, never their values, so the audit
log itself never becomes a second copy of the data it protects.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.orm import Session

from bankcrypt.models.user import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    *,
    actor: str,
    action: str,
    resource_type: str,
    resource_id: Any,
    fields: Iterable[str] = (),
) -> AuditLog:
    """Add an audit entry to the caller's transaction."""
    field_names = sorted(set(fields))
    entry = AuditLog(
        actor=actor,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id),
        detail={"fields": field_names} if field_names else None,
    )
    db.add(entry)
    db.flush()
    logger.info(
        "AUDIT: %s %s %s/%s fields=%s",
        actor,
        action,
        resource_type,
        resource_id,
        ",".join(field_names) or "-",
    )
    return entry
