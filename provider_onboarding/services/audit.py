"""Audit logging service for compliance tracking."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from provider_onboarding.models.entities import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    *,
    actor: str,
    action: str,
    resource_type: str,
    resource_id: Any,
    detail: dict[str, Any] | None = None,
) -> None:
    """Write an immutable audit log entry into the current transaction."""
    entry = AuditLog(
        actor=actor,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id),
        detail=detail,
    )
    db.add(entry)
    db.flush()
    logger.info("AUDIT: %s %s %s/%s", actor, action, resource_type, resource_id)
