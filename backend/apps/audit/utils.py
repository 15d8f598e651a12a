from __future__ import annotations

from typing import Any, Dict, Optional

from .models import ActivityLog, AuditLog


def log_audit_event(
    *,
    user,
    action: str,
    entity_type: str,
    entity_id: str,
    description: str = "",
    before: Optional[Any] = None,
    after: Optional[Any] = None,
    ip_address: Optional[str] = None,
    correlation_id: str = "",
) -> AuditLog:
    """Persist an audit log entry while handling optional context gracefully."""
    return AuditLog.objects.create(
        user=user,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        description=description,
        before_value=before,
        after_value=after,
        ip_address=ip_address,
        correlation_id=correlation_id,
    )


def log_activity(
    request,
    module: str,
    action: str,
    *,
    entity=None,
    description: str = "",
    metadata: Optional[Dict[str, Any]] = None,
) -> ActivityLog:
    """Record what the requester just did; the requester's employee owns the row."""
    from apps.security.requester import get_requester

    requester = get_requester(request)
    user = getattr(request, "user", None)
    return ActivityLog.objects.create(
        employee_id=getattr(requester, "employee_id", None),
        user=user if getattr(user, "is_authenticated", False) else None,
        module=module,
        action=action,
        entity_type=type(entity).__name__ if entity is not None else "",
        entity_id=str(entity.pk) if entity is not None else "",
        entity_name=str(entity)[:255] if entity is not None else "",
        description=description,
        metadata=metadata or {},
    )

