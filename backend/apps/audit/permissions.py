# backend/apps/audit/permissions.py

from apps.security.permission_registry import register_permissions
from apps.security.services.query_scoping import register_scope_fields

from .models import ActivityLog

AUDIT_PERMISSIONS = [
    {
        "module": "reports",
        "action": "generate",
        "scopes": ["own", "team", "department", "all"],
        "description": "Generate reports and read the activity feed",
    },
]

register_permissions(AUDIT_PERMISSIONS)

register_scope_fields(ActivityLog, owner_fields=["employee"], department_fields=["employee__department"])
