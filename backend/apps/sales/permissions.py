# backend/apps/sales/permissions.py

from apps.security.permission_registry import register_permissions
from apps.security.services.query_scoping import register_scope_fields

from .models import Lead

SALES_PERMISSIONS = [
    {"module": "leads", "action": "view", "scopes": ["own", "team", "department", "all"], "description": "View leads"},
    {"module": "leads", "action": "edit", "scopes": ["own", "team", "department", "all"], "description": "Edit leads, add notes and follow-ups"},
    {"module": "leads", "action": "create", "scopes": ["all"], "description": "Create leads"},
    {"module": "leads", "action": "assign", "scopes": ["all"], "description": "Reassign lead ownership"},
    {"module": "leads", "action": "delete", "scopes": ["all"], "description": "Delete leads"},
]

register_permissions(SALES_PERMISSIONS)

register_scope_fields(Lead, owner_fields=["owner"], department_fields=["department"])
