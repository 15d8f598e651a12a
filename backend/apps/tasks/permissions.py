# backend/apps/tasks/permissions.py

from apps.security.permission_registry import register_permissions
from apps.security.services.query_scoping import register_scope_fields

from .models import Task

TASKS_PERMISSIONS = [
    {"module": "tasks", "action": "view", "scopes": ["own", "team", "department", "all"], "description": "View tasks"},
    {"module": "tasks", "action": "edit", "scopes": ["own", "team", "department", "all"], "description": "Edit tasks and update their status"},
    {"module": "tasks", "action": "create", "scopes": ["all"], "description": "Create tasks"},
    {"module": "tasks", "action": "assign", "scopes": ["all"], "description": "Assign tasks to other employees"},
    {"module": "tasks", "action": "delete", "scopes": ["all"], "description": "Delete tasks"},
]

register_permissions(TASKS_PERMISSIONS)

# A task belongs to both the employee doing it and the one who created it.
register_scope_fields(
    Task,
    owner_fields=["assignee", "creator"],
    department_fields=["assignee__department", "creator__department"],
)
