# backend/apps/projects/permissions.py

from apps.security.permission_registry import register_permissions
from apps.security.services.query_scoping import register_scope_fields

from .models import Project

PROJECTS_PERMISSIONS = [
    {"module": "projects", "action": "view", "scopes": ["own", "team", "department", "all"], "description": "View projects"},
    {"module": "projects", "action": "edit", "scopes": ["own", "team", "department", "all"], "description": "Edit projects"},
    {"module": "projects", "action": "create", "scopes": ["all"], "description": "Create projects"},
    {"module": "projects", "action": "delete", "scopes": ["all"], "description": "Delete projects"},
]

register_permissions(PROJECTS_PERMISSIONS)

# "Own" means the projects an employee is named on.
register_scope_fields(
    Project,
    owner_fields=["relationship_manager", "project_manager"],
    department_fields=["department"],
)
