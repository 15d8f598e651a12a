# backend/apps/hr/permissions.py

from apps.security.permission_registry import register_permissions
from apps.security.services.query_scoping import register_scope_fields

from .models import Attendance, Employee, EodReport, LeaveRequest

EVERY_SCOPE = ["own", "team", "department", "all"]

HR_PERMISSIONS = [
    {"module": "employees", "action": "view", "scopes": EVERY_SCOPE, "description": "View employee records"},
    {"module": "employees", "action": "edit", "scopes": EVERY_SCOPE, "description": "Edit employee records"},
    {"module": "employees", "action": "manage", "scopes": ["all"], "description": "Create employees and manage departments, roles and permissions"},
    {"module": "attendance", "action": "view", "scopes": EVERY_SCOPE, "description": "View attendance"},
    {"module": "attendance", "action": "create", "scopes": ["own"], "description": "Check in and out"},
    {"module": "attendance", "action": "approve", "scopes": ["team", "department", "all"], "description": "Approve attendance"},
    {"module": "eod", "action": "view", "scopes": EVERY_SCOPE, "description": "View end-of-day reports"},
    {"module": "eod", "action": "create", "scopes": ["own"], "description": "Submit end-of-day reports"},
    {"module": "leaves", "action": "view", "scopes": EVERY_SCOPE, "description": "View leave requests"},
    {"module": "leaves", "action": "create", "scopes": ["own"], "description": "Apply for leave"},
    {"module": "leaves", "action": "edit", "scopes": ["own"], "description": "Edit own leave requests"},
    {"module": "leaves", "action": "delete", "scopes": ["own"], "description": "Withdraw own leave requests"},
    {"module": "leaves", "action": "approve", "scopes": ["team", "department", "all"], "description": "Approve or reject leave"},
]

register_permissions(HR_PERMISSIONS)

register_scope_fields(Employee, owner_fields=["pk"], department_fields=["department"])
register_scope_fields(Attendance, owner_fields=["employee"], department_fields=["employee__department"])
register_scope_fields(EodReport, owner_fields=["employee"], department_fields=["employee__department"])
register_scope_fields(LeaveRequest, owner_fields=["employee"], department_fields=["employee__department"])
