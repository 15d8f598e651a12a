"""
Declarative default roles and their scope matrix.

Both ``seed_default_roles`` and ``audit_role_permissions`` read from here,
so what the tooling expects and what gets seeded cannot drift apart.
Each role maps ``module -> action -> scope``; one scope per pair.
"""
from __future__ import annotations

from typing import Dict, List

from apps.security.permission_registry import registered_capabilities
from apps.security.scopes import Scope

OWN = Scope.OWN.value
TEAM = Scope.TEAM.value
DEPARTMENT = Scope.DEPARTMENT.value
ALL = Scope.ALL.value

ADMIN_ROLE = "ADMIN"
UNASSIGNED_ROLE = "UNASSIGNED"

DEFAULT_DEPARTMENTS: List[Dict[str, str]] = [
    {"code": "ADMIN", "name": "Administration", "description": "Central Management"},
    {"code": "SALES", "name": "Sales Department", "description": "Lead generation and sales"},
    {"code": "PRODUCT", "name": "Product Department", "description": "Tech and product development"},
    {"code": "PROJECT", "name": "Project Department", "description": "Project management and execution"},
    {"code": "OPERATION", "name": "Operation Department", "description": "Operations and HR"},
]

DEFAULT_ROLES: List[Dict] = [
    {"code": ADMIN_ROLE, "name": "Admin", "description": "Full system control", "department": "ADMIN", "is_super_admin": True},
    {"code": UNASSIGNED_ROLE, "name": "Unassigned", "description": "Awaiting role assignment", "department": None},
    {"code": "SALES_HEAD", "name": "Sales Head", "description": "Head of Sales Department", "department": "SALES"},
    {"code": "SALES_BM", "name": "Sales BM", "description": "Business Manager", "department": "SALES"},
    {"code": "SALES_BDM", "name": "Sales BDM", "description": "Business Development Manager", "department": "SALES"},
    {"code": "SALES_BDE", "name": "Sales BDE", "description": "Business Development Executive", "department": "SALES"},
    {"code": "PROD_HEAD", "name": "Product Head", "description": "Head of Product Department", "department": "PRODUCT"},
    {"code": "PROD_PM", "name": "Product Manager", "description": "Product Manager", "department": "PRODUCT"},
    {"code": "PROD_DEV", "name": "Product Developer", "description": "Software Developer", "department": "PRODUCT"},
    {"code": "PROD_TEST", "name": "Product Tester", "description": "QA Tester", "department": "PRODUCT"},
    {"code": "PROD_DESIGNER", "name": "Product Designer", "description": "UI/UX Designer", "department": "PRODUCT"},
    {"code": "PROJ_HEAD", "name": "Project Head", "description": "Head of Project Department", "department": "PROJECT"},
    {"code": "PROJ_PM", "name": "Project Manager", "description": "Project Manager", "department": "PROJECT"},
    {"code": "PROJ_DEV", "name": "Project Developer", "description": "Developer", "department": "PROJECT"},
    {"code": "PROJ_TEST", "name": "Project Tester", "description": "Tester", "department": "PROJECT"},
    {"code": "PROJ_DESIGNER", "name": "Project Designer", "description": "UI/UX Designer", "department": "PROJECT"},
    {"code": "OPS_HEAD", "name": "Operations Head", "description": "Head of Operations", "department": "OPERATION"},
    {"code": "OPS_MGR", "name": "Operation Manager", "description": "Operations Manager", "department": "OPERATION"},
]


def _merge(*parts: Dict[str, Dict[str, str]]) -> Dict[str, Dict[str, str]]:
    merged: Dict[str, Dict[str, str]] = {}
    for part in parts:
        for module, actions in part.items():
            merged.setdefault(module, {}).update(actions)
    return merged


OWN_LEAVES = {"leaves": {"view": OWN, "create": OWN, "edit": OWN, "delete": OWN}}

DEPARTMENT_HEAD = {
    "leads": {"view": DEPARTMENT, "edit": DEPARTMENT, "create": ALL, "assign": ALL, "delete": ALL},
    "tasks": {"view": DEPARTMENT, "create": ALL, "edit": DEPARTMENT, "delete": ALL, "assign": ALL},
    "projects": {"create": ALL, "view": DEPARTMENT, "edit": DEPARTMENT, "delete": ALL},
    "products": {"view": ALL, "create": ALL, "edit": ALL, "delete": ALL},
    "eod": {"view": DEPARTMENT, "create": OWN},
    "attendance": {"view": DEPARTMENT, "create": OWN, "approve": DEPARTMENT},
    "employees": {"view": DEPARTMENT, "edit": DEPARTMENT},
    "reports": {"generate": DEPARTMENT},
    "leaves": {"view": DEPARTMENT, "approve": DEPARTMENT},
}

BUSINESS_MANAGER = {
    "leads": {"view": TEAM, "edit": TEAM, "create": ALL, "assign": ALL},
    "tasks": {"view": TEAM, "create": ALL, "edit": TEAM, "assign": ALL},
    "eod": {"view": TEAM, "create": OWN},
    "attendance": {"view": TEAM, "create": OWN},
    "reports": {"generate": TEAM},
    "employees": {"view": TEAM},
    "leaves": {"view": TEAM, "approve": TEAM},
}

BUSINESS_DEVELOPMENT_MANAGER = _merge(BUSINESS_MANAGER, {
    "attendance": {"approve": TEAM},
    "projects": {"view": DEPARTMENT},
})

PROJECT_MANAGER = {
    "tasks": {"view": DEPARTMENT, "edit": DEPARTMENT, "create": ALL},
    "projects": {"view": DEPARTMENT, "edit": DEPARTMENT},
    "eod": {"view": DEPARTMENT},
    "attendance": {"view": DEPARTMENT},
    "employees": {"view": DEPARTMENT},
    "reports": {"generate": DEPARTMENT},
    "leaves": {"view": DEPARTMENT, "approve": DEPARTMENT},
}

OPERATIONS_MANAGER = {
    "attendance": {"view": DEPARTMENT, "approve": DEPARTMENT},
    "employees": {"view": DEPARTMENT, "manage": ALL},
    "eod": {"view": DEPARTMENT},
    "reports": {"generate": DEPARTMENT},
    "leaves": {"view": ALL, "approve": ALL},
}

INDIVIDUAL_CONTRIBUTOR = {
    "leads": {"view": OWN, "edit": OWN},
    "tasks": {"view": OWN, "edit": OWN},
    "eod": {"view": OWN, "create": OWN},
    "attendance": {"view": OWN, "create": OWN},
    "employees": {"view": OWN},
    "projects": {"view": OWN},
    "reports": {"generate": OWN},
}

# Own-leave rights are layered underneath so a broader leave scope wins for managers.
ROLE_MATRIX: Dict[str, Dict[str, Dict[str, str]]] = {
    UNASSIGNED_ROLE: {},
    "SALES_HEAD": _merge(OWN_LEAVES, DEPARTMENT_HEAD),
    "PROD_HEAD": _merge(OWN_LEAVES, DEPARTMENT_HEAD),
    "PROJ_HEAD": _merge(OWN_LEAVES, DEPARTMENT_HEAD),
    "OPS_HEAD": _merge(OWN_LEAVES, DEPARTMENT_HEAD),
    "SALES_BM": _merge(OWN_LEAVES, BUSINESS_MANAGER),
    "SALES_BDM": _merge(OWN_LEAVES, BUSINESS_DEVELOPMENT_MANAGER),
    "PROD_PM": _merge(OWN_LEAVES, PROJECT_MANAGER),
    "PROJ_PM": _merge(OWN_LEAVES, PROJECT_MANAGER),
    "OPS_MGR": _merge(OWN_LEAVES, OPERATIONS_MANAGER),
    "SALES_BDE": _merge(OWN_LEAVES, INDIVIDUAL_CONTRIBUTOR),
    "PROD_DEV": _merge(OWN_LEAVES, INDIVIDUAL_CONTRIBUTOR),
    "PROD_TEST": _merge(OWN_LEAVES, INDIVIDUAL_CONTRIBUTOR),
    "PROD_DESIGNER": _merge(OWN_LEAVES, INDIVIDUAL_CONTRIBUTOR),
    "PROJ_DEV": _merge(OWN_LEAVES, INDIVIDUAL_CONTRIBUTOR),
    "PROJ_TEST": _merge(OWN_LEAVES, INDIVIDUAL_CONTRIBUTOR),
    "PROJ_DESIGNER": _merge(OWN_LEAVES, INDIVIDUAL_CONTRIBUTOR),
}


def admin_matrix() -> Dict[str, Dict[str, str]]:
    """Every registered capability at its broadest registered scope."""
    matrix: Dict[str, Dict[str, str]] = {}
    for (module, action), scopes in registered_capabilities().items():
        broadest = max(scopes, key=lambda scope: scope.breadth)
        matrix.setdefault(module, {})[action] = broadest.value
    return matrix


def expected_matrix() -> Dict[str, Dict[str, Dict[str, str]]]:
    matrix = {ADMIN_ROLE: admin_matrix()}
    matrix.update(ROLE_MATRIX)
    return matrix
