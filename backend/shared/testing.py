"""Factories shared by the app test suites."""
from itertools import count

from django.contrib.auth import get_user_model
from django.core.cache import cache

_sequence = count(1)


def make_department(code, name=None):
    from apps.hr.models import Department

    return Department.objects.create(code=code, name=name or code.title())


def make_role(code, grants=None, **extra):
    """``grants`` is ``{module: {action: scope}}``, stored through the catalog."""
    from apps.permissions.models import Role
    from apps.permissions.services.catalog import PermissionCatalog

    role = Role.objects.create(code=code, name=extra.pop("name", code.title()), **extra)
    for module, actions in (grants or {}).items():
        for action, scope in actions.items():
            PermissionCatalog.assign_scope(role, module, action, scope)
    return role


def make_employee(department, role=None, manager=None, *, login=True, **fields):
    from apps.hr.models import Employee

    number = next(_sequence)
    user = None
    if login:
        user = get_user_model().objects.create_user(
            username=f"user{number}", password="test-pass-123", email=f"user{number}@example.com"
        )
    fields.setdefault("first_name", f"Employee{number}")
    return Employee.objects.create(
        employee_id=f"EMP{number:04d}",
        email=f"employee{number}@example.com",
        department=department,
        role=role,
        manager=manager,
        user=user,
        **fields,
    )


class AccessFixtureMixin:
    """Clears cached role grants so ids reused between tests never see stale rows."""

    def setUp(self):
        super().setUp()
        cache.clear()
