from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.conf import settings

REQUEST_CACHE_ATTR = "_requester_cache"


@dataclass(frozen=True)
class Requester:
    """The identity an access decision is made for: who, where, and under which role."""
    user_id: Optional[int]
    employee_id: Optional[int]
    department_id: Optional[int] = None
    role_id: Optional[int] = None
    role_code: Optional[str] = None
    role_is_active: bool = False
    role_is_super_admin: bool = False
    is_superuser: bool = False
    is_active: bool = True

    @property
    def is_super_admin(self) -> bool:
        if self.is_superuser:
            return True
        if self.role_id is None or not self.role_is_active:
            return False
        return self.role_is_super_admin or self.role_code in settings.ACCESS_CONTROL.get('SUPER_ADMIN_ROLE_CODES', ())

    @property
    def is_unassigned(self) -> bool:
        return self.role_id is None or self.role_code == settings.ACCESS_CONTROL.get('UNASSIGNED_ROLE_CODE')

    @classmethod
    def from_employee(cls, employee, user=None) -> "Requester":
        role = employee.role
        user = user if user is not None else employee.user
        return cls(
            user_id=getattr(user, 'pk', None),
            employee_id=employee.pk,
            department_id=employee.department_id,
            role_id=getattr(role, 'pk', None),
            role_code=getattr(role, 'code', None),
            role_is_active=bool(getattr(role, 'is_active', False)),
            role_is_super_admin=bool(getattr(role, 'is_super_admin', False)),
            is_superuser=_is_platform_admin(user),
            is_active=employee.is_active,
        )

    @classmethod
    def from_user(cls, user) -> Optional["Requester"]:
        """``None`` when there is no authenticated user."""
        if user is None or not getattr(user, 'is_authenticated', False):
            return None
        from apps.hr.models import Employee

        employee = Employee.objects.select_related('role').filter(user_id=user.pk).first()
        if employee is None:
            return cls(user_id=user.pk, employee_id=None, is_superuser=_is_platform_admin(user))
        return cls.from_employee(employee, user=user)


def _is_platform_admin(user) -> bool:
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    return bool(getattr(user, 'is_superuser', False) or getattr(user, 'is_system_admin', False))


def resolve_requester(subject) -> Optional[Requester]:
    """Accepts a ``Requester``, a user, or an ``hr.Employee``."""
    if subject is None or isinstance(subject, Requester):
        return subject
    from apps.hr.models import Employee

    if isinstance(subject, Employee):
        return Requester.from_employee(subject)
    return Requester.from_user(subject)


def get_requester(request) -> Optional[Requester]:
    """Resolve the requester once per request and authenticated user."""
    user = getattr(request, 'user', None)
    user_key = getattr(user, 'pk', None) if getattr(user, 'is_authenticated', False) else None
    cached = getattr(request, REQUEST_CACHE_ATTR, None)
    if cached is not None and cached[0] == user_key:
        return cached[1]
    requester = Requester.from_user(user)
    setattr(request, REQUEST_CACHE_ATTR, (user_key, requester))
    return requester
