from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from django.db import models


class Scope(models.TextChoices):
    OWN = "own", "Own records"
    TEAM = "team", "Own and all reports (recursive)"
    DEPARTMENT = "department", "Whole department"
    ALL = "all", "Everything"

    @classmethod
    def parse(cls, value) -> Optional["Scope"]:
        """Map stored text to a scope; ``None`` for anything unrecognised."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        value = LEGACY_SCOPE_ALIASES.get(value.strip().lower(), value.strip().lower())
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def breadth(self) -> int:
        return SCOPE_BREADTH[self]


# "assigned" was used for projects; it means the records the employee is named on.
LEGACY_SCOPE_ALIASES = {"assigned": Scope.OWN.value}

SCOPE_BREADTH = {
    Scope.OWN: 0,
    Scope.TEAM: 1,
    Scope.DEPARTMENT: 2,
    Scope.ALL: 3,
}


def narrowest(scopes: Iterable[Scope]) -> Optional[Scope]:
    scopes = list(scopes)
    if not scopes:
        return None
    return min(scopes, key=lambda scope: scope.breadth)


class VisibilityKind(models.TextChoices):
    UNRESTRICTED = "unrestricted", "Unrestricted"
    EMPLOYEES = "employees", "Employee set"
    DEPARTMENT = "department", "Department"


@dataclass(frozen=True)
class TargetResource:
    """Who a single record belongs to, for own-record checks."""
    owner_ids: FrozenSet[int] = field(default_factory=frozenset)
    department_ids: FrozenSet[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class VisibilityDescriptor:
    """
    Resolved form of a scope.

    ``EMPLOYEES`` carries the visible employee ids. ``DEPARTMENT`` carries the
    department id plus its members, so records without a department column can
    still be matched by owner. ``UNRESTRICTED`` matches everything.
    """
    kind: str
    scope: Optional[Scope] = None
    requester_id: Optional[int] = None
    employee_ids: FrozenSet[int] = field(default_factory=frozenset)
    department_id: Optional[int] = None

    @classmethod
    def unrestricted(cls, requester_id: Optional[int] = None, scope: Optional[Scope] = Scope.ALL) -> "VisibilityDescriptor":
        return cls(kind=VisibilityKind.UNRESTRICTED, scope=scope, requester_id=requester_id)

    @classmethod
    def for_employees(cls, employee_ids: Iterable[int], requester_id: Optional[int] = None,
                      scope: Optional[Scope] = None) -> "VisibilityDescriptor":
        return cls(
            kind=VisibilityKind.EMPLOYEES,
            scope=scope,
            requester_id=requester_id,
            employee_ids=frozenset(employee_ids),
        )

    @classmethod
    def for_department(cls, department_id: Optional[int], members: Iterable[int],
                       requester_id: Optional[int] = None) -> "VisibilityDescriptor":
        return cls(
            kind=VisibilityKind.DEPARTMENT,
            scope=Scope.DEPARTMENT,
            requester_id=requester_id,
            employee_ids=frozenset(members),
            department_id=department_id,
        )

    @property
    def is_unrestricted(self) -> bool:
        return self.kind == VisibilityKind.UNRESTRICTED

    def includes_employee(self, employee_id: Optional[int]) -> bool:
        if self.is_unrestricted:
            return True
        return employee_id is not None and employee_id in self.employee_ids

    def includes(self, target: TargetResource) -> bool:
        if self.is_unrestricted:
            return True
        if self.kind == VisibilityKind.DEPARTMENT and target.department_ids:
            # Same rule as the queryset filter: the record's department decides, plus the requester's own rows.
            return self.department_id in target.department_ids or self.requester_id in target.owner_ids
        return bool(self.employee_ids & target.owner_ids)

    def as_dict(self) -> dict:
        return {
            "kind": str(self.kind),
            "scope": self.scope.value if self.scope else None,
            "requester_id": self.requester_id,
            "employee_ids": sorted(self.employee_ids),
            "department_id": self.department_id,
        }
