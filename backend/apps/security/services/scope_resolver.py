from __future__ import annotations

import logging

from apps.security.requester import Requester
from apps.security.scopes import Scope, VisibilityDescriptor

logger = logging.getLogger(__name__)


def resolve_scope(requester: Requester, scope, hierarchy=None) -> VisibilityDescriptor:
    """
    Turn a scope into the concrete set of records the requester may see.

    own        -> the requester
    team       -> the requester and everyone below them, at any depth
    department -> everyone whose department is the requester's department
    all        -> unrestricted

    Anything else resolves as ``own``.
    """
    parsed = Scope.parse(scope)
    if parsed is None:
        logger.warning("Unknown scope %r for employee %s; falling back to own", scope, requester.employee_id)
        parsed = Scope.OWN

    if parsed == Scope.ALL:
        return VisibilityDescriptor.unrestricted(requester.employee_id)

    if requester.employee_id is None:
        # Nothing can be owned without an employee record.
        return VisibilityDescriptor.for_employees((), requester_id=None, scope=parsed)

    if parsed == Scope.TEAM:
        hierarchy = hierarchy or _load_hierarchy()
        return VisibilityDescriptor.for_employees(
            hierarchy.team(requester.employee_id),
            requester_id=requester.employee_id,
            scope=Scope.TEAM,
        )

    if parsed == Scope.DEPARTMENT:
        if requester.department_id is None:
            logger.warning("Employee %s has no department; department scope falls back to own", requester.employee_id)
            return _own(requester)
        hierarchy = hierarchy or _load_hierarchy()
        members = hierarchy.department_members(requester.department_id) | {requester.employee_id}
        return VisibilityDescriptor.for_department(requester.department_id, members, requester_id=requester.employee_id)

    return _own(requester)


def _own(requester: Requester) -> VisibilityDescriptor:
    return VisibilityDescriptor.for_employees({requester.employee_id}, requester_id=requester.employee_id, scope=Scope.OWN)


def _load_hierarchy():
    from apps.hr.services.hierarchy import HierarchyIndex

    return HierarchyIndex.load()

