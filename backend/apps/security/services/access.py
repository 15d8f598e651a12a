"""
The single place that decides whether a requester may perform an action.

``authorize`` is side-effect free and returns an ``AccessDecision``;
``require`` and ``resolve_visibility`` raise on denial for callers that
want an exception. Denial reasons are for logs only; the raised
``Forbidden`` always carries the same generic message.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from apps.permissions.services.catalog import PermissionCatalog
from apps.security.exceptions import Forbidden, Unauthenticated
from apps.security.requester import resolve_requester
from apps.security.scopes import Scope, VisibilityDescriptor

from .query_scoping import as_target
from .scope_resolver import resolve_scope

logger = logging.getLogger(__name__)


class DenyReason:
    UNAUTHENTICATED = "unauthenticated"
    NO_EMPLOYEE = "no_employee_profile"
    INACTIVE_EMPLOYEE = "inactive_employee"
    NO_ROLE = "no_role"
    UNASSIGNED_ROLE = "unassigned_role"
    INACTIVE_ROLE = "inactive_role"
    NO_CAPABILITY = "capability_absent"
    OUT_OF_SCOPE = "target_out_of_scope"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    module: str
    action: str
    scope: Optional[Scope] = None
    visibility: Optional[VisibilityDescriptor] = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def deny(cls, module: str, action: str, reason: str, scope: Optional[Scope] = None) -> "AccessDecision":
        return cls(allowed=False, module=module, action=action, scope=scope, reason=reason)

    def as_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "module": self.module,
            "action": self.action,
            "scope": self.scope.value if self.scope else None,
        }


def authorize(requester, module: str, action: str, target=None, *, hierarchy=None) -> AccessDecision:
    """
    Decide whether ``requester`` may perform ``action`` on ``module``.

    ``requester`` may be a ``Requester``, a user or an employee. ``target`` is
    an optional record (model instance, ``TargetResource`` or owner employee
    id) whose owner or department must fall inside the resolved scope.
    """
    context = resolve_requester(requester)
    if context is None:
        return AccessDecision.deny(module, action, DenyReason.UNAUTHENTICATED)

    if context.is_superuser:
        return _allow_everything(context, module, action)
    if context.employee_id is None:
        return AccessDecision.deny(module, action, DenyReason.NO_EMPLOYEE)
    if not context.is_active:
        return AccessDecision.deny(module, action, DenyReason.INACTIVE_EMPLOYEE)
    if context.is_super_admin:
        return _allow_everything(context, module, action)
    if context.role_id is None:
        return AccessDecision.deny(module, action, DenyReason.NO_ROLE)
    if context.is_unassigned:
        return AccessDecision.deny(module, action, DenyReason.UNASSIGNED_ROLE)
    if not context.role_is_active:
        return AccessDecision.deny(module, action, DenyReason.INACTIVE_ROLE)

    scope = PermissionCatalog.scope_for(context.role_id, module, action)
    if scope is None:
        return AccessDecision.deny(module, action, DenyReason.NO_CAPABILITY)

    visibility = resolve_scope(context, scope, hierarchy=hierarchy)
    resource = as_target(target)
    if resource is not None and not visibility.includes(resource):
        return AccessDecision.deny(module, action, DenyReason.OUT_OF_SCOPE, scope=scope)

    return AccessDecision(allowed=True, module=module, action=action, scope=scope, visibility=visibility)


def require(requester, module: str, action: str, target=None, *, hierarchy=None) -> AccessDecision:
    decision = authorize(requester, module, action, target, hierarchy=hierarchy)
    if decision.allowed:
        return decision
    if decision.reason == DenyReason.UNAUTHENTICATED:
        raise Unauthenticated()
    logger.info("Denied %s:%s (%s)", module, action, decision.reason)
    raise Forbidden(decision.reason)


def resolve_visibility(requester, module: str, action: str, *, hierarchy=None) -> VisibilityDescriptor:
    return require(requester, module, action, hierarchy=hierarchy).visibility


def _allow_everything(context, module: str, action: str) -> AccessDecision:
    return AccessDecision(
        allowed=True,
        module=module,
        action=action,
        scope=Scope.ALL,
        visibility=VisibilityDescriptor.unrestricted(context.employee_id),
    )
