from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from rest_framework.exceptions import ValidationError

from apps.security.exceptions import NotFound, ScopeConflictError
from apps.security.scopes import Scope, narrowest
from shared.event_bus import PERMISSION_SCOPE_CONFLICT, ROLE_PERMISSIONS_CHANGED, event_bus

from ..models import Permission, Role, RolePermission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Grant:
    module: str
    action: str
    scope: str

    def __str__(self) -> str:
        return f"{self.module}:{self.action}:{self.scope}"


@dataclass(frozen=True)
class Discrepancy:
    MISSING_ROLE = "MISSING_ROLE"
    MISSING = "MISSING"
    WRONG = "WRONG"
    CONFLICT = "CONFLICT"
    EXTRA = "EXTRA"

    kind: str
    role_code: str
    module: str = ""
    action: str = ""
    expected: Optional[str] = None
    actual: tuple = ()

    def __str__(self) -> str:
        if self.kind == self.MISSING_ROLE:
            return f"{self.role_code}: role does not exist"
        found = ", ".join(self.actual) or "nothing"
        return f"{self.role_code} {self.module}:{self.action}: {self.kind} (expected {self.expected or '-'}, found {found})"


class PermissionCatalog:
    """
    Source of truth for which (module, action, scope) triples a role holds.

    Reads are cached per role for ``ACCESS_CONTROL['PERMISSION_CACHE_TIMEOUT']``
    seconds. Every write path clears the affected role's entry, so the TTL only
    bounds staleness for caches not shared with the writing process.
    """

    CACHE_PREFIX = 'role_grants'

    @classmethod
    def cache_timeout(cls) -> int:
        return settings.ACCESS_CONTROL.get('PERMISSION_CACHE_TIMEOUT', 60)

    @classmethod
    def get_cache_key(cls, role_id: int) -> str:
        return f"{cls.CACHE_PREFIX}:{role_id}"

    @classmethod
    def invalidate_cache(cls, role_id: Optional[int] = None):
        if role_id is None:
            cache.delete_many([cls.get_cache_key(pk) for pk in Role.objects.values_list('pk', flat=True)])
            return
        cache.delete(cls.get_cache_key(role_id))

    # Reads

    @classmethod
    def get_permissions_for_role(cls, role_id: Optional[int]) -> FrozenSet[Grant]:
        if role_id is None:
            return frozenset()
        cache_key = cls.get_cache_key(role_id)
        rows = cache.get(cache_key)
        if rows is None:
            rows = list(
                RolePermission.objects.filter(role_id=role_id).values_list(
                    'permission__module', 'permission__action', 'permission__scope_type'
                )
            )
            cache.set(cache_key, rows, cls.cache_timeout())
        return frozenset(Grant(module, action, scope) for module, action, scope in rows)

    @classmethod
    def role_has_capability(cls, role_id: Optional[int], module: str, action: str) -> bool:
        return any(g.module == module and g.action == action for g in cls.get_permissions_for_role(role_id))

    @classmethod
    def scope_for(cls, role_id: Optional[int], module: str, action: str) -> Optional[Scope]:
        """
        The scope a role holds for (module, action), or ``None`` without the capability.

        Several stored scopes for one pair is a data fault: it is reported and the
        narrowest scope is used. Unrecognised scope text resolves to ``own``.
        """
        stored = sorted(
            g.scope for g in cls.get_permissions_for_role(role_id) if g.module == module and g.action == action
        )
        if not stored:
            return None

        scopes = []
        for value in stored:
            scope = Scope.parse(value)
            if scope is None:
                logger.warning("Role %s holds unknown scope %r for %s:%s; using own", role_id, value, module, action)
                scope = Scope.OWN
            scopes.append(scope)

        if len(stored) > 1:
            cls._report_conflict(role_id, module, action, stored)
        return narrowest(scopes)

    @classmethod
    def matrix(cls, role_codes: Optional[Iterable[str]] = None) -> Dict[str, Dict[str, Dict[str, str]]]:
        """``{role_code: {module: {action: scope}}}`` for active roles."""
        roles = Role.objects.filter(is_active=True)
        if role_codes is not None:
            roles = roles.filter(code__in=list(role_codes))
        result: Dict[str, Dict[str, Dict[str, str]]] = {code: {} for code in roles.values_list('code', flat=True)}
        for code, module, action, scope in cls._stored_rows(roles):
            actions = result[code].setdefault(module, {})
            if action in actions:
                current = Scope.parse(actions[action]) or Scope.OWN
                actions[action] = narrowest([current, Scope.parse(scope) or Scope.OWN]).value
            else:
                actions[action] = scope
        return result

    @classmethod
    def audit(cls, expected: Dict[str, Dict[str, Dict[str, str]]],
              role_codes: Optional[Iterable[str]] = None) -> List[Discrepancy]:
        """Compare stored grants with an expected matrix."""
        codes = set(role_codes) if role_codes is not None else set(expected)
        existing = set(Role.objects.filter(code__in=codes).values_list('code', flat=True))

        stored: Dict[tuple, List[str]] = defaultdict(list)
        for code, module, action, scope in cls._stored_rows(Role.objects.filter(code__in=existing)):
            stored[(code, module, action)].append(scope)

        discrepancies: List[Discrepancy] = []
        for code in sorted(codes):
            if code not in existing:
                discrepancies.append(Discrepancy(Discrepancy.MISSING_ROLE, code))
                continue
            wanted = {
                (module, action): scope
                for module, actions in expected.get(code, {}).items()
                for action, scope in actions.items()
            }
            held = {(m, a): sorted(s) for (c, m, a), s in stored.items() if c == code}
            for (module, action), scope in sorted(wanted.items()):
                actual = tuple(held.get((module, action), ()))
                if not actual:
                    kind = Discrepancy.MISSING
                elif len(actual) > 1:
                    kind = Discrepancy.CONFLICT
                elif actual[0] != scope:
                    kind = Discrepancy.WRONG
                else:
                    continue
                discrepancies.append(Discrepancy(kind, code, module, action, scope, actual))
            for (module, action), actual in sorted(held.items()):
                if (module, action) in wanted:
                    continue
                kind = Discrepancy.CONFLICT if len(actual) > 1 else Discrepancy.EXTRA
                discrepancies.append(Discrepancy(kind, code, module, action, None, tuple(actual)))
        return discrepancies

    @staticmethod
    def _stored_rows(roles):
        return RolePermission.objects.filter(role__in=roles).values_list(
            'role__code', 'permission__module', 'permission__action', 'permission__scope_type'
        ).order_by('role__code', 'permission__module', 'permission__action')

    # Writes

    @classmethod
    @transaction.atomic
    def assign_scope(cls, role: Role, module: str, action: str, scope, *, performed_by=None) -> RolePermission:
        """Give ``role`` exactly one scope for (module, action), replacing any other."""
        parsed = Scope.parse(scope)
        if parsed is None:
            raise ValidationError({'scope': f"Unknown scope '{scope}'."})

        role = cls._lock_role(role.pk)
        permission, _ = Permission.objects.get_or_create(
            module=module,
            action=action,
            scope_type=parsed.value,
            defaults={'description': f"{action.title()} {module} ({parsed.label.lower()})"},
        )
        current = RolePermission.objects.filter(role=role, permission__module=module, permission__action=action)
        before = sorted(current.values_list('permission__scope_type', flat=True))
        if before == [parsed.value]:
            return current.get()

        current.exclude(permission=permission).delete()
        link, _ = RolePermission.objects.get_or_create(role=role, permission=permission)
        logger.info("Role %s %s:%s scope %s -> %s", role.code, module, action, before or None, parsed.value)
        cls._after_write(role, performed_by, before=[f"{module}:{action}:{s}" for s in before],
                         after=[permission.code])
        return link

    @classmethod
    @transaction.atomic
    def revoke(cls, role: Role, module: str, action: str, *, performed_by=None) -> int:
        role = cls._lock_role(role.pk)
        current = RolePermission.objects.filter(role=role, permission__module=module, permission__action=action)
        before = sorted(current.values_list('permission__scope_type', flat=True))
        deleted, _ = current.delete()
        if deleted:
            logger.info("Role %s lost %s:%s (%s)", role.code, module, action, ", ".join(before))
            cls._after_write(role, performed_by, before=[f"{module}:{action}:{s}" for s in before], after=[])
        return deleted

    @classmethod
    @transaction.atomic
    def sync_role_permissions(cls, role_id: int, permission_ids: Iterable[int], *, performed_by=None) -> FrozenSet[Grant]:
        """
        Replace a role's grants with ``permission_ids``.

        All or nothing: an unknown id or two ids sharing a (module, action)
        rejects the whole payload. Applying the same payload twice is a no-op.
        """
        role = cls._lock_role(role_id)
        wanted_ids = {int(pk) for pk in permission_ids}
        permissions = list(Permission.objects.filter(pk__in=wanted_ids))

        unknown = wanted_ids - {p.pk for p in permissions}
        if unknown:
            raise NotFound(f"Unknown permission ids: {', '.join(str(pk) for pk in sorted(unknown))}.")

        seen: Dict[tuple, Permission] = {}
        for permission in permissions:
            key = (permission.module, permission.action)
            if key in seen:
                raise ScopeConflictError(
                    f"A role can hold only one scope per module and action: "
                    f"{seen[key].code} and {permission.code} both given."
                )
            seen[key] = permission

        current = RolePermission.objects.filter(role=role)
        current_ids = set(current.values_list('permission_id', flat=True))
        if current_ids == wanted_ids:
            return cls.get_permissions_for_role(role.pk)

        before = sorted(current.values_list('permission__module', 'permission__action', 'permission__scope_type'))
        current.delete()
        RolePermission.objects.bulk_create([
            RolePermission(role=role, permission=p, module=p.module, action=p.action) for p in permissions
        ])
        logger.info("Synced role %s to %d permissions", role.code, len(permissions))
        cls._after_write(role, performed_by, before=[":".join(row) for row in before],
                         after=sorted(p.code for p in permissions))
        return cls.get_permissions_for_role(role.pk)

    @classmethod
    def apply(cls, discrepancies: Iterable[Discrepancy], *, prune: bool = False, performed_by=None) -> int:
        """Repair audit findings. EXTRA grants are only removed with ``prune``."""
        roles = {}
        fixed = 0
        for item in discrepancies:
            if item.kind == Discrepancy.MISSING_ROLE:
                continue
            role = roles.get(item.role_code) or Role.objects.get(code=item.role_code)
            roles[item.role_code] = role
            if item.expected:
                cls.assign_scope(role, item.module, item.action, item.expected, performed_by=performed_by)
            elif item.kind == Discrepancy.CONFLICT:
                keep = narrowest(filter(None, (Scope.parse(s) for s in item.actual))) or Scope.OWN
                cls.assign_scope(role, item.module, item.action, keep, performed_by=performed_by)
            elif prune:
                cls.revoke(role, item.module, item.action, performed_by=performed_by)
            else:
                continue
            fixed += 1
        return fixed

    @staticmethod
    def _lock_role(role_id) -> Role:
        role = Role.objects.select_for_update().filter(pk=role_id).first()
        if role is None:
            raise NotFound("Role not found.")
        return role

    @classmethod
    def _after_write(cls, role: Role, performed_by, *, before, after):
        cls.invalidate_cache(role.pk)
        transaction.on_commit(lambda: cls.invalidate_cache(role.pk))
        transaction.on_commit(
            lambda: event_bus.publish(
                ROLE_PERMISSIONS_CHANGED,
                role_id=role.pk,
                role_code=role.code,
                before=before,
                after=after,
                performed_by=performed_by,
            )
        )

    @classmethod
    def _report_conflict(cls, role_id, module, action, scopes):
        logger.error("Role %s holds %d scopes for %s:%s: %s", role_id, len(scopes), module, action, ", ".join(scopes))
        try:
            event_bus.publish_once(
                PERMISSION_SCOPE_CONFLICT,
                f"{role_id}:{module}:{action}",
                role_id=role_id,
                module=module,
                action=action,
                scopes=list(scopes),
            )
        except Exception:
            logger.exception("Could not report scope conflict for role %s", role_id)
