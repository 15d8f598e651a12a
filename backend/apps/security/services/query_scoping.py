"""
Applies a resolved visibility to ORM querysets.

Every scoped model registers which lookups point at the employees that own a
row and, optionally, at the departments it belongs to. Callers may narrow a
list further (``employee_ids``, ``department_id``), but a narrowing request is
always intersected with what the requester can already see: a request that
falls wholly outside the visible set is ignored rather than honoured.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from django.core.exceptions import ImproperlyConfigured
from django.db import models
from django.db.models import Q

from apps.security.scopes import TargetResource, VisibilityDescriptor, VisibilityKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeFields:
    owner_fields: Tuple[str, ...]
    department_fields: Tuple[str, ...] = ()


_SCOPE_FIELDS: Dict[type, ScopeFields] = {}


def register_scope_fields(model, owner_fields: Iterable[str], department_fields: Iterable[str] = ()):
    owner_fields = tuple(owner_fields)
    if not owner_fields:
        raise ValueError(f"{model.__name__} needs at least one owner field to be scoped.")
    _SCOPE_FIELDS[model] = ScopeFields(owner_fields, tuple(department_fields))


def scope_fields_for(model) -> ScopeFields:
    fields = _SCOPE_FIELDS.get(model)
    if fields is None:
        raise ImproperlyConfigured(f"{model.__name__} has no registered scope fields.")
    return fields


def visibility_filter(fields: ScopeFields, descriptor: VisibilityDescriptor) -> Optional[Q]:
    """``None`` means no restriction. An empty visible set yields a filter that matches nothing."""
    if descriptor.is_unrestricted:
        return None

    conditions = []
    if descriptor.kind == VisibilityKind.DEPARTMENT and fields.department_fields:
        conditions.extend(Q(**{lookup: descriptor.department_id}) for lookup in fields.department_fields)
        # The requester's own rows stay visible even when filed under another department.
        if descriptor.requester_id is not None:
            conditions.extend(Q(**{lookup: descriptor.requester_id}) for lookup in fields.owner_fields)
    else:
        ids = sorted(descriptor.employee_ids)
        conditions.extend(Q(**{f"{lookup}__in": ids}) for lookup in fields.owner_fields)

    combined = Q(pk__in=[])
    for condition in conditions:
        combined |= condition
    return combined


def apply_scope(queryset, descriptor: VisibilityDescriptor, *, employee_ids: Optional[Iterable[int]] = None,
                department_id: Optional[int] = None, recursive: bool = False, hierarchy=None):
    """
    Restrict ``queryset`` to ``descriptor`` and then apply optional narrowing.

    ``employee_ids`` keeps rows owned by those employees (their whole teams when
    ``recursive``). ``department_id`` keeps rows of that department; it is only
    honoured for unrestricted requesters and for the requester's own department.
    """
    fields = scope_fields_for(queryset.model)
    condition = visibility_filter(fields, descriptor)
    if condition is not None:
        queryset = queryset.filter(condition)

    if employee_ids:
        requested = {int(pk) for pk in employee_ids}
        if recursive:
            if hierarchy is None:
                from apps.hr.services.hierarchy import HierarchyIndex

                hierarchy = HierarchyIndex.load()
            expanded = set()
            for pk in requested:
                expanded |= hierarchy.team(pk)
            requested = expanded
        if not descriptor.is_unrestricted:
            requested &= descriptor.employee_ids
        if requested:
            narrowed = Q(pk__in=[])
            for lookup in fields.owner_fields:
                narrowed |= Q(**{f"{lookup}__in": sorted(requested)})
            queryset = queryset.filter(narrowed)
        else:
            logger.info(
                "Ignoring employee filter outside the visible set for requester %s", descriptor.requester_id
            )

    if department_id is not None and fields.department_fields:
        if descriptor.is_unrestricted:
            narrowed = Q(pk__in=[])
            for lookup in fields.department_fields:
                narrowed |= Q(**{lookup: department_id})
            queryset = queryset.filter(narrowed)
        elif descriptor.kind != VisibilityKind.DEPARTMENT or int(department_id) != descriptor.department_id:
            logger.info(
                "Ignoring department filter %s outside the visible set for requester %s",
                department_id,
                descriptor.requester_id,
            )

    return queryset


def target_of(instance) -> TargetResource:
    """Owners and departments of one record, resolved through its registered lookups."""
    fields = scope_fields_for(type(instance))
    owners = {_resolve_lookup(instance, lookup) for lookup in fields.owner_fields}
    departments = {_resolve_lookup(instance, lookup) for lookup in fields.department_fields}
    owners.discard(None)
    departments.discard(None)
    return TargetResource(owner_ids=frozenset(owners), department_ids=frozenset(departments))


def as_target(target) -> Optional[TargetResource]:
    if target is None or isinstance(target, TargetResource):
        return target
    if isinstance(target, models.Model):
        return target_of(target)
    if isinstance(target, int):
        return TargetResource(owner_ids=frozenset({target}))
    raise TypeError(f"Cannot derive an access target from {type(target).__name__}")


def _resolve_lookup(instance, lookup: str):
    parts = lookup.split("__")
    obj = instance
    for part in parts[:-1]:
        obj = getattr(obj, part, None)
        if obj is None:
            return None
    last = parts[-1]
    if last == "pk":
        return obj.pk
    attname = f"{last}_id"
    if hasattr(obj, attname):
        return getattr(obj, attname)
    value = getattr(obj, last, None)
    return value.pk if isinstance(value, models.Model) else value
