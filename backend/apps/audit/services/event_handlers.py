"""
Turns access-control events into audit rows.

The services that detect a fault or apply a change only publish on the event
bus; this module is the one place that records them.
"""
import logging

from django.contrib.auth import get_user_model

from shared.event_bus import (
    HIERARCHY_INTEGRITY_FAULT,
    MANAGER_CHANGED,
    PERMISSION_SCOPE_CONFLICT,
    ROLE_PERMISSIONS_CHANGED,
    event_bus,
)

from ..utils import log_audit_event

logger = logging.getLogger(__name__)


def _user(user_id):
    if user_id is None:
        return None
    return get_user_model().objects.filter(pk=user_id).first()


class AuditEventHandlers:

    @staticmethod
    def handle_hierarchy_fault(sender, employee_id=None, manager_id=None, **kwargs):
        try:
            log_audit_event(
                user=None,
                action='INTEGRITY_FAULT',
                entity_type='Employee',
                entity_id=employee_id,
                description=f"Manager cycle: employee {employee_id} reports to {manager_id} inside their own subtree",
                after={'employee_id': employee_id, 'manager_id': manager_id},
            )
        except Exception as e:
            logger.exception(f"Error recording hierarchy fault for employee {employee_id}: {e}")

    @staticmethod
    def handle_scope_conflict(sender, role_id=None, module='', action='', scopes=(), **kwargs):
        try:
            log_audit_event(
                user=None,
                action='INTEGRITY_FAULT',
                entity_type='Role',
                entity_id=role_id,
                description=f"Role holds {len(scopes)} scopes for {module}:{action}; narrowest applied",
                after={'module': module, 'action': action, 'scopes': list(scopes)},
            )
        except Exception as e:
            logger.exception(f"Error recording scope conflict for role {role_id}: {e}")

    @staticmethod
    def handle_role_permissions_changed(sender, role_id=None, role_code='', before=None, after=None,
                                        performed_by=None, **kwargs):
        try:
            log_audit_event(
                user=_user(performed_by),
                action='PERMISSION_CHANGE',
                entity_type='Role',
                entity_id=role_id,
                description=f"Permissions of role {role_code} changed",
                before=before,
                after=after,
            )
        except Exception as e:
            logger.exception(f"Error recording permission change for role {role_id}: {e}")

    @staticmethod
    def handle_manager_changed(sender, employee_id=None, previous_manager_id=None, manager_id=None,
                               performed_by=None, **kwargs):
        try:
            log_audit_event(
                user=_user(performed_by),
                action='HIERARCHY_CHANGE',
                entity_type='Employee',
                entity_id=employee_id,
                description=f"Manager changed from {previous_manager_id} to {manager_id}",
                before={'manager_id': previous_manager_id},
                after={'manager_id': manager_id},
            )
        except Exception as e:
            logger.exception(f"Error recording manager change for employee {employee_id}: {e}")

    @classmethod
    def register_handlers(cls):
        """
        Registers all event handlers with the event bus.
        Call this during Django app initialization (in AppConfig.ready()).
        """
        event_bus.subscribe(HIERARCHY_INTEGRITY_FAULT, cls.handle_hierarchy_fault)
        event_bus.subscribe(PERMISSION_SCOPE_CONFLICT, cls.handle_scope_conflict)
        event_bus.subscribe(ROLE_PERMISSIONS_CHANGED, cls.handle_role_permissions_changed)
        event_bus.subscribe(MANAGER_CHANGED, cls.handle_manager_changed)

        logger.info("Audit handlers registered with event bus")
