import logging

from rest_framework.permissions import BasePermission

from apps.hr.services.hierarchy import HierarchyIndex
from apps.security.requester import get_requester
from apps.security.services.access import authorize

logger = logging.getLogger(__name__)

DEFAULT_ACTION_MAP = {
    'list': 'view',
    'retrieve': 'view',
    'create': 'create',
    'update': 'edit',
    'partial_update': 'edit',
    'destroy': 'delete',
}


class HasModulePermission(BasePermission):
    """
    DRF permission backed by the role/scope catalog.

    The view declares the module it belongs to and, for anything beyond the
    standard viewset actions, which catalog action each view action needs:

        class LeadViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
            permission_classes = [IsAuthenticated, HasModulePermission]
            permission_module = 'leads'
            permission_actions = {'assign': 'assign'}

    Plain APIViews map HTTP methods instead (``permission_actions = {'GET': 'view'}``).
    Object-level checks require the record to fall inside the resolved scope.
    Views over unowned reference data set ``scope_objects = False``.
    """

    def has_permission(self, request, view):
        required = self._required(request, view)
        if required is None:
            # Deny views that do not say which capability they need.
            return False
        module, action = required
        decision = authorize(get_requester(request), module, action, hierarchy=HierarchyIndex.for_request(request))
        request.access_decision = decision
        if not decision.allowed:
            logger.info("Denied %s %s -> %s:%s (%s)", request.method, request.path, module, action, decision.reason)
        return decision.allowed

    def has_object_permission(self, request, view, obj):
        required = self._required(request, view)
        if required is None:
            return False
        module, action = required
        target = obj if getattr(view, 'scope_objects', True) else None
        decision = authorize(
            get_requester(request), module, action, target=target, hierarchy=HierarchyIndex.for_request(request)
        )
        if not decision.allowed:
            logger.info("Denied %s on %s #%s (%s)", action, module, getattr(obj, 'pk', None), decision.reason)
        return decision.allowed

    @staticmethod
    def _required(request, view):
        module = getattr(view, 'permission_module', None)
        if not module:
            return None
        actions = getattr(view, 'permission_actions', None) or {}
        view_action = getattr(view, 'action', None)
        if view_action is not None:
            action = actions.get(view_action) or DEFAULT_ACTION_MAP.get(view_action)
        else:
            action = actions.get(request.method)
        if not action:
            return None
        return module, action
