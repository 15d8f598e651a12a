from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import generics, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.security.permissions import HasModulePermission

from .models import Permission, Role
from .serializers import PendingUserSerializer, PermissionSerializer, RolePermissionSyncSerializer, RoleSerializer
from .services.catalog import PermissionCatalog

ADMIN_MODULE = "employees"


class PermissionListView(generics.ListAPIView):
    """Every stored (module, action, scope) triple. ``?module=`` filters by module."""

    serializer_class = PermissionSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = ADMIN_MODULE
    permission_actions = {"GET": "manage"}
    pagination_class = None

    def get_queryset(self):
        qs = Permission.objects.all()
        module = self.request.query_params.get("module")
        if module:
            qs = qs.filter(module=module)
        return qs


class RoleViewSet(viewsets.ModelViewSet):
    queryset = Role.objects.select_related("department").order_by("code")
    serializer_class = RoleSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = ADMIN_MODULE
    permission_actions = {
        "create": "manage",
        "update": "manage",
        "partial_update": "manage",
        "destroy": "manage",
        "grants": "view",
        "sync_permissions": "manage",
    }
    scope_objects = False
    http_method_names = ["get", "post", "patch", "head", "options"]

    def perform_update(self, serializer):
        role = serializer.save()
        PermissionCatalog.invalidate_cache(role.pk)

    @action(detail=True, methods=["get"], url_path="permissions")
    def grants(self, request, pk=None):
        role = self.get_object()
        grants = sorted(PermissionCatalog.get_permissions_for_role(role.pk), key=str)
        return Response({
            "role": role.code,
            "permissions": [{"module": g.module, "action": g.action, "scope": g.scope} for g in grants],
        })

    @grants.mapping.post
    def sync_permissions(self, request, pk=None):
        role = self.get_object()
        serializer = RolePermissionSyncSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        grants = PermissionCatalog.sync_role_permissions(
            role.pk, serializer.validated_data["permission_ids"], performed_by=request.user.pk
        )
        return Response({
            "role": role.code,
            "permissions": [
                {"module": g.module, "action": g.action, "scope": g.scope} for g in sorted(grants, key=str)
            ],
        })


class PermissionMatrixView(APIView):
    """``{role_code: {module: {action: scope}}}`` for the active roles."""

    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = ADMIN_MODULE
    permission_actions = {"GET": "manage"}

    def get(self, request):
        codes = request.query_params.get("roles")
        role_codes = [code.strip() for code in codes.split(",") if code.strip()] if codes else None
        return Response(PermissionCatalog.matrix(role_codes))


class PendingUserListView(generics.ListAPIView):
    """
    Logins still waiting for access: no employee profile yet, or a profile
    without a role or on the unassigned role.
    """

    serializer_class = PendingUserSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = ADMIN_MODULE
    permission_actions = {"GET": "manage"}
    pagination_class = None

    def get_queryset(self):
        unassigned = settings.ACCESS_CONTROL.get("UNASSIGNED_ROLE_CODE")
        return (
            get_user_model().objects.filter(is_active=True, is_superuser=False)
            .filter(
                Q(employee_profile__isnull=True)
                | Q(employee_profile__role__isnull=True)
                | Q(employee_profile__role__code=unassigned)
            )
            .select_related("employee_profile")
            .order_by("date_joined", "id")
        )
