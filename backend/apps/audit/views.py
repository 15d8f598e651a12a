from rest_framework import generics, permissions, serializers
from rest_framework.pagination import PageNumberPagination

from apps.security.mixins import ScopedQuerysetMixin
from apps.security.permissions import HasModulePermission

from .models import ActivityLog


class ActivityLogSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source="employee.full_name", read_only=True, default=None)

    class Meta:
        model = ActivityLog
        fields = [
            "id",
            "employee",
            "employee_name",
            "module",
            "action",
            "entity_type",
            "entity_id",
            "entity_name",
            "description",
            "metadata",
            "created_at",
        ]


class ActivityPagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = "limit"
    max_page_size = 200


class ActivityLogListView(ScopedQuerysetMixin, generics.ListAPIView):
    """Activity feed limited by the reports:generate scope. Filters: ``module``, ``entity_id``."""

    queryset = ActivityLog.objects.select_related("employee")
    serializer_class = ActivityLogSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "reports"
    permission_actions = {"GET": "generate"}
    visibility_action = "generate"
    pagination_class = ActivityPagination

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("module"):
            qs = qs.filter(module=params["module"])
        if params.get("entity_id"):
            qs = qs.filter(entity_id=params["entity_id"])
        return qs
