from rest_framework import permissions, viewsets

from apps.audit.utils import log_activity
from apps.security.mixins import ScopedQuerysetMixin
from apps.security.permissions import HasModulePermission
from apps.security.requester import get_requester
from apps.security.scopes import TargetResource
from apps.security.services.access import require

from .models import Project
from .serializers import ProjectSerializer


class ProjectViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
    """Projects an employee is named on, widened by the projects:view scope."""

    queryset = Project.objects.select_related("lead", "relationship_manager", "project_manager", "department")
    serializer_class = ProjectSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "projects"
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    SCOPED_FIELDS = ("relationship_manager", "project_manager", "department")

    def get_queryset(self):
        qs = super().get_queryset()
        project_status = self.request.query_params.get("status")
        if project_status:
            qs = qs.filter(status=project_status)
        return qs

    def _check_lead(self, data, instance=None):
        lead = data.get("lead")
        if lead is None or (instance is not None and instance.lead_id == lead.pk):
            return
        require(get_requester(self.request), "leads", "view", target=lead, hierarchy=self.get_hierarchy())

    def perform_create(self, serializer):
        self._check_lead(serializer.validated_data)
        requester_employee = self.get_requester_employee()
        department = serializer.validated_data.get("department") or getattr(requester_employee, "department", None)
        project = serializer.save(created_by=self.request.user, department=department)
        log_activity(self.request, "projects", "created", entity=project, description=f"Project created: {project.name}")

    def perform_update(self, serializer):
        data = serializer.validated_data
        instance = serializer.instance
        self._check_lead(data, instance)

        # The edit scope must still cover the project once it is moved.
        if any(field in data and data[field] != getattr(instance, field) for field in self.SCOPED_FIELDS):
            owners = {
                getattr(data.get(field, getattr(instance, field)), "pk", None)
                for field in ("relationship_manager", "project_manager")
            }
            department = data.get("department", instance.department)
            owners.discard(None)
            target = TargetResource(
                owner_ids=frozenset(owners),
                department_ids=frozenset({department.pk}) if department is not None else frozenset(),
            )
            require(get_requester(self.request), "projects", "edit", target=target, hierarchy=self.get_hierarchy())

        project = serializer.save()
        log_activity(self.request, "projects", "updated", entity=project)

    def perform_destroy(self, instance):
        log_activity(self.request, "projects", "deleted", entity=instance, description=f"Project deleted: {instance.name}")
        instance.delete()
