from django.utils import timezone
from rest_framework import permissions, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.audit.utils import log_activity
from apps.security.mixins import ScopedQuerysetMixin, parse_id_list
from apps.security.permissions import HasModulePermission
from apps.security.requester import get_requester
from apps.security.services.access import require

from .models import Task, TaskStatus
from .serializers import TaskAssignSerializer, TaskSerializer, TaskStatusUpdateSerializer


class TaskViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
    """
    Tasks visible through the tasks:view scope; a task is owned by both its
    assignee and its creator.
    """

    queryset = Task.objects.select_related("assignee", "creator", "lead", "project")
    serializer_class = TaskSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "tasks"
    permission_actions = {
        "mine": "view",
        "update_status": "edit",
        "assign": "assign",
    }
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        for param in ("lead", "project"):
            if params.get(param):
                ids = parse_id_list(params[param])
                if not ids:
                    raise ValidationError({param: "Expected one or more numeric ids."})
                qs = qs.filter(**{f"{param}_id__in": ids})
        return qs

    def _check_links(self, data):
        requester = get_requester(self.request)
        hierarchy = self.get_hierarchy()
        if data.get("lead") is not None:
            require(requester, "leads", "view", target=data["lead"], hierarchy=hierarchy)
        if data.get("project") is not None:
            require(requester, "projects", "view", target=data["project"], hierarchy=hierarchy)

    def perform_create(self, serializer):
        requester = get_requester(self.request)
        creator = self.get_requester_employee()
        assignee = serializer.validated_data.get("assignee") or creator
        if assignee is None:
            raise ValidationError({"assignee": "An assignee is required."})
        if creator is None or assignee.pk != creator.pk:
            require(requester, "tasks", "assign", hierarchy=self.get_hierarchy())
        self._check_links(serializer.validated_data)

        task = serializer.save(assignee=assignee, creator=creator, created_by=self.request.user)
        log_activity(self.request, "tasks", "created", entity=task, description=f"Task created: {task.title}")

    def perform_update(self, serializer):
        data = serializer.validated_data
        if "assignee" in data and data["assignee"] != serializer.instance.assignee:
            require(get_requester(self.request), "tasks", "assign", hierarchy=self.get_hierarchy())
        self._check_links(data)
        if data.get("status") == TaskStatus.COMPLETED and serializer.instance.status != TaskStatus.COMPLETED:
            data["completed_at"] = timezone.now()
        task = serializer.save()
        log_activity(self.request, "tasks", "updated", entity=task)

    def perform_destroy(self, instance):
        log_activity(self.request, "tasks", "deleted", entity=instance, description=f"Task deleted: {instance.title}")
        instance.delete()

    @action(detail=False, methods=["get"])
    def mine(self, request):
        """Tasks assigned to the requester."""
        requester = get_requester(request)
        qs = self.get_queryset().filter(assignee_id=getattr(requester, "employee_id", None))
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        task = self.get_object()
        serializer = TaskStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]
        if new_status == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED:
            task.completed_at = timezone.now()
        task.status = new_status
        task.save(update_fields=["status", "completed_at", "updated_at"])
        log_activity(request, "tasks", "status_changed", entity=task, description=f"Task status set to {new_status}")
        return Response(self.get_serializer(task).data)

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        task = self.get_object()
        serializer = TaskAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task.assignee = serializer.validated_data["assignee"]
        task.save(update_fields=["assignee", "updated_at"])
        log_activity(request, "tasks", "assigned", entity=task, description=f"Task assigned to {task.assignee.full_name}")
        return Response(self.get_serializer(task).data)
