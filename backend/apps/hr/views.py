import logging

from django.db import transaction
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.audit.utils import log_activity
from apps.security.exceptions import NotFound
from apps.security.mixins import ScopedQuerysetMixin
from apps.security.permissions import HasModulePermission
from apps.security.requester import get_requester
from apps.security.services.access import require

from .models import ApprovalStatus, Attendance, Department, Employee, EodReport, LeaveRequest
from .serializers import (
    AttendanceSerializer,
    DepartmentSerializer,
    EmployeeSerializer,
    EodReportSerializer,
    LeaveDecisionSerializer,
    LeaveRequestSerializer,
    ManagerChangeSerializer,
)
from .services.hierarchy import HierarchyIndex, change_manager

logger = logging.getLogger(__name__)


class DepartmentViewSet(viewsets.ModelViewSet):
    """Departments are reference data: readable with employees:view, writable with employees:manage."""

    queryset = Department.objects.all().order_by("code")
    serializer_class = DepartmentSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "employees"
    permission_actions = {
        "create": "manage",
        "update": "manage",
        "partial_update": "manage",
        "destroy": "manage",
    }
    scope_objects = False

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])


class EmployeeViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
    """
    Employee directory limited to the requester's employees scope.

    Profile fields can be edited within the edit scope. Anything that moves an
    employee to another scope (department, manager, role, linked user, active
    flag) additionally needs employees:manage.
    """

    queryset = Employee.objects.select_related("department", "role", "manager")
    serializer_class = EmployeeSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "employees"
    permission_actions = {
        "create": "manage",
        "destroy": "manage",
        "set_manager": "manage",
    }

    def perform_create(self, serializer):
        employee = serializer.save()
        log_activity(self.request, "employees", "created", entity=employee, description=employee.full_name)

    def perform_update(self, serializer):
        changes = serializer.validated_data
        privileged = [
            field
            for field in serializer.PRIVILEGED_FIELDS
            if field in changes and changes[field] != getattr(serializer.instance, field)
        ]
        if privileged:
            require(get_requester(self.request), "employees", "manage", hierarchy=self.get_hierarchy())

        manager_given = "manager" in serializer.validated_data
        manager = serializer.validated_data.pop("manager", None)
        with transaction.atomic():
            employee = serializer.save()
            if manager_given:
                change_manager(employee, manager, performed_by=self.request.user.pk)
        log_activity(self.request, "employees", "updated", entity=employee, description=", ".join(sorted(changes)))

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])
        log_activity(self.request, "employees", "deactivated", entity=instance)

    @action(detail=True, methods=["post"], url_path="manager")
    def set_manager(self, request, pk=None):
        employee = self.get_object()
        serializer = ManagerChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        change_manager(employee, serializer.validated_data["manager"], performed_by=request.user.pk)
        employee.refresh_from_db()
        return Response(self.get_serializer(employee).data)


class HierarchyTreeView(APIView):
    """
    The reporting tree, limited to the employees the requester may view.

    ``?root=<employee pk>`` returns that subtree; without it the visible forest
    is returned.
    """

    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "employees"
    permission_actions = {"GET": "view"}

    def get(self, request):
        hierarchy = HierarchyIndex.for_request(request)
        visibility = request.access_decision.visibility
        members = None if visibility.is_unrestricted else visibility.employee_ids

        root = request.query_params.get("root")
        root_id = None
        if root:
            if not root.isdigit():
                raise ValidationError({"root": "Expected an employee id."})
            root_id = int(root)
            if root_id not in hierarchy or (members is not None and root_id not in members):
                raise NotFound("Employee not found.")

        return Response(hierarchy.build_tree(root_id, members=members))


class AttendanceViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
    """Daily attendance. Creating a record checks the requester in for the day."""

    queryset = Attendance.objects.select_related("employee")
    serializer_class = AttendanceSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "attendance"
    permission_actions = {
        "check_out": "create",
        "approve": "approve",
        "reject": "approve",
    }
    http_method_names = ["get", "post", "head", "options"]

    def _own_employee(self):
        employee = self.get_requester_employee()
        if employee is None:
            raise ValidationError("An employee profile is required to record attendance.")
        return employee

    def perform_create(self, serializer):
        employee = self._own_employee()
        now = timezone.now()
        serializer.save(
            employee=employee,
            date=serializer.validated_data.get("date") or timezone.localdate(),
            check_in=now,
        )

    @action(detail=False, methods=["post"], url_path="check-out")
    def check_out(self, request):
        employee = self._own_employee()
        attendance = Attendance.objects.filter(employee=employee, date=timezone.localdate()).first()
        if attendance is None:
            raise ValidationError("No check-in recorded for today.")
        if attendance.check_out is not None:
            raise ValidationError("Already checked out today.")
        attendance.check_out = timezone.now()
        attendance.save(update_fields=["check_out"])
        return Response(self.get_serializer(attendance).data)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        return self._decide(ApprovalStatus.APPROVED)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        return self._decide(ApprovalStatus.REJECTED)

    def _decide(self, outcome):
        attendance = self.get_object()
        approver = self.get_requester_employee()
        if approver is not None and attendance.employee_id == approver.pk:
            raise ValidationError("You cannot approve your own attendance.")
        attendance.approval_status = outcome
        attendance.approved_by = approver
        attendance.approved_at = timezone.now()
        attendance.save(update_fields=["approval_status", "approved_by", "approved_at"])
        return Response(self.get_serializer(attendance).data)


class EodReportViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
    queryset = EodReport.objects.select_related("employee")
    serializer_class = EodReportSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "eod"
    http_method_names = ["get", "post", "head", "options"]

    def perform_create(self, serializer):
        employee = self.get_requester_employee()
        if employee is None:
            raise ValidationError("An employee profile is required to file an EOD report.")
        report = serializer.save(employee=employee)
        log_activity(self.request, "eod", "submitted", entity=report, description=str(report.date))


class LeaveRequestViewSet(ScopedQuerysetMixin, viewsets.ModelViewSet):
    """ViewSet for employees to request leave and managers to approve them."""

    queryset = LeaveRequest.objects.select_related("employee", "approved_by")
    serializer_class = LeaveRequestSerializer
    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "leaves"
    permission_actions = {
        "approve": "approve",
        "reject": "approve",
    }

    def perform_create(self, serializer):
        employee = self.get_requester_employee()
        if employee is None:
            raise ValidationError("An employee profile is required to request leave.")
        serializer.save(employee=employee)

    def perform_update(self, serializer):
        if serializer.instance.status != ApprovalStatus.PENDING:
            raise ValidationError("Only pending requests can be changed.")
        serializer.save()

    def perform_destroy(self, instance):
        if instance.status != ApprovalStatus.PENDING:
            raise ValidationError("Only pending requests can be withdrawn.")
        instance.delete()

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        """Approve a leave request."""
        return self._decide(request, ApprovalStatus.APPROVED)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        """Reject a leave request."""
        return self._decide(request, ApprovalStatus.REJECTED)

    def _decide(self, request, outcome):
        leave_request = self.get_object()
        decision = LeaveDecisionSerializer(data=request.data)
        decision.is_valid(raise_exception=True)

        approver = self.get_requester_employee()
        if approver is not None and leave_request.employee_id == approver.pk:
            raise ValidationError("You cannot decide on your own leave request.")
        if leave_request.status != ApprovalStatus.PENDING:
            raise ValidationError("This request has already been decided.")

        leave_request.status = outcome
        leave_request.approved_by = approver
        leave_request.approved_at = timezone.now()
        leave_request.manager_note = decision.validated_data.get("manager_note", "")
        leave_request.save(update_fields=["status", "approved_by", "approved_at", "manager_note"])
        log_activity(
            request,
            "leaves",
            outcome.lower(),
            entity=leave_request,
            description=f"{leave_request.start_date} - {leave_request.end_date}",
        )
        return Response({"status": leave_request.status}, status=status.HTTP_200_OK)

