from rest_framework import generics, permissions, serializers
from rest_framework.response import Response

from apps.hr.models import Attendance, Employee
from apps.sales.models import Lead
from apps.security.mixins import ScopedQuerysetMixin
from apps.security.permissions import HasModulePermission

from . import services


class ReportPeriodSerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, data):
        if data.get("date_from") and data.get("date_to") and data["date_from"] > data["date_to"]:
            raise serializers.ValidationError({"date_to": "End of the period is before its start."})
        return data


class ReportView(ScopedQuerysetMixin, generics.GenericAPIView):
    """
    Base for reports: the queryset is limited by the reports:generate scope
    and honours the usual ``employee_id``/``department_id``/``recursive`` narrowing.
    """

    permission_classes = [permissions.IsAuthenticated, HasModulePermission]
    permission_module = "reports"
    permission_actions = {"GET": "generate"}
    visibility_action = "generate"
    date_field = None
    build = None

    def get_queryset(self):
        qs = super().get_queryset()
        if self.date_field:
            period = ReportPeriodSerializer(data=self.request.query_params)
            period.is_valid(raise_exception=True)
            if period.validated_data.get("date_from"):
                qs = qs.filter(**{f"{self.date_field}__gte": period.validated_data["date_from"]})
            if period.validated_data.get("date_to"):
                qs = qs.filter(**{f"{self.date_field}__lte": period.validated_data["date_to"]})
        return qs

    def get(self, request):
        return Response(self.build(self.get_queryset()))


class SalesReportView(ReportView):
    """Lead totals, status and source breakdowns, per-owner results."""

    queryset = Lead.objects.all()
    date_field = "created_at__date"
    build = staticmethod(services.sales_report)


class ProductivityReportView(ReportView):
    """Task completion, EOD and attendance counts per visible employee."""

    queryset = Employee.objects.all()
    build = staticmethod(services.productivity_report)


class AttendanceReportView(ReportView):
    queryset = Attendance.objects.all()
    date_field = "date"
    build = staticmethod(services.attendance_report)
