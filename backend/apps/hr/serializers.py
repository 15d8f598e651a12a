from rest_framework import serializers

from .models import Attendance, Department, Employee, EodReport, LeaveRequest


class DepartmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Department
        fields = ["id", "code", "name", "description", "is_active", "created_at", "updated_at"]
        read_only_fields = ["created_at", "updated_at"]


class EmployeeSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    role_code = serializers.CharField(source="role.code", read_only=True, default=None)
    department_name = serializers.CharField(source="department.name", read_only=True)

    # Changing any of these moves an employee between scopes.
    PRIVILEGED_FIELDS = ("department", "manager", "role", "user", "is_active")

    class Meta:
        model = Employee
        fields = [
            "id",
            "employee_id",
            "first_name",
            "last_name",
            "full_name",
            "email",
            "phone_number",
            "job_title",
            "department",
            "department_name",
            "manager",
            "role",
            "role_code",
            "user",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["created_at", "updated_at"]

    def validate_department(self, department):
        if department is not None and not department.is_active:
            raise serializers.ValidationError("Department is inactive.")
        return department

    def validate(self, data):
        manager = data.get("manager")
        if self.instance is not None and manager is not None and manager.pk == self.instance.pk:
            raise serializers.ValidationError({"manager": "An employee cannot be their own manager."})
        return data


class AttendanceSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source="employee.full_name", read_only=True)

    class Meta:
        model = Attendance
        fields = "__all__"
        read_only_fields = [
            "employee",
            "check_in",
            "check_out",
            "approval_status",
            "approved_by",
            "approved_at",
            "created_at",
        ]
        extra_kwargs = {"date": {"required": False}}


class EodReportSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source="employee.full_name", read_only=True)

    class Meta:
        model = EodReport
        fields = "__all__"
        read_only_fields = ["employee", "created_at"]


class LeaveRequestSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source="employee.full_name", read_only=True)

    class Meta:
        model = LeaveRequest
        fields = "__all__"
        read_only_fields = ["employee", "status", "manager_note", "approved_at", "approved_by", "created_at"]

    def validate(self, data):
        start = data.get("start_date", getattr(self.instance, "start_date", None))
        end = data.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and start > end:
            raise serializers.ValidationError("Start date must be before end date.")
        return data


class LeaveDecisionSerializer(serializers.Serializer):
    manager_note = serializers.CharField(required=False, allow_blank=True)


class ManagerChangeSerializer(serializers.Serializer):
    manager = serializers.PrimaryKeyRelatedField(queryset=Employee.objects.all(), allow_null=True)
