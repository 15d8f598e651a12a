from django.contrib import admin

from .models import Attendance, Department, Employee, EodReport, LeaveRequest


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "code")


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ("employee_id", "first_name", "last_name", "department", "manager", "role", "is_active")
    list_filter = ("department", "role", "is_active")
    search_fields = ("employee_id", "first_name", "last_name", "email")
    raw_id_fields = ("manager", "user")


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ("employee", "date", "status", "approval_status")
    list_filter = ("status", "approval_status", "date")
    search_fields = ("employee__employee_id",)
    date_hierarchy = "date"


@admin.register(EodReport)
class EodReportAdmin(admin.ModelAdmin):
    list_display = ("employee", "date", "leads_count", "tasks_count")
    search_fields = ("employee__employee_id",)
    date_hierarchy = "date"


@admin.register(LeaveRequest)
class LeaveRequestAdmin(admin.ModelAdmin):
    list_display = ("employee", "leave_type", "start_date", "end_date", "status")
    list_filter = ("status", "leave_type")
    search_fields = ("employee__employee_id",)
