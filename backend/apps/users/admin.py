from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = (
        (None, {"fields": ("username", "password")}),
        ("Personal info", {"fields": ("first_name", "last_name", "email", "phone")}),
        ("Access", {"fields": ("is_active", "is_staff", "is_superuser", "is_system_admin")}),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )
    list_display = ("username", "email", "employee_code", "employee_role", "is_system_admin", "is_active")
    list_filter = ("is_active", "is_staff", "is_system_admin")
    list_select_related = ("employee_profile__role",)

    @admin.display(description="Employee")
    def employee_code(self, obj):
        employee = obj.employee
        return employee.employee_id if employee else "-"

    @admin.display(description="Role")
    def employee_role(self, obj):
        employee = obj.employee
        return employee.role.code if employee and employee.role else "-"
