from django.contrib import admin
from .models import Permission, Role, RolePermission


@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ["module", "action", "scope_type", "description"]
    list_filter = ["module", "scope_type"]
    search_fields = ["module", "action"]


class RolePermissionInline(admin.TabularInline):
    model = RolePermission
    extra = 0
    raw_id_fields = ["permission"]
    readonly_fields = ["module", "action", "created_at"]


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "department", "is_active", "is_super_admin", "is_system_role"]
    list_filter = ["department", "is_active", "is_super_admin"]
    search_fields = ["code", "name"]
    inlines = [RolePermissionInline]
