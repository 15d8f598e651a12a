from django.contrib import admin
from .models import ActivityLog, AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "user", "action", "entity_type", "entity_id")
    list_filter = ("action",)
    search_fields = ("entity_type", "entity_id", "description", "user__username", "user__email")


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "employee", "module", "action", "entity_type", "entity_id")
    list_filter = ("module", "action")
    search_fields = ("entity_id", "entity_name", "description")
