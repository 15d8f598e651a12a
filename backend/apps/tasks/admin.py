from django.contrib import admin

from .models import Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("title", "assignee", "creator", "priority", "status", "due_date")
    list_filter = ("priority", "status")
    search_fields = ("title", "description", "assignee__employee_id", "assignee__email")
    raw_id_fields = ("assignee", "creator", "lead", "project")
