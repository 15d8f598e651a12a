from django.contrib import admin
from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("name", "status", "lead", "relationship_manager", "project_manager", "department")
    list_filter = ("status", "department")
    search_fields = ("name", "description")
    raw_id_fields = ("lead", "relationship_manager", "project_manager")
