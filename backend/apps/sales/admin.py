from django.contrib import admin
from .models import FollowUp, Lead, LeadAssignmentLog, LeadNote


class LeadNoteInline(admin.TabularInline):
    model = LeadNote
    extra = 0
    fields = ['author', 'content', 'is_private', 'created_at']
    readonly_fields = ['created_at']


class FollowUpInline(admin.TabularInline):
    model = FollowUp
    extra = 0
    fields = ['employee', 'scheduled_date', 'outcome', 'next_action']


class LeadAssignmentLogInline(admin.TabularInline):
    model = LeadAssignmentLog
    extra = 0
    fields = ['assigned_by', 'assigned_from', 'assigned_to', 'lead_status', 'created_at']
    readonly_fields = fields
    can_delete = False


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ['name', 'company_name', 'status', 'owner', 'department', 'created_at']
    list_filter = ['status', 'department']
    search_fields = ['name', 'company_name', 'email', 'phone']
    raw_id_fields = ['owner']
    inlines = [LeadNoteInline, FollowUpInline, LeadAssignmentLogInline]
