from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('LOGIN', 'Login'),
        ('PERMISSION_CHANGE', 'Role Permissions Changed'),
        ('HIERARCHY_CHANGE', 'Reporting Line Changed'),
        ('INTEGRITY_FAULT', 'Data Integrity Fault'),
        ('OTHER', 'Other'),
    ]

    timestamp = models.DateTimeField(auto_now_add=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    entity_type = models.CharField(max_length=255, help_text="Type of entity affected (e.g., 'Role', 'Employee')")
    entity_id = models.CharField(max_length=255, help_text="ID of the entity affected")
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    description = models.TextField(blank=True, help_text="A brief description of the action")
    before_value = models.JSONField(null=True, blank=True, help_text="JSON representation of the object before the change")
    after_value = models.JSONField(null=True, blank=True, help_text="JSON representation of the object after the change")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    correlation_id = models.CharField(max_length=255, blank=True, help_text="Identifier to link related actions (e.g., request ID)")

    class Meta:
        ordering = ['-timestamp']
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

    def __str__(self):
        return f"{self.timestamp}: {self.user} {self.action} {self.entity_type}:{self.entity_id}"


class ActivityLog(models.Model):
    """Business activity feed, visible to others through the reports scope."""

    employee = models.ForeignKey(
        'hr.Employee',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activity_logs',
        help_text="Employee who performed the action",
    )
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    module = models.CharField(max_length=50)
    action = models.CharField(max_length=50)
    entity_type = models.CharField(max_length=100, blank=True)
    entity_id = models.CharField(max_length=64, blank=True)
    entity_name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['module', 'entity_id'], name='activity_module_entity_idx'),
        ]

    def __str__(self):
        return f"{self.module}.{self.action} {self.entity_type}:{self.entity_id}"
