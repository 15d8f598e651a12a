from django.db import models

from shared.models import TimeStampedModel


class ProjectStatus(models.TextChoices):
    ACTIVE = "Active", "Active"
    ON_HOLD = "On_Hold", "On Hold"
    COMPLETED = "Completed", "Completed"
    CANCELLED = "Cancelled", "Cancelled"


class Project(TimeStampedModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=ProjectStatus.choices, default=ProjectStatus.ACTIVE)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    lead = models.OneToOneField(
        'sales.Lead',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='project',
    )
    relationship_manager = models.ForeignKey(
        'hr.Employee',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='managed_relationships',
    )
    project_manager = models.ForeignKey(
        'hr.Employee',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='managed_projects',
    )
    department = models.ForeignKey(
        'hr.Department',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='projects',
    )

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.name
