from django.db import models

from shared.models import TimeStampedModel


class Lead(TimeStampedModel):
    class Status(models.TextChoices):
        NEW = "New", "New"
        FOLLOW_UP = "Follow_Up", "Follow Up"
        PROSPECT = "Prospect", "Prospect"
        HOT_PROSPECT = "Hot_Prospect", "Hot Prospect"
        PROPOSAL_SENT = "Proposal_Sent", "Proposal Sent"
        CLOSING = "Closing", "Closing"
        WON = "Won", "Won"
        LOST = "Lost", "Lost"

    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    company_name = models.CharField(max_length=255, blank=True)
    source = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.NEW)
    lost_reason = models.TextField(blank=True)
    owner = models.ForeignKey(
        'hr.Employee',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='owned_leads',
    )
    department = models.ForeignKey(
        'hr.Department',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='leads',
    )

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['owner', 'status'], name='sales_lead_owner_status_idx'),
            models.Index(fields=['department'], name='sales_lead_department_idx'),
        ]

    def __str__(self):
        return self.name


class LeadNote(models.Model):
    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='lead_notes')
    author = models.ForeignKey('hr.Employee', on_delete=models.SET_NULL, null=True, related_name='lead_notes')
    content = models.TextField()
    is_private = models.BooleanField(default=False, help_text="Only the author sees private notes")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Note on {self.lead_id} by {self.author_id}"


class FollowUp(models.Model):
    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='follow_ups')
    employee = models.ForeignKey('hr.Employee', on_delete=models.SET_NULL, null=True, related_name='follow_ups')
    scheduled_date = models.DateTimeField()
    outcome = models.TextField(blank=True)
    next_action = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-scheduled_date']

    def __str__(self):
        return f"Follow-up on {self.lead_id} @ {self.scheduled_date}"


class LeadAssignmentLog(models.Model):
    """One row per ownership change of a lead."""

    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='assignment_logs')
    assigned_by = models.ForeignKey(
        'hr.Employee', on_delete=models.SET_NULL, null=True, blank=True, related_name='lead_assignments_made'
    )
    assigned_from = models.ForeignKey(
        'hr.Employee', on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    assigned_to = models.ForeignKey(
        'hr.Employee', on_delete=models.SET_NULL, null=True, related_name='lead_assignments_received'
    )
    lead_status = models.CharField(max_length=20, choices=Lead.Status.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.lead_id}: {self.assigned_from_id} -> {self.assigned_to_id}"
