from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model for domain records: creation/update timestamps
    and the user who created the row.
    """
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta:
        abstract = True
