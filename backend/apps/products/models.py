from django.db import models

from shared.models import TimeStampedModel


class Product(TimeStampedModel):
    class Status(models.TextChoices):
        ACTIVE = "Active", "Active"
        IN_DEVELOPMENT = "In_Development", "In Development"
        DISCONTINUED = "Discontinued", "Discontinued"

    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=120, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    product_manager = models.ForeignKey(
        "hr.Employee",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="managed_products",
    )
    department = models.ForeignKey(
        "hr.Department",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
