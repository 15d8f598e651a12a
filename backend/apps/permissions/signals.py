from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import RolePermission
from .services.catalog import PermissionCatalog


@receiver(post_save, sender=RolePermission)
@receiver(post_delete, sender=RolePermission)
def invalidate_role_grants(sender, instance, **kwargs):
    """Drop the cached grant set of the affected role on any write path (admin, shell, services)."""
    PermissionCatalog.invalidate_cache(instance.role_id)
