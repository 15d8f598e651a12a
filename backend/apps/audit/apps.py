from django.apps import AppConfig


class AuditConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.audit'
    verbose_name = 'Audit & Activity'

    def ready(self):
        from .services.event_handlers import AuditEventHandlers

        AuditEventHandlers.register_handlers()
