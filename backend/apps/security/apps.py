from django.apps import AppConfig


class SecurityConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.security'
    verbose_name = 'Security & Access Control'

    def ready(self):
        # Each import registers that app's permissions and scoped models
        import apps.hr.permissions  # noqa: F401
        import apps.sales.permissions  # noqa: F401
        import apps.tasks.permissions  # noqa: F401
        import apps.projects.permissions  # noqa: F401
        import apps.products.permissions  # noqa: F401
        import apps.audit.permissions  # noqa: F401
