from django.db import models

from apps.security.scopes import Scope


class Permission(models.Model):
    """
    A capability atom: ``module:action`` granted at one scope.
    """
    module = models.CharField(max_length=50)
    action = models.CharField(max_length=50)
    scope_type = models.CharField(max_length=20, choices=Scope.choices)
    description = models.TextField(blank=True)

    class Meta:
        db_table = 'permissions'
        ordering = ['module', 'action', 'scope_type']
        constraints = [
            models.UniqueConstraint(fields=['module', 'action', 'scope_type'], name='unique_permission_scope'),
        ]

    def __str__(self):
        return self.code

    @property
    def code(self) -> str:
        return f"{self.module}:{self.action}:{self.scope_type}"


class Role(models.Model):
    """
    Named authority level. Roles may belong to a department or be global.
    """
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    department = models.ForeignKey(
        'hr.Department',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='roles',
        help_text="Null for global roles"
    )
    permissions = models.ManyToManyField(
        Permission,
        through='RolePermission',
        related_name='roles',
        blank=True,
    )
    is_active = models.BooleanField(default=True)
    is_super_admin = models.BooleanField(default=False, help_text="Bypasses every permission check")
    is_system_role = models.BooleanField(default=False)

    class Meta:
        db_table = 'roles'
        ordering = ['code']

    def __str__(self):
        return f"{self.name} ({self.code})"


class RolePermission(models.Model):
    """
    Grants ``permission`` to ``role``. ``module`` and ``action`` mirror the
    permission so the database itself refuses a second scope for the same pair.
    """
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name='role_permissions')
    permission = models.ForeignKey(Permission, on_delete=models.CASCADE, related_name='role_links')
    module = models.CharField(max_length=50, editable=False)
    action = models.CharField(max_length=50, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'role_permissions'
        constraints = [
            models.UniqueConstraint(fields=['role', 'module', 'action'], name='one_scope_per_role_action'),
        ]

    def __str__(self):
        return f"{self.role.code} -> {self.permission.code}"

    def save(self, *args, **kwargs):
        self.module = self.permission.module
        self.action = self.permission.action
        super().save(*args, **kwargs)
