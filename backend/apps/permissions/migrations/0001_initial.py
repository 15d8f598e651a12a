import django.db.models.deletion
from django.db import migrations, models


SCOPE_CHOICES = [
    ("own", "Own records"),
    ("team", "Own and all reports (recursive)"),
    ("department", "Whole department"),
    ("all", "Everything"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("hr", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Permission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("module", models.CharField(max_length=50)),
                ("action", models.CharField(max_length=50)),
                ("scope_type", models.CharField(choices=SCOPE_CHOICES, max_length=20)),
                ("description", models.TextField(blank=True)),
            ],
            options={
                "db_table": "permissions",
                "ordering": ["module", "action", "scope_type"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("module", "action", "scope_type"), name="unique_permission_scope"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Role",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=50, unique=True)),
                ("name", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "is_super_admin",
                    models.BooleanField(default=False, help_text="Bypasses every permission check"),
                ),
                ("is_system_role", models.BooleanField(default=False)),
                (
                    "department",
                    models.ForeignKey(
                        blank=True,
                        help_text="Null for global roles",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="roles",
                        to="hr.department",
                    ),
                ),
            ],
            options={
                "db_table": "roles",
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="RolePermission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("module", models.CharField(editable=False, max_length=50)),
                ("action", models.CharField(editable=False, max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "permission",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="role_links",
                        to="permissions.permission",
                    ),
                ),
                (
                    "role",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="role_permissions",
                        to="permissions.role",
                    ),
                ),
            ],
            options={
                "db_table": "role_permissions",
                "constraints": [
                    models.UniqueConstraint(fields=("role", "module", "action"), name="one_scope_per_role_action"),
                ],
            },
        ),
        migrations.AddField(
            model_name="role",
            name="permissions",
            field=models.ManyToManyField(
                blank=True,
                related_name="roles",
                through="permissions.RolePermission",
                to="permissions.permission",
            ),
        ),
    ]
