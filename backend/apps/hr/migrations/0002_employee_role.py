import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("hr", "0001_initial"),
        ("permissions", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="employee",
            name="role",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="employees",
                to="permissions.role",
            ),
        ),
    ]
