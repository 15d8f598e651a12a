from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Login identity. Business identity (department, manager, role) lives on
    the linked ``hr.Employee`` reachable as ``user.employee_profile``.
    """
    phone = models.CharField(max_length=20, blank=True)
    is_system_admin = models.BooleanField(default=False)

    class Meta:
        db_table = 'users'

    @property
    def employee(self):
        return getattr(self, 'employee_profile', None)
