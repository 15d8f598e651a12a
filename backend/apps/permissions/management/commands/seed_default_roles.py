from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.hr.models import Department, Employee
from apps.permissions.defaults import ADMIN_ROLE, DEFAULT_DEPARTMENTS, DEFAULT_ROLES, expected_matrix
from apps.permissions.models import Role
from apps.permissions.services.catalog import PermissionCatalog


class Command(BaseCommand):
    help = "Create the default departments and roles and grant each role its default scopes. Safe to re-run."

    def add_arguments(self, parser):
        parser.add_argument('--prune', action='store_true', help='Also revoke grants the default matrix does not list')
        parser.add_argument('--admin-email', help='Create (or update) an ADMIN employee with this email')
        parser.add_argument('--admin-password', help='Password for the ADMIN login (required with --admin-email)')

    def handle(self, *args, **options):
        if options.get('admin_email') and not options.get('admin_password'):
            raise CommandError('--admin-password is required with --admin-email')

        call_command('sync_permissions', stdout=self.stdout)

        with transaction.atomic():
            departments = self._seed_departments()
            self._seed_roles(departments)

            discrepancies = PermissionCatalog.audit(expected_matrix())
            fixed = PermissionCatalog.apply(discrepancies, prune=options['prune'])
            self.stdout.write(self.style.SUCCESS(f'Role grants: {fixed} change(s) applied'))

            if options.get('admin_email'):
                self._seed_admin(options['admin_email'], options['admin_password'], departments)

        self.stdout.write(self.style.SUCCESS('Default roles seeded.'))

    def _seed_departments(self):
        departments = {}
        for entry in DEFAULT_DEPARTMENTS:
            department, created = Department.objects.update_or_create(
                code=entry['code'],
                defaults={'name': entry['name'], 'description': entry['description'], 'is_active': True},
            )
            departments[department.code] = department
            if created:
                self.stdout.write(f"Created department {department.code}")
        return departments

    def _seed_roles(self, departments):
        for entry in DEFAULT_ROLES:
            role, created = Role.objects.update_or_create(
                code=entry['code'],
                defaults={
                    'name': entry['name'],
                    'description': entry['description'],
                    'department': departments.get(entry['department']) if entry['department'] else None,
                    'is_super_admin': entry.get('is_super_admin', False),
                    'is_system_role': True,
                },
            )
            if created:
                self.stdout.write(f"Created role {role.code}")

    def _seed_admin(self, email, password, departments):
        User = get_user_model()
        user, _ = User.objects.get_or_create(username=email, defaults={'email': email})
        user.email = email
        user.set_password(password)
        user.save()

        Employee.objects.update_or_create(
            email=email,
            defaults={
                'employee_id': 'ADMIN-001',
                'first_name': 'System',
                'last_name': 'Admin',
                'department': departments['ADMIN'],
                'role': Role.objects.get(code=ADMIN_ROLE),
                'user': user,
                'is_active': True,
            },
        )
        self.stdout.write(self.style.SUCCESS(f'Admin login ready: {email}'))
