from django.core.management.base import BaseCommand
from django.db import transaction

from apps.permissions.models import Permission
from apps.security.permission_registry import iter_permission_triples


class Command(BaseCommand):
    help = 'Synchronizes declared permissions with the database.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--prune',
            action='store_true',
            help='Delete permissions that are no longer declared (removes them from every role).',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS('Starting permission synchronization...'))

        existing = {
            (p.module, p.action, p.scope_type): p for p in Permission.objects.all()
        }
        declared = set()

        for module, action, scope, description in iter_permission_triples():
            key = (module, action, scope.value)
            declared.add(key)
            permission = existing.get(key)
            if permission is None:
                Permission.objects.create(module=module, action=action, scope_type=scope.value, description=description)
                self.stdout.write(self.style.SUCCESS(f'Created permission: {":".join(key)}'))
            elif permission.description != description:
                permission.description = description
                permission.save(update_fields=['description'])
                self.stdout.write(self.style.MIGRATE_HEADING(f'Updated permission: {":".join(key)}'))

        obsolete = set(existing) - declared
        for key in sorted(obsolete):
            if options['prune']:
                existing[key].delete()
                self.stdout.write(self.style.WARNING(f'Deleted obsolete permission: {":".join(key)}'))
            else:
                self.stdout.write(self.style.WARNING(f'Undeclared permission kept: {":".join(key)} (use --prune to delete)'))

        self.stdout.write(self.style.SUCCESS('Permission synchronization complete.'))
