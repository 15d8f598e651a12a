from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.permissions.defaults import expected_matrix
from apps.permissions.services.catalog import Discrepancy, PermissionCatalog


class Command(BaseCommand):
    help = "Compare stored role grants with the default matrix and optionally repair them."

    def add_arguments(self, parser):
        parser.add_argument('--role', action='append', dest='roles', help='Limit to this role code (repeatable)')
        parser.add_argument('--fix', action='store_true', help='Repair missing, wrong and conflicting grants')
        parser.add_argument('--prune', action='store_true', help='With --fix, also revoke grants not in the matrix')
        parser.add_argument('--strict', action='store_true', help='Exit with an error when discrepancies remain')

    def handle(self, *args, **options):
        expected = expected_matrix()
        roles = options.get('roles') or None
        unknown = set(roles or ()) - set(expected)
        if unknown:
            raise CommandError(f"No default matrix for: {', '.join(sorted(unknown))}")

        discrepancies = PermissionCatalog.audit(expected, role_codes=roles)
        if not discrepancies:
            self.stdout.write(self.style.SUCCESS('All role grants match the default matrix.'))
            return

        for item in discrepancies:
            style = self.style.WARNING if item.kind == Discrepancy.EXTRA else self.style.ERROR
            self.stdout.write(style(str(item)))

        if options['fix']:
            with transaction.atomic():
                fixed = PermissionCatalog.apply(discrepancies, prune=options['prune'])
            self.stdout.write(self.style.SUCCESS(f'{fixed} discrepancy(ies) repaired.'))
            discrepancies = PermissionCatalog.audit(expected, role_codes=roles)
            if not options['prune']:
                discrepancies = [d for d in discrepancies if d.kind != Discrepancy.EXTRA]

        if discrepancies and options['strict']:
            raise CommandError(f'{len(discrepancies)} discrepancy(ies) found.')
