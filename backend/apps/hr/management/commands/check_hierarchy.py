from django.core.management.base import BaseCommand, CommandError

from apps.hr.services.hierarchy import HierarchyIndex


class Command(BaseCommand):
    help = "Report manager cycles in the employee hierarchy."

    def add_arguments(self, parser):
        parser.add_argument('--fail', action='store_true', help='Exit with an error when problems are found')

    def handle(self, *args, **options):
        index = HierarchyIndex.load()
        cycles = index.find_cycles()

        for cycle in cycles:
            path = " -> ".join(str(pk) for pk in cycle + cycle[:1])
            self.stdout.write(self.style.ERROR(f"Manager cycle: {path}"))

        if not cycles:
            self.stdout.write(self.style.SUCCESS(f"Hierarchy OK ({len(index)} employees)."))
        elif options['fail']:
            raise CommandError(f"{len(cycles)} manager cycle(s) found.")
