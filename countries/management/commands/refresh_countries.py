from django.core.management.base import BaseCommand, CommandError

from countries.exceptions import PersistenceUnavailable, SourceUnavailable
from countries.refresh import run_refresh


def run_inline(func, *args, **kwargs):
    return func(*args, **kwargs)


class Command(BaseCommand):
    help = "Fetch countries and exchange rates and reconcile them into the database."

    def handle(self, *args, **options):
        # The process exits right after, so render in the foreground.
        try:
            result = run_refresh(spawn=run_inline)
        except (SourceUnavailable, PersistenceUnavailable) as e:
            raise CommandError(f"{e.detail}: {e.details}") from e

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed countries at {result.refreshed_at}: "
            f"{result.inserted} inserted, {result.updated} updated "
            f"in {result.duration_seconds}s"
        ))
