from django.core.management.base import BaseCommand, CommandError

from payables.models import Business
from payables.tasks import recompute_bill_statuses_task


class Command(BaseCommand):
    help = "Re-derive every bill status of a business (or all businesses)."

    def add_arguments(self, parser):
        parser.add_argument("--business", help="Business slug; omit for all businesses.")
        parser.add_argument(
            "--async",
            action="store_true",
            dest="run_async",
            help="Queue the work on Celery instead of running it here.",
        )

    def handle(self, *args, **options):
        businesses = Business.objects.order_by("pk")
        if options["business"]:
            businesses = businesses.filter(slug=options["business"])
            if not businesses.exists():
                raise CommandError(f"No business with slug {options['business']!r}")

        for business in businesses:
            if options["run_async"]:
                recompute_bill_statuses_task.delay(business.pk)
                self.stdout.write(self.style.NOTICE(f"Queued {business.slug}"))
            else:
                changed = recompute_bill_statuses_task(business.pk)
                self.stdout.write(
                    self.style.SUCCESS(f"{business.slug}: {changed} bill(s) changed status")
                )
