"""
Management command to run the recovery supervisor once.

Usage:
    python manage.py resume_processing                  # One supervisor pass
    python manage.py resume_processing --start          # Start a new run
    python manage.py resume_processing --start --batch-size=50
    python manage.py resume_processing --async          # Dispatch via Celery instead
"""

from django.core.management.base import BaseCommand, CommandError

from catalog.services.recovery import get_recovery_supervisor
from catalog.tasks import resume_processing, start_processing


class Command(BaseCommand):
    help = "Recover stalled processing runs and resume or start listing generation"

    def add_arguments(self, parser):
        parser.add_argument(
            "--start",
            action="store_true",
            help="Start a new run instead of a supervisor pass",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="Batch size of a new run started with --start",
        )
        parser.add_argument(
            "--async",
            action="store_true",
            dest="run_async",
            help="Dispatch as a Celery task and return immediately",
        )

    def handle(self, *args, **options):
        batch_size = options["batch_size"]
        if batch_size is not None and batch_size < 1:
            raise CommandError("--batch-size must be a positive integer")

        if options["run_async"]:
            if options["start"]:
                task = start_processing.delay(batch_size=batch_size)
            else:
                task = resume_processing.delay()
            self.stdout.write(self.style.SUCCESS(f"Dispatched task {task.id}"))
            return

        supervisor = get_recovery_supervisor()
        if options["start"]:
            report = supervisor.start(batch_size=batch_size)
        else:
            report = supervisor.run()

        if report.stalled_jobs:
            self.stdout.write(
                self.style.WARNING(f"Marked {report.stalled_jobs} stalled run(s) as error")
            )
        self.stdout.write(f"Action: {report.action}")
        self.stdout.write(f"Products remaining: {report.remaining}")
        if report.queue_id:
            self.stdout.write(f"Queue: {report.queue_id}")
        self.stdout.write(self.style.SUCCESS(report.message))
