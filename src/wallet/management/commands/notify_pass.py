"""Management command to push an update notification for a pass.

Usage:
    python manage.py notify_pass pass.com.example.event SERIAL123          # Send now
    python manage.py notify_pass pass.com.example.event SERIAL123 --async  # Queue a Celery task
"""

import typing as t

from django.core.management.base import BaseCommand, CommandError, CommandParser

from wallet.exceptions import PassNotFoundError
from wallet.service.dispatcher import NotificationDispatcher
from wallet.service.pass_store import get_pass
from wallet.tasks import notify_pass_update


class Command(BaseCommand):
    """Notify every device registered for a pass that it changed."""

    help = "Send wake-up push notifications to all devices registered for a pass"

    def add_arguments(self, parser: CommandParser) -> None:
        """Add command-line arguments."""
        parser.add_argument("pass_type_identifier", type=str, help="Pass type identifier")
        parser.add_argument("serial_number", type=str, help="Pass serial number")
        parser.add_argument(
            "--async",
            action="store_true",
            dest="run_async",
            help="Queue a Celery task instead of sending synchronously",
        )

    def handle(self, *args: t.Any, **options: t.Any) -> None:
        """Send the notifications and report the outcome."""
        pass_type_identifier: str = options["pass_type_identifier"]
        serial_number: str = options["serial_number"]

        try:
            get_pass(pass_type_identifier, serial_number)
        except PassNotFoundError as e:
            raise CommandError(str(e)) from e

        if options["run_async"]:
            notify_pass_update.delay(pass_type_identifier, serial_number)
            self.stdout.write(self.style.SUCCESS(f"Queued notifications for {pass_type_identifier}/{serial_number}"))
            return

        result = NotificationDispatcher().broadcast(pass_type_identifier, serial_number)
        summary = result.as_dict()
        message = (
            f"Notified {summary['succeeded']}/{summary['attempted']} devices "
            f"for {pass_type_identifier}/{serial_number} ({summary['failed']} failed)"
        )
        if result.ok:
            self.stdout.write(self.style.SUCCESS(message))
        else:
            self.stdout.write(self.style.ERROR(message))
