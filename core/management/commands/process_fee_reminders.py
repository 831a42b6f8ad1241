import logging

from django.core.management.base import BaseCommand
from django.db import transaction

from core.services.fee_reminders import process_due_reminders, refresh_visibility

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Issue due fee reminders and hide those issued more than three days ago. Run daily from cron."

    def handle(self, *args, **options):
        with transaction.atomic():
            issued = process_due_reminders()
            hidden = refresh_visibility()
        self.stdout.write(self.style.SUCCESS(f"Issued {issued} reminders; hid {hidden}."))
