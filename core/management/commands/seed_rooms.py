from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import Room

ROOM_LAYOUT = {
    'Male': {
        'A+': ['302', '309', '310', '311', '312'],
        'A': ['303', '304', '305', '306', '308', '320', '324', '325'],
        'B+': ['321'],
        'B': ['314', '315', '316', '317', '322', '323'],
    },
    'Female': {
        'A+': ['209', '211', '212', '213', '214', '215'],
        'A': ['103', '115', '201', '202', '203', '204', '205', '206', '207', '208', '216', '217'],
        'B': ['101', '102', '104', '105', '106', '108', '109', '111', '112', '114'],
        'C': ['117'],
    },
}


class Command(BaseCommand):
    help = "Create the standard room layout (idempotent; existing rooms are left untouched)."

    def add_arguments(self, parser):
        parser.add_argument("--beds", type=int, default=10, help="Bed count for newly created rooms")

    @transaction.atomic
    def handle(self, *args, **opts):
        created = 0
        for gender, categories in ROOM_LAYOUT.items():
            for category, numbers in categories.items():
                for number in numbers:
                    _, was_created = Room.objects.get_or_create(
                        room_number=number,
                        defaults={"gender": gender, "category": category, "bed_count": opts["beds"]},
                    )
                    created += int(was_created)
        total = sum(len(n) for c in ROOM_LAYOUT.values() for n in c.values())
        self.stdout.write(self.style.SUCCESS(f"Rooms ensured: {created} created, {total - created} already present."))
