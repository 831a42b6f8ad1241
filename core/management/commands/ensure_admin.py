import os

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand, CommandError

from core.models import User


class Command(BaseCommand):
    help = "Ensure an administrator account exists with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--username", default=os.getenv("ADMIN_USERNAME", "admin"))
        parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
        parser.add_argument("--role", default=User.ROLE_SUPER_ADMIN,
                            choices=[User.ROLE_SUPER_ADMIN, User.ROLE_ADMIN, User.ROLE_WARDEN])

    def handle(self, *args, **opts):
        username, password, role = opts["username"], opts["password"], opts["role"]
        if not password:
            raise CommandError("Provide --password or set ADMIN_PASSWORD")
        u, created = User.objects.get_or_create(
            username=username,
            defaults={"role": role, "password": make_password(password), "is_active": True,
                      "is_staff": True, "is_password_changed": True},
        )
        if not created:
            # correct password, role and active flag of an existing account
            u.password = make_password(password)
            u.role = role
            u.is_active = True
            u.save(update_fields=["password", "role", "is_active"])
        self.stdout.write(self.style.SUCCESS(f"{'created' if created else 'updated'}: {username} ({role})"))
