# lab/management/commands/create_admin.py
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from lab.models import User


class Command(BaseCommand):
    help = "Create or update the admin account (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--email", help="defaults to ADMIN_EMAIL")
        parser.add_argument("--password", help="defaults to ADMIN_PASSWORD")
        parser.add_argument("--name", default="Admin")

    def handle(self, *args, **opts):
        email = (opts.get("email") or settings.ADMIN_EMAIL or "").strip().lower()
        password = opts.get("password") or settings.ADMIN_PASSWORD
        if not email or not password:
            raise CommandError("email and password are required")

        user = User.objects.filter(email__iexact=email).first()
        created = user is None
        if created:
            user = User(email=email)
        user.username = email
        user.name = opts["name"]
        user.role = "admin"
        user.status = "Active"
        user.is_active = True
        user.is_staff = True
        user.set_password(password)
        user.save()

        verb = "created" if created else "updated"
        self.stdout.write(self.style.SUCCESS(f"admin {verb}: {user.email} (id={user.pk})"))
