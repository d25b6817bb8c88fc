# frontdesk/management/commands/ensure_operator.py
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = "Create or reset a console operator account (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("username")
        parser.add_argument("--password", help="Password to set; required when the account is new.")
        parser.add_argument("--email", default="")

    def handle(self, *args, **opts):
        User = get_user_model()
        username = opts["username"]
        password = opts.get("password")
        email = opts.get("email") or ""

        user = User.objects.filter(username=username).first()
        if user is None:
            if not password:
                raise CommandError("--password is required for a new account")
            user = User.objects.create_user(username=username, email=email, password=password)
            action = "created"
        else:
            if password:
                user.set_password(password)
            if email:
                user.email = email
            user.is_active = True
            user.save()
            action = "updated"

        group, _ = Group.objects.get_or_create(name=settings.OPERATOR_GROUP)
        user.groups.add(group)
        self.stdout.write(self.style.SUCCESS(f"ok: {username} {action} ({group.name})"))
