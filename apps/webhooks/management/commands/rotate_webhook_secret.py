"""Management command to rotate the booking webhook signing secret."""

import secrets

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from apps.common.security import wrap_secret, wrapping_enabled
from apps.webhooks.models import WebhookConfig

SECRET_BYTES = 32


class Command(BaseCommand):
    help = (
        "Generate a new booking webhook signing secret, store it and print it once. "
        "The new secret applies to the next incoming request."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--updated-by",
            default=None,
            help="Username recorded as the author of the rotation.",
        )

    def handle(self, *args, **options):
        updated_by = None
        username = options["updated_by"]
        if username:
            user_model = get_user_model()
            try:
                updated_by = user_model.objects.get(**{user_model.USERNAME_FIELD: username})
            except user_model.DoesNotExist as exc:
                raise CommandError(f"User not found: {username}") from exc

        secret = secrets.token_hex(SECRET_BYTES)
        stored = wrap_secret(secret) if wrapping_enabled() else secret
        WebhookConfig.objects.update_or_create(
            key=WebhookConfig.SIGNING_SECRET_KEY,
            defaults={"signing_secret": stored, "updated_by": updated_by},
        )

        self.stdout.write(self.style.SUCCESS("Webhook signing secret rotated."))
        self.stdout.write("Copy it into the booking tool now, it will not be shown again:")
        self.stdout.write(secret)
