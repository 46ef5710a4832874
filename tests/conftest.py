import hashlib
import hmac
import json
from datetime import date

import pytest

from apps.accounts.models import UserProfile
from apps.patients.models import Gender, Patient

WEBHOOK_SECRET = "test-webhook-secret"
WEBHOOK_URL = "/api/webhooks/booking"


@pytest.fixture(autouse=True)
def webhook_settings(settings):
    settings.BOOKING_WEBHOOK_SECRET = WEBHOOK_SECRET
    settings.BOOKING_WEBHOOK_RATE_LIMIT = 100
    settings.BOOKING_WEBHOOK_RATE_WINDOW_SECONDS = 60
    settings.BOOKING_WEBHOOK_DEFAULT_THERAPIST_ID = None
    settings.ENCRYPTION_KEY = ""
    return settings


@pytest.fixture
def practice_admin(db, django_user_model):
    user = django_user_model.objects.create_user(
        username="admin@praxis.example",
        email="admin@praxis.example",
        password="Admin!234",
    )
    UserProfile.objects.create(user=user, role=UserProfile.Role.ADMIN)
    return user


@pytest.fixture
def therapist(db, django_user_model):
    user = django_user_model.objects.create_user(
        username="therapist@praxis.example",
        email="therapist@praxis.example",
        password="Therapist!234",
    )
    UserProfile.objects.create(user=user, role=UserProfile.Role.THERAPIST)
    return user


@pytest.fixture
def patient(therapist):
    return Patient.objects.create(
        first_name="Anna",
        last_name="Schmidt",
        birth_date=date(1985, 4, 12),
        gender=Gender.FEMALE,
        phone="+4930123456",
        email="anna.schmidt@example.com",
        booking_system_id="bk-pat-1",
        booking_email="anna.schmidt@example.com",
        therapist=therapist,
    )


@pytest.fixture
def hmac_signature():
    def _sign(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
        return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()

    return _sign


@pytest.fixture
def post_event(client, hmac_signature):
    """POST an envelope to the booking webhook with a valid signature."""

    def _post(event_type=None, payload=None, *, body=None, signature=None):
        if body is None:
            body = json.dumps({"event_type": event_type, "payload": payload}).encode()
        if signature is None:
            signature = f"sha256={hmac_signature(body)}"
        return client.post(
            WEBHOOK_URL,
            data=body,
            content_type="application/json",
            HTTP_X_WEBHOOK_SIGNATURE=signature,
        )

    return _post
