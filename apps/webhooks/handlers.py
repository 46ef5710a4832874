"""Event handlers for booking webhooks.

Handlers never raise for expected failures. Every outcome, including schema
violations and database errors, comes back as a :class:`HandlerResult` that
the view writes to the audit log.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional, Sequence

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction

from apps.accounts.models import UserProfile
from apps.appointments.models import Appointment
from apps.common.utils import now_utc
from apps.patients.models import Patient
from apps.webhooks.models import ProcessingStatus
from apps.webhooks.serializers import AppointmentEventSerializer, PatientCreatedSerializer

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = "Unbekannt"
PLACEHOLDER_BIRTH_DATE = date(1900, 1, 1)


@dataclass(slots=True)
class HandlerResult:
    """Outcome of processing a single event."""

    status: str
    message: str | None = None

    @classmethod
    def success(cls, message: str | None = None) -> "HandlerResult":
        return cls(ProcessingStatus.SUCCESS, message)

    @classmethod
    def duplicate(cls) -> "HandlerResult":
        return cls(ProcessingStatus.DUPLICATE)

    @classmethod
    def error(cls, message: str) -> "HandlerResult":
        return cls(ProcessingStatus.ERROR, message)


def _invalid_payload(event_label: str, errors: Any) -> HandlerResult:
    return HandlerResult.error(f"Invalid {event_label} payload: {json.dumps(errors)}")


class PatientMatcher:
    """Find an existing patient by email.

    Each field in ``lookup_fields`` is tried as its own equality query, in
    order; the first hit wins.
    """

    lookup_fields: Sequence[str] = ("email", "booking_email")

    def __init__(self, lookup_fields: Optional[Sequence[str]] = None):
        if lookup_fields is not None:
            self.lookup_fields = tuple(lookup_fields)

    def find(self, email: str) -> Optional[Patient]:
        for field in self.lookup_fields:
            patient = Patient.objects.filter(**{field: email}).order_by("pk").first()
            if patient is not None:
                return patient
        return None


class DefaultTherapistResolver:
    """Pick the owner of auto-created patients.

    ``BOOKING_WEBHOOK_DEFAULT_THERAPIST_ID`` names the user explicitly;
    otherwise the admin with the lowest id is used.
    """

    def __call__(self):
        user_model = get_user_model()
        configured_id = getattr(settings, "BOOKING_WEBHOOK_DEFAULT_THERAPIST_ID", None)
        if configured_id:
            return user_model.objects.filter(pk=configured_id, is_active=True).first()
        return (
            user_model.objects.filter(profile__role=UserProfile.Role.ADMIN, is_active=True)
            .order_by("pk")
            .first()
        )


class PatientCreatedHandler:
    """Create a patient or attach the booking id to an existing one."""

    def __init__(
        self,
        matcher: Optional[PatientMatcher] = None,
        therapist_resolver: Optional[Callable[[], Any]] = None,
    ):
        self.matcher = matcher or PatientMatcher()
        self.therapist_resolver = therapist_resolver or DefaultTherapistResolver()

    def __call__(self, payload: Dict[str, Any]) -> HandlerResult:
        serializer = PatientCreatedSerializer(data=payload)
        if not serializer.is_valid():
            return _invalid_payload("patient.created", serializer.errors)
        data = serializer.validated_data
        booking_id = data["booking_patient_id"]
        email = data["email"]

        try:
            existing = self.matcher.find(email)
        except DatabaseError:
            logger.exception("booking_webhook.patient_lookup_failed")
            return HandlerResult.error("Database error during duplicate check.")

        if existing is not None:
            if existing.booking_system_id == booking_id:
                return HandlerResult.duplicate()
            try:
                with transaction.atomic():
                    Patient.objects.filter(pk=existing.pk).update(
                        booking_system_id=booking_id,
                        booking_email=email,
                        updated_at=now_utc(),
                    )
            except DatabaseError:
                logger.exception(
                    "booking_webhook.patient_link_failed", extra={"patient_id": existing.pk}
                )
                return HandlerResult.error("Could not link booking_system_id to the patient.")
            logger.info(
                "booking_webhook.patient_linked",
                extra={"patient_id": existing.pk, "booking_patient_id": booking_id},
            )
            return HandlerResult.success()

        try:
            therapist = self.therapist_resolver()
        except DatabaseError:
            logger.exception("booking_webhook.therapist_lookup_failed")
            therapist = None
        if therapist is None:
            return HandlerResult.error(
                "No admin/default therapist found. Cannot auto-create patient from webhook."
            )

        try:
            with transaction.atomic():
                patient = Patient.objects.create(
                    first_name=data.get("vorname") or PLACEHOLDER_NAME,
                    last_name=data.get("nachname") or PLACEHOLDER_NAME,
                    birth_date=data.get("geburtsdatum") or PLACEHOLDER_BIRTH_DATE,
                    gender=data["geschlecht"],
                    phone=data.get("telefon"),
                    email=email,
                    booking_system_id=booking_id,
                    booking_email=email,
                    therapist=therapist,
                )
        except DatabaseError:
            logger.exception("booking_webhook.patient_create_failed")
            return HandlerResult.error("Could not create patient.")

        logger.info(
            "booking_webhook.patient_created",
            extra={"patient_id": patient.pk, "booking_patient_id": booking_id},
        )
        return HandlerResult.success(
            f"New patient created automatically (booking id: {booking_id}). "
            "Please review the admin area for possible duplicates."
        )


class AppointmentEventHandler:
    """Upsert an appointment keyed by its booking-tool id.

    Deliveries for the same id overwrite each other: the last write wins, so
    out-of-order deliveries are not detected.
    """

    update_fields = [
        "patient",
        "scheduled_at",
        "duration_minutes",
        "therapist_name",
        "service_name",
        "status",
        "synced_at",
        "updated_at",
    ]

    def __call__(self, payload: Dict[str, Any]) -> HandlerResult:
        serializer = AppointmentEventSerializer(data=payload)
        if not serializer.is_valid():
            return _invalid_payload("appointment", serializer.errors)
        data = serializer.validated_data
        booking_patient_id = data["booking_patient_id"]

        try:
            patient = (
                Patient.objects.filter(booking_system_id=booking_patient_id).order_by("pk").first()
            )
        except DatabaseError:
            logger.exception("booking_webhook.appointment_patient_lookup_failed")
            return HandlerResult.error("Patient lookup failed.")

        if patient is None:
            return HandlerResult.error(
                f"Patient with booking_system_id '{booking_patient_id}' not found."
            )

        appointment = Appointment(
            patient=patient,
            booking_system_appointment_id=data["booking_appointment_id"],
            scheduled_at=data["scheduled_at"],
            duration_minutes=data["duration_minutes"],
            therapist_name=data.get("therapist_name") or None,
            service_name=data.get("service_name") or None,
            status=data["status"],
            synced_at=now_utc(),
        )
        try:
            with transaction.atomic():
                Appointment.objects.bulk_create(
                    [appointment],
                    update_conflicts=True,
                    unique_fields=["booking_system_appointment_id"],
                    update_fields=self.update_fields,
                )
        except DatabaseError:
            logger.exception(
                "booking_webhook.appointment_upsert_failed",
                extra={"booking_appointment_id": data["booking_appointment_id"]},
            )
            return HandlerResult.error("Could not save appointment.")

        return HandlerResult.success()
