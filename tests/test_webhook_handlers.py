from datetime import date

import pytest
from django.db import DatabaseError

from apps.appointments.models import Appointment
from apps.patients.models import Gender, Patient
from apps.webhooks.handlers import (
    AppointmentEventHandler,
    DefaultTherapistResolver,
    PatientCreatedHandler,
    PatientMatcher,
)
from apps.webhooks.router import EventRouter, build_default_router

pytestmark = pytest.mark.django_db


def _appointment(**overrides):
    payload = {
        "booking_appointment_id": "bk-appt-7",
        "booking_patient_id": "bk-pat-1",
        "scheduled_at": "2026-11-02T09:30:00+01:00",
        "duration_minutes": 30,
    }
    payload.update(overrides)
    return payload


def test_minimal_payload_uses_placeholders(therapist):
    handler = PatientCreatedHandler(therapist_resolver=lambda: therapist)
    result = handler({"booking_patient_id": "bk-9", "email": "neu@example.com"})

    assert result.status == "success"
    patient = Patient.objects.get(booking_system_id="bk-9")
    assert patient.first_name == "Unbekannt"
    assert patient.last_name == "Unbekannt"
    assert patient.birth_date == date(1900, 1, 1)
    assert patient.gender == Gender.UNKNOWN
    assert patient.phone is None
    assert patient.therapist == therapist


def test_empty_phone_is_stored_as_sent(therapist):
    handler = PatientCreatedHandler(therapist_resolver=lambda: therapist)
    handler({"booking_patient_id": "bk-10", "email": "leer@example.com", "telefon": ""})
    handler({"booking_patient_id": "bk-11", "email": "null@example.com", "telefon": None})

    assert Patient.objects.get(booking_system_id="bk-10").phone == ""
    assert Patient.objects.get(booking_system_id="bk-11").phone is None


def test_match_on_booking_email(patient):
    patient.email = "praxis-intern@example.com"
    patient.save()

    result = PatientCreatedHandler()(
        {"booking_patient_id": "bk-pat-1", "email": "anna.schmidt@example.com"}
    )

    assert result.status == "duplicate"
    assert Patient.objects.count() == 1


def test_primary_email_wins_over_booking_email(therapist):
    linked = Patient.objects.create(
        first_name="Berta",
        last_name="Meier",
        birth_date=date(1970, 1, 1),
        email="berta@example.com",
        booking_email="shared@example.com",
        therapist=therapist,
    )
    primary = Patient.objects.create(
        first_name="Dora",
        last_name="Meier",
        birth_date=date(1972, 2, 2),
        email="shared@example.com",
        therapist=therapist,
    )

    assert PatientMatcher().find("shared@example.com") == primary
    assert PatientMatcher(lookup_fields=["booking_email"]).find("shared@example.com") == linked
    assert PatientMatcher().find("nobody@example.com") is None


def test_patient_without_booking_id_gets_linked(therapist):
    existing = Patient.objects.create(
        first_name="Carl",
        last_name="Vogel",
        birth_date=date(1961, 3, 3),
        email="carl@example.com",
        therapist=therapist,
    )

    result = PatientCreatedHandler()({"booking_patient_id": "bk-c", "email": "carl@example.com"})

    assert result.status == "success"
    assert result.message is None
    existing.refresh_from_db()
    assert existing.booking_system_id == "bk-c"
    assert existing.booking_email == "carl@example.com"


def test_resolver_prefers_configured_user(settings, practice_admin, therapist):
    assert DefaultTherapistResolver()() == practice_admin

    settings.BOOKING_WEBHOOK_DEFAULT_THERAPIST_ID = therapist.pk
    assert DefaultTherapistResolver()() == therapist


def test_resolver_ignores_inactive_admin(practice_admin):
    practice_admin.is_active = False
    practice_admin.save()

    assert DefaultTherapistResolver()() is None


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"email": "x@example.com"}, "booking_patient_id"),
        ({"booking_patient_id": "", "email": "x@example.com"}, "booking_patient_id"),
        ({"booking_patient_id": "b", "email": "x@example.com", "geburtsdatum": "17.05.1990"}, "geburtsdatum"),
        ({"booking_patient_id": "b", "email": "x@example.com", "geschlecht": "male"}, "geschlecht"),
        ({"booking_patient_id": "b", "email": "x@example.com", "telefon": "1" * 31}, "telefon"),
        ({"booking_patient_id": "b", "email": "x@example.com", "vorname": "x" * 101}, "vorname"),
    ],
)
def test_patient_schema_violations(practice_admin, payload, field):
    result = PatientCreatedHandler()(payload)

    assert result.status == "error"
    assert field in result.message
    assert Patient.objects.count() == 0


def test_patient_storage_failure_reports_generic_error(practice_admin, monkeypatch):
    def fail(**kwargs):
        raise DatabaseError("connection reset by peer")

    monkeypatch.setattr("apps.webhooks.handlers.Patient.objects.create", fail)
    result = PatientCreatedHandler()({"booking_patient_id": "bk-1", "email": "z@example.com"})

    assert result.status == "error"
    assert result.message == "Could not create patient."


def test_appointment_never_creates_patients(therapist):
    result = AppointmentEventHandler()(_appointment(booking_patient_id="ghost"))

    assert result.status == "error"
    assert Patient.objects.count() == 0
    assert Appointment.objects.count() == 0


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"scheduled_at": "2026-11-02T09:30:00"}, "scheduled_at"),
        ({"scheduled_at": "tomorrow"}, "scheduled_at"),
        ({"duration_minutes": 0}, "duration_minutes"),
        ({"duration_minutes": "30"}, "duration_minutes"),
        ({"duration_minutes": True}, "duration_minutes"),
        ({"status": "no_show"}, "status"),
        ({"service_name": "s" * 201}, "service_name"),
    ],
)
def test_appointment_schema_violations(patient, overrides, field):
    result = AppointmentEventHandler()(_appointment(**overrides))

    assert result.status == "error"
    assert result.message.startswith("Invalid appointment payload:")
    assert field in result.message
    assert Appointment.objects.count() == 0


def test_appointment_upsert_overwrites_mutable_fields(patient):
    handler = AppointmentEventHandler()
    handler(_appointment(therapist_name="Dr. Weber", service_name="KG"))
    first = Appointment.objects.get()
    created_at = first.created_at

    handler(_appointment(duration_minutes=50, therapist_name=None, status="completed"))

    appointment = Appointment.objects.get()
    assert appointment.pk == first.pk
    assert appointment.created_at == created_at
    assert appointment.duration_minutes == 50
    assert appointment.therapist_name is None
    assert appointment.service_name is None
    assert appointment.status == "completed"
    assert appointment.synced_at >= first.synced_at


def test_appointment_storage_failure_reports_generic_error(patient, monkeypatch):
    def fail(*args, **kwargs):
        raise DatabaseError("deadlock detected")

    monkeypatch.setattr("apps.webhooks.handlers.Appointment.objects.bulk_create", fail)
    result = AppointmentEventHandler()(_appointment())

    assert result.status == "error"
    assert result.message == "Could not save appointment."


def test_router_dispatches_registered_types():
    router = EventRouter()
    seen = []
    router.register("patient.merged", lambda payload: seen.append(payload) or "handled")

    assert router.dispatch("patient.merged", {"a": 1}) == "handled"
    assert seen == [{"a": 1}]
    assert router.dispatch("patient.deleted", {}).status == "error"


def test_default_router_covers_appointment_variants(patient):
    router = build_default_router()
    for index, event_type in enumerate(
        ("appointment.created", "appointment.updated", "appointment.cancelled")
    ):
        result = router.dispatch(event_type, _appointment(booking_appointment_id=f"a-{index}"))
        assert result.status == "success"
    assert Appointment.objects.count() == 3
