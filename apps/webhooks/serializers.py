"""Request schemas for booking webhook events."""

from __future__ import annotations

from django.utils.dateparse import parse_datetime
from rest_framework import serializers

from apps.appointments.models import AppointmentStatus
from apps.patients.models import Gender


class StrictCharField(serializers.CharField):
    """CharField that refuses numbers instead of coercing them to text."""

    def __init__(self, **kwargs):
        kwargs.setdefault("trim_whitespace", False)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail("invalid")
        return super().to_internal_value(data)


class StrictIntegerField(serializers.IntegerField):
    def to_internal_value(self, data):
        if isinstance(data, bool) or not isinstance(data, int):
            self.fail("invalid")
        return super().to_internal_value(data)


class OffsetDateTimeField(serializers.DateTimeField):
    """ISO-8601 timestamp that must carry an explicit UTC offset or ``Z``."""

    default_error_messages = {
        "offset_required": "Timestamp must include a UTC offset.",
    }

    def to_internal_value(self, value):
        if isinstance(value, str):
            parsed = parse_datetime(value)
            if parsed is not None and parsed.tzinfo is None:
                self.fail("offset_required")
        return super().to_internal_value(value)


class WebhookEnvelopeSerializer(serializers.Serializer):
    event_type = StrictCharField(max_length=100)
    payload = serializers.DictField()


class PatientCreatedSerializer(serializers.Serializer):
    booking_patient_id = StrictCharField(min_length=1)
    email = serializers.EmailField()
    vorname = StrictCharField(min_length=1, max_length=100, required=False)
    nachname = StrictCharField(min_length=1, max_length=100, required=False)
    telefon = StrictCharField(max_length=30, required=False, allow_null=True, allow_blank=True)
    geburtsdatum = serializers.DateField(input_formats=["%Y-%m-%d"], required=False, allow_null=True)
    geschlecht = serializers.ChoiceField(choices=Gender.choices, default=Gender.UNKNOWN)


class AppointmentEventSerializer(serializers.Serializer):
    booking_appointment_id = StrictCharField(min_length=1)
    booking_patient_id = StrictCharField(min_length=1)
    scheduled_at = OffsetDateTimeField()
    duration_minutes = StrictIntegerField(min_value=1)
    therapist_name = StrictCharField(max_length=200, required=False, allow_null=True, allow_blank=True)
    service_name = StrictCharField(max_length=200, required=False, allow_null=True, allow_blank=True)
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, default=AppointmentStatus.SCHEDULED)
