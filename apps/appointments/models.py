"""Domain models for the appointments module."""

from django.db import models

from apps.common.models import TimeStampedModel
from apps.patients.models import Patient


class AppointmentStatus(models.TextChoices):
    """Lifecycle states mirrored from the booking tool."""

    SCHEDULED = "scheduled", "Scheduled"
    CANCELLED = "cancelled", "Cancelled"
    COMPLETED = "completed", "Completed"


class Appointment(TimeStampedModel):
    """Local cache of an appointment booked in the external booking tool."""

    patient = models.ForeignKey(
        Patient, on_delete=models.CASCADE, related_name="appointments"
    )
    booking_system_appointment_id = models.CharField(max_length=255, unique=True)
    scheduled_at = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField()
    therapist_name = models.CharField(max_length=200, null=True, blank=True)
    service_name = models.CharField(max_length=200, null=True, blank=True)
    status = models.CharField(
        max_length=16,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.SCHEDULED,
    )
    synced_at = models.DateTimeField()

    class Meta:
        ordering = ["scheduled_at"]

    def __str__(self) -> str:
        return f"{self.booking_system_appointment_id} @ {self.scheduled_at:%Y-%m-%d %H:%M}"
