# Appointments domain module
from healwise.domain.appointments.models import (
    Appointment,
    AppointmentPriority,
    AppointmentStatus,
    AppointmentType,
)

__all__ = [
    "Appointment",
    "AppointmentPriority",
    "AppointmentStatus",
    "AppointmentType",
]
