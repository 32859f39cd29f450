"""
Appointments Domain Models

Implements the database model for patient-doctor appointments and the
enumerations that drive the appointment lifecycle.
"""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Text, Enum,
    CheckConstraint, Index, Uuid
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from healwise.infrastructure.database import Base
from datetime import datetime, timedelta
import uuid
import enum


class AppointmentStatus(str, enum.Enum):
    """Appointment status enumeration"""
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentType(str, enum.Enum):
    """Type of appointment"""
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow-up"
    CHECKUP = "checkup"
    EMERGENCY = "emergency"
    ROUTINE = "routine"


class AppointmentPriority(str, enum.Enum):
    """Triage priority of an appointment"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Statuses whose interval blocks the doctor's calendar
SLOT_HOLDING_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
)

TERMINAL_STATUSES = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
)

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 180
DEFAULT_DURATION_MINUTES = 30


class Appointment(Base):
    """Appointment model for patient-doctor appointments"""
    __tablename__ = "appointments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Patient and doctor
    patient_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    # Scheduling
    date_time = Column(DateTime, nullable=False, index=True)
    duration = Column(Integer, nullable=False, default=DEFAULT_DURATION_MINUTES)

    # Type, status and priority
    appointment_type = Column(Enum(AppointmentType), nullable=False, default=AppointmentType.CONSULTATION)
    status = Column(Enum(AppointmentStatus), nullable=False, default=AppointmentStatus.PENDING)
    priority = Column(Enum(AppointmentPriority), nullable=False, default=AppointmentPriority.MEDIUM)

    # Visit details
    reason = Column(Text, nullable=False)
    symptoms = Column(Text)
    patient_notes = Column(Text)
    doctor_notes = Column(Text)

    # Lifecycle tracking
    confirmed_at = Column(DateTime)
    completed_at = Column(DateTime)

    # Cancellation
    cancelled_at = Column(DateTime)
    cancelled_by = Column(Uuid, ForeignKey("users.id"))
    cancellation_reason = Column(String(500))

    # Audit
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])
    cancelled_user = relationship("User", foreign_keys=[cancelled_by])

    __table_args__ = (
        CheckConstraint(
            f'duration >= {MIN_DURATION_MINUTES} AND duration <= {MAX_DURATION_MINUTES}',
            name='check_duration_range'
        ),
        CheckConstraint('patient_id != doctor_id', name='check_distinct_parties'),
        Index('ix_appointments_doctor_date_time', 'doctor_id', 'date_time'),
    )

    @property
    def end_time(self) -> datetime:
        return self.date_time + timedelta(minutes=self.duration)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open interval test against [start, end)"""
        return self.date_time < end and self.end_time > start
