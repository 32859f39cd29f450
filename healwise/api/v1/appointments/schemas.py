"""
Appointments API Schemas

Pydantic models for appointment-related API requests and responses.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime, date
import uuid
from healwise.domain.appointments.models import (
    AppointmentStatus, AppointmentType, AppointmentPriority,
    MIN_DURATION_MINUTES, MAX_DURATION_MINUTES, DEFAULT_DURATION_MINUTES
)
from healwise.domain.users.models import UserRole


# ==================== User Schemas ====================

class UserSummary(BaseModel):
    """Schema for the party of an appointment"""
    id: uuid.UUID
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class DoctorResponse(UserSummary):
    """Schema for a bookable doctor"""
    role: UserRole


# ==================== Appointment Schemas ====================

class AppointmentBase(BaseModel):
    """Base schema for appointment"""
    appointment_type: AppointmentType = AppointmentType.CONSULTATION
    priority: AppointmentPriority = AppointmentPriority.MEDIUM
    reason: str = Field(..., max_length=1000)
    symptoms: Optional[str] = Field(None, max_length=2000)
    patient_notes: Optional[str] = Field(None, max_length=2000)


class AppointmentCreate(AppointmentBase):
    """Schema for creating appointment"""
    doctor_id: uuid.UUID
    date_time: datetime
    duration: int = Field(DEFAULT_DURATION_MINUTES, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    # Only honoured for administrators booking on a patient's behalf
    patient_id: Optional[uuid.UUID] = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, v):
        if not v.strip():
            raise ValueError('Reason is required')
        return v


class AppointmentStatusUpdate(BaseModel):
    """Schema for appointment status change"""
    status: str = Field(..., min_length=1, max_length=50)
    doctor_notes: Optional[str] = Field(None, max_length=5000)
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class AppointmentCancel(BaseModel):
    """Schema for cancelling appointment"""
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentResponse(AppointmentBase):
    """Schema for appointment response"""
    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    patient: Optional[UserSummary] = None
    doctor: Optional[UserSummary] = None
    date_time: datetime
    duration: int
    status: AppointmentStatus
    doctor_notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[uuid.UUID] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list"""
    items: List[AppointmentResponse]
    total: int
    page: int
    limit: int
    pages: int


class AppointmentStatsResponse(BaseModel):
    """Schema for dashboard appointment counters"""
    total: int
    today: int
    upcoming: int
    completed: int
    cancelled: int


class AvailableSlot(BaseModel):
    """Schema for available time slot"""
    date_time: datetime
    time: str
    duration_minutes: int


class AvailableSlotsResponse(BaseModel):
    """Schema for available slots response"""
    doctor_id: uuid.UUID
    date: date
    slots: List[AvailableSlot]


class ConflictingAppointment(BaseModel):
    """Schema for the appointment blocking a proposed booking"""
    id: uuid.UUID
    date_time: datetime
    duration: int
    status: AppointmentStatus

    model_config = ConfigDict(from_attributes=True)


class ConflictCheckResponse(BaseModel):
    """Schema for conflict check response"""
    has_conflict: bool
    conflicting_appointment: Optional[ConflictingAppointment] = None
