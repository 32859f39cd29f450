"""
Appointments API Routes

API endpoints for appointment booking, lifecycle changes and availability.
"""

from fastapi import APIRouter, Depends, status, Query
from typing import List, Optional
from datetime import date, datetime
import uuid
import math

from healwise.api.deps import get_appointment_service
from healwise.core.permissions import require_roles, caller_id, caller_role
from healwise.domain.appointments.service import AppointmentService
from healwise.domain.appointments.models import (
    AppointmentStatus, MIN_DURATION_MINUTES, MAX_DURATION_MINUTES,
    DEFAULT_DURATION_MINUTES
)
from healwise.api.v1.appointments.schemas import (
    AppointmentCreate, AppointmentStatusUpdate, AppointmentCancel,
    AppointmentResponse, AppointmentListResponse, AppointmentStatsResponse,
    AvailableSlot, AvailableSlotsResponse, ConflictCheckResponse, ConflictingAppointment,
    DoctorResponse
)

router = APIRouter()


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """List the caller's appointments with filtering and pagination"""
    appointments, total = service.list_appointments(
        caller_id(current_user),
        caller_role(current_user),
        status=status_filter,
        date_from=start_date,
        date_to=end_date,
        skip=(page - 1) * limit,
        limit=limit
    )

    return AppointmentListResponse(
        items=[AppointmentResponse.model_validate(appointment) for appointment in appointments],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if total > 0 else 1
    )


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    appointment_data: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """Book a new appointment"""
    return service.create_appointment(
        caller_id(current_user),
        caller_role(current_user),
        doctor_id=appointment_data.doctor_id,
        date_time=appointment_data.date_time,
        reason=appointment_data.reason,
        duration=appointment_data.duration,
        appointment_type=appointment_data.appointment_type,
        priority=appointment_data.priority,
        symptoms=appointment_data.symptoms,
        patient_notes=appointment_data.patient_notes,
        patient_id=appointment_data.patient_id
    )


@router.get("/stats", response_model=AppointmentStatsResponse)
def get_appointment_stats(
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """Appointment counters for the caller's dashboard"""
    return service.get_appointment_stats(caller_id(current_user), caller_role(current_user))


@router.get("/doctors", response_model=List[DoctorResponse])
def list_doctors(
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """Doctors available for booking"""
    return service.list_doctors()


@router.get("/available-slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    doctor_id: uuid.UUID,
    target_date: date = Query(..., alias="date"),
    duration: int = Query(DEFAULT_DURATION_MINUTES, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """Get available time slots for a doctor on a specific date"""
    slots = service.get_available_slots(doctor_id, target_date, duration)

    return AvailableSlotsResponse(
        doctor_id=doctor_id,
        date=target_date,
        slots=[
            AvailableSlot(
                date_time=slot,
                time=slot.strftime("%I:%M %p").lstrip("0"),
                duration_minutes=duration
            )
            for slot in slots
        ]
    )


@router.get("/conflicts", response_model=ConflictCheckResponse)
def check_conflict(
    doctor_id: uuid.UUID,
    date_time: datetime,
    duration: int = Query(DEFAULT_DURATION_MINUTES, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES),
    exclude_id: Optional[uuid.UUID] = None,
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """Probe whether a proposed booking would clash with an existing one"""
    conflict = service.check_conflict(doctor_id, date_time, duration, exclude_id=exclude_id)
    return ConflictCheckResponse(
        has_conflict=conflict is not None,
        conflicting_appointment=ConflictingAppointment.model_validate(conflict) if conflict else None
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: uuid.UUID,
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """Get appointment by ID"""
    return service.get_appointment(caller_id(current_user), caller_role(current_user), appointment_id)


@router.put("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: uuid.UUID,
    update_data: AppointmentStatusUpdate,
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """Confirm, complete or cancel an appointment"""
    return service.update_status(
        caller_id(current_user),
        caller_role(current_user),
        appointment_id,
        update_data.status,
        doctor_notes=update_data.doctor_notes,
        cancellation_reason=update_data.cancellation_reason
    )


@router.delete("/{appointment_id}", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: uuid.UUID,
    cancel_data: Optional[AppointmentCancel] = None,
    service: AppointmentService = Depends(get_appointment_service),
    current_user = Depends(require_roles())
):
    """Cancel an appointment"""
    return service.cancel_appointment(
        caller_id(current_user),
        caller_role(current_user),
        appointment_id,
        reason=cancel_data.reason if cancel_data else None
    )
