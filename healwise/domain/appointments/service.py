"""
Appointments Service Layer

Business logic for appointment booking, the appointment lifecycle and
doctor slot availability.
"""

from typing import Optional, List, Dict, Any, Tuple, Callable, Union
from datetime import datetime, date, time, timedelta
import uuid
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from healwise.core.config import settings
from healwise.core.exceptions import (
    ValidationError, NotFoundError, AccessDeniedError, ConflictError,
    CancellationWindowError, InvalidDateError, InvalidTransitionError,
    handle_database_error
)
from healwise.domain.appointments.models import (
    Appointment, AppointmentStatus, AppointmentType, AppointmentPriority,
    SLOT_HOLDING_STATUSES, MIN_DURATION_MINUTES, MAX_DURATION_MINUTES,
    DEFAULT_DURATION_MINUTES
)
from healwise.domain.appointments.repository import AppointmentRepository
from healwise.domain.users.models import UserRole
from healwise.domain.users.repository import UserRepository


Clock = Callable[[], datetime]


def to_local_naive(value: datetime) -> datetime:
    """Normalize an aware datetime to naive server-local time"""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class AppointmentService:
    """Service layer for appointment management.

    Holds no state of its own: the database session and the clock are
    injected, and every read and write goes through the repositories.
    """

    def __init__(self, db, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or datetime.now
        self.appointment_repo = AppointmentRepository(db)
        self.user_repo = UserRepository(db)
        self.workday_start = timedelta(hours=settings.WORKDAY_START_HOUR)
        self.workday_end = timedelta(hours=settings.WORKDAY_END_HOUR)
        self.cancellation_window = timedelta(hours=settings.CANCELLATION_WINDOW_HOURS)

    # ==================== Validation helpers ====================

    @staticmethod
    def _validate_duration(duration: int) -> None:
        if not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
            raise ValidationError(
                message=f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes",
                details={"duration": duration}
            )

    def _get_doctor(self, doctor_id: uuid.UUID, for_update: bool = False):
        doctor = self.user_repo.get_by_id(doctor_id, for_update=for_update)
        if not doctor or not doctor.is_doctor:
            raise NotFoundError(message="Doctor not found")
        return doctor

    def _resolve_patient_id(
        self,
        caller_id: uuid.UUID,
        caller_role: UserRole,
        patient_id: Optional[uuid.UUID]
    ) -> uuid.UUID:
        """Work out whose appointment is being booked"""
        if caller_role == UserRole.PATIENT:
            if patient_id is not None and patient_id != caller_id:
                raise AccessDeniedError(message="Patients can only book appointments for themselves")
            return caller_id

        if caller_role == UserRole.ADMIN:
            if patient_id is None:
                raise ValidationError(message="Patient ID is required when booking on a patient's behalf")
            return patient_id

        raise AccessDeniedError(message="Only patients and administrators can book appointments")

    @staticmethod
    def _has_access(appointment: Appointment, caller_id: uuid.UUID, caller_role: UserRole) -> bool:
        return (
            caller_role == UserRole.ADMIN
            or (caller_role == UserRole.PATIENT and appointment.patient_id == caller_id)
            or (caller_role == UserRole.DOCTOR and appointment.doctor_id == caller_id)
        )

    def _get_accessible(
        self,
        caller_id: uuid.UUID,
        caller_role: UserRole,
        appointment_id: uuid.UUID
    ) -> Appointment:
        appointment = self.appointment_repo.get_by_id(appointment_id)
        if not appointment:
            raise NotFoundError(message="Appointment not found")

        if not self._has_access(appointment, caller_id, caller_role):
            logger.warning(f"Access denied to appointment {appointment_id} for {caller_role.value} {caller_id}")
            raise AccessDeniedError()

        return appointment

    @staticmethod
    def _scope(caller_id: uuid.UUID, caller_role: UserRole) -> Dict[str, Any]:
        """Repository filters restricting a listing to what the caller may see"""
        if caller_role == UserRole.PATIENT:
            return {"patient_id": caller_id}
        if caller_role == UserRole.DOCTOR:
            return {"doctor_id": caller_id}
        return {}

    # ==================== Booking ====================

    def check_conflict(
        self,
        doctor_id: uuid.UUID,
        date_time: datetime,
        duration: int,
        exclude_id: Optional[uuid.UUID] = None
    ) -> Optional[Appointment]:
        """Return the earliest slot-holding appointment overlapping the proposed interval"""
        self._validate_duration(duration)
        start = to_local_naive(date_time)
        overlapping = self.appointment_repo.get_overlapping(
            doctor_id,
            start,
            start + timedelta(minutes=duration),
            SLOT_HOLDING_STATUSES,
            exclude_id=exclude_id
        )
        return overlapping[0] if overlapping else None

    def create_appointment(
        self,
        caller_id: uuid.UUID,
        caller_role: UserRole,
        doctor_id: uuid.UUID,
        date_time: datetime,
        reason: str,
        duration: int = DEFAULT_DURATION_MINUTES,
        appointment_type: AppointmentType = AppointmentType.CONSULTATION,
        priority: AppointmentPriority = AppointmentPriority.MEDIUM,
        symptoms: Optional[str] = None,
        patient_notes: Optional[str] = None,
        patient_id: Optional[uuid.UUID] = None
    ) -> Appointment:
        """Book a new appointment in pending status"""
        patient_id = self._resolve_patient_id(caller_id, caller_role, patient_id)

        if not reason or not reason.strip():
            raise ValidationError(message="Reason is required", details={"field": "reason"})

        self._validate_duration(duration)

        date_time = to_local_naive(date_time)
        if date_time <= self.clock():
            raise ValidationError(
                message="Appointment date must be in the future",
                details={"date_time": date_time.isoformat()}
            )

        # The doctor row stays locked from here until the insert commits, so
        # concurrent bookings for the same doctor run the conflict scan one
        # at a time.
        try:
            self._get_doctor(doctor_id, for_update=True)

            if caller_role == UserRole.ADMIN:
                patient = self.user_repo.get_by_id(patient_id)
                if not patient or patient.role != UserRole.PATIENT:
                    raise NotFoundError(message="Patient not found")

            conflict = self.check_conflict(doctor_id, date_time, duration)
            if conflict:
                logger.info(
                    f"Booking for doctor {doctor_id} at {date_time.isoformat()} "
                    f"conflicts with appointment {conflict.id}"
                )
                raise ConflictError(
                    message="Doctor is not available at this time",
                    details={
                        "conflicting_appointment": {
                            "date_time": conflict.date_time.isoformat(),
                            "duration": conflict.duration
                        }
                    }
                )

            appointment = self.appointment_repo.create({
                "patient_id": patient_id,
                "doctor_id": doctor_id,
                "date_time": date_time,
                "duration": duration,
                "appointment_type": appointment_type,
                "priority": priority,
                "status": AppointmentStatus.PENDING,
                "reason": reason.strip(),
                "symptoms": symptoms,
                "patient_notes": patient_notes
            })
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, "appointment booking")
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Appointment {appointment.id} booked with doctor {doctor_id} at {date_time.isoformat()}")
        return appointment

    # ==================== Lifecycle ====================

    def _save(self, appointment_id: uuid.UUID, update_data: Dict[str, Any]) -> Appointment:
        try:
            return self.appointment_repo.update(appointment_id, update_data)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise handle_database_error(e, "appointment status change")

    def can_cancel(self, appointment: Appointment, now: Optional[datetime] = None) -> bool:
        """Whether the appointment is still open and outside the cancellation window"""
        now = now or self.clock()
        return (
            appointment.status in SLOT_HOLDING_STATUSES
            and appointment.date_time - now >= self.cancellation_window
        )

    def update_status(
        self,
        caller_id: uuid.UUID,
        caller_role: UserRole,
        appointment_id: uuid.UUID,
        target_status: Union[AppointmentStatus, str],
        doctor_notes: Optional[str] = None,
        cancellation_reason: Optional[str] = None
    ) -> Appointment:
        """Move an appointment through its lifecycle"""
        appointment = self._get_accessible(caller_id, caller_role, appointment_id)

        try:
            target = AppointmentStatus(target_status)
        except ValueError:
            raise InvalidTransitionError(
                message=f"Unknown appointment status: {target_status}",
                details={"status": str(target_status)}
            )

        if appointment.is_terminal:
            raise InvalidTransitionError(
                message=f"Appointment is already {appointment.status.value}",
                details={"status": appointment.status.value, "target": target.value}
            )

        if target == AppointmentStatus.CONFIRMED:
            return self._confirm(appointment, caller_role)
        if target == AppointmentStatus.COMPLETED:
            return self._complete(appointment, caller_role, doctor_notes)
        if target == AppointmentStatus.CANCELLED:
            return self._cancel(appointment, caller_id, cancellation_reason)

        raise InvalidTransitionError(
            message=f"Cannot change status from {appointment.status.value} to {target.value}",
            details={"status": appointment.status.value, "target": target.value}
        )

    def _confirm(self, appointment: Appointment, caller_role: UserRole) -> Appointment:
        if caller_role != UserRole.DOCTOR:
            raise AccessDeniedError(message="Only doctors can confirm appointments")

        if appointment.status not in (AppointmentStatus.PENDING, AppointmentStatus.SCHEDULED):
            raise InvalidTransitionError(
                message=f"Cannot confirm a {appointment.status.value} appointment",
                details={"status": appointment.status.value}
            )

        appointment = self._save(appointment.id, {
            "status": AppointmentStatus.CONFIRMED,
            "confirmed_at": self.clock()
        })
        logger.info(f"Appointment {appointment.id} confirmed")
        return appointment

    def _complete(
        self,
        appointment: Appointment,
        caller_role: UserRole,
        doctor_notes: Optional[str]
    ) -> Appointment:
        if caller_role != UserRole.DOCTOR:
            raise AccessDeniedError(message="Only doctors can mark appointments as completed")

        appointment = self._save(appointment.id, {
            "status": AppointmentStatus.COMPLETED,
            "completed_at": self.clock(),
            "doctor_notes": doctor_notes
        })
        logger.info(f"Appointment {appointment.id} completed")
        return appointment

    def _cancel(
        self,
        appointment: Appointment,
        caller_id: uuid.UUID,
        reason: Optional[str]
    ) -> Appointment:
        now = self.clock()
        if not self.can_cancel(appointment, now):
            raise CancellationWindowError(
                message=(
                    "Appointment cannot be cancelled less than "
                    f"{settings.CANCELLATION_WINDOW_HOURS} hours before its start time"
                ),
                details={
                    "date_time": appointment.date_time.isoformat(),
                    "window_hours": settings.CANCELLATION_WINDOW_HOURS
                }
            )

        appointment = self._save(appointment.id, {
            "status": AppointmentStatus.CANCELLED,
            "cancelled_by": caller_id,
            "cancelled_at": now,
            "cancellation_reason": reason
        })
        logger.info(f"Appointment {appointment.id} cancelled by {caller_id}")
        return appointment

    def cancel_appointment(
        self,
        caller_id: uuid.UUID,
        caller_role: UserRole,
        appointment_id: uuid.UUID,
        reason: Optional[str] = None
    ) -> Appointment:
        """Cancel an appointment"""
        return self.update_status(
            caller_id,
            caller_role,
            appointment_id,
            AppointmentStatus.CANCELLED,
            cancellation_reason=reason
        )

    # ==================== Availability ====================

    def get_available_slots(
        self,
        doctor_id: uuid.UUID,
        target_date: date,
        duration: int = DEFAULT_DURATION_MINUTES
    ) -> List[datetime]:
        """Get free slot start times for a doctor within the working window"""
        self._validate_duration(duration)
        self._get_doctor(doctor_id)

        day_start = datetime.combine(target_date, time.min)
        if day_start <= self.clock():
            raise InvalidDateError(details={"date": target_date.isoformat()})

        step = timedelta(minutes=duration)
        window_start = day_start + self.workday_start
        window_end = day_start + self.workday_end

        # The last candidate may run past the window end, so look that far too
        booked = self.appointment_repo.get_overlapping(
            doctor_id, window_start, window_end + step, SLOT_HOLDING_STATUSES
        )

        slots = []
        slot_start = window_start
        while slot_start < window_end:
            slot_end = slot_start + step
            if not any(appointment.overlaps(slot_start, slot_end) for appointment in booked):
                slots.append(slot_start)
            slot_start = slot_end

        return slots

    # ==================== Queries ====================

    def get_appointment(
        self,
        caller_id: uuid.UUID,
        caller_role: UserRole,
        appointment_id: uuid.UUID
    ) -> Appointment:
        """Get appointment by ID"""
        return self._get_accessible(caller_id, caller_role, appointment_id)

    def list_appointments(
        self,
        caller_id: uuid.UUID,
        caller_role: UserRole,
        status: Optional[AppointmentStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 10
    ) -> Tuple[List[Appointment], int]:
        """Get the caller's appointments with filtering and pagination"""
        filters = self._scope(caller_id, caller_role)
        filters.update({
            "statuses": [status] if status else None,
            "date_from": to_local_naive(date_from) if date_from else None,
            "date_to": to_local_naive(date_to) if date_to else None,
        })

        appointments = self.appointment_repo.get_all(skip=skip, limit=limit, **filters)
        total = self.appointment_repo.count(**filters)

        return appointments, total

    def get_appointment_stats(self, caller_id: uuid.UUID, caller_role: UserRole) -> Dict[str, int]:
        """Dashboard counters for the caller's appointments"""
        scope = self._scope(caller_id, caller_role)
        now = self.clock()
        start_of_today = datetime.combine(now.date(), time.min)
        end_of_today = datetime.combine(now.date(), time.max)

        return {
            "total": self.appointment_repo.count(**scope),
            "today": self.appointment_repo.count(
                date_from=start_of_today, date_to=end_of_today, **scope
            ),
            "upcoming": self.appointment_repo.count(
                statuses=SLOT_HOLDING_STATUSES, date_from=now, **scope
            ),
            "completed": self.appointment_repo.count(
                statuses=[AppointmentStatus.COMPLETED], **scope
            ),
            "cancelled": self.appointment_repo.count(
                statuses=[AppointmentStatus.CANCELLED], **scope
            ),
        }

    def list_doctors(self):
        """Active doctors available for booking, ordered by name"""
        return self.user_repo.get_by_role(UserRole.DOCTOR)
