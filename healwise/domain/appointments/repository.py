"""
Appointments Repository Layer

Provides data access operations for appointments.
"""

from typing import Optional, List, Sequence
from sqlalchemy import and_, func
from sqlalchemy.orm import Session, joinedload
from datetime import datetime, timedelta
import uuid

from healwise.domain.appointments.models import (
    Appointment, AppointmentStatus, MAX_DURATION_MINUTES
)


class AppointmentRepository:
    """Repository for appointment data access operations"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, appointment_data: dict) -> Appointment:
        """Create a new appointment"""
        appointment = Appointment(**appointment_data)
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def get_by_id(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        """Get appointment by ID with relationships"""
        return self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor)
        ).filter(Appointment.id == appointment_id).first()

    def _apply_filters(
        self,
        query,
        patient_id: Optional[uuid.UUID] = None,
        doctor_id: Optional[uuid.UUID] = None,
        statuses: Optional[Sequence[AppointmentStatus]] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None
    ):
        if patient_id:
            query = query.filter(Appointment.patient_id == patient_id)
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if statuses:
            query = query.filter(Appointment.status.in_(list(statuses)))
        if date_from:
            query = query.filter(Appointment.date_time >= date_from)
        if date_to:
            query = query.filter(Appointment.date_time <= date_to)
        return query

    def get_all(
        self,
        skip: int = 0,
        limit: int = 10,
        patient_id: Optional[uuid.UUID] = None,
        doctor_id: Optional[uuid.UUID] = None,
        statuses: Optional[Sequence[AppointmentStatus]] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None
    ) -> List[Appointment]:
        """Get appointments with filtering, newest first"""
        query = self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor)
        )
        query = self._apply_filters(query, patient_id, doctor_id, statuses, date_from, date_to)

        return query.order_by(
            Appointment.date_time.desc()
        ).offset(skip).limit(limit).all()

    def count(
        self,
        patient_id: Optional[uuid.UUID] = None,
        doctor_id: Optional[uuid.UUID] = None,
        statuses: Optional[Sequence[AppointmentStatus]] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None
    ) -> int:
        """Count appointments with filters"""
        query = self.db.query(func.count(Appointment.id))
        query = self._apply_filters(query, patient_id, doctor_id, statuses, date_from, date_to)
        return query.scalar()

    def get_overlapping(
        self,
        doctor_id: uuid.UUID,
        start: datetime,
        end: datetime,
        statuses: Sequence[AppointmentStatus],
        exclude_id: Optional[uuid.UUID] = None
    ) -> List[Appointment]:
        """Get a doctor's appointments overlapping [start, end), earliest first"""
        # Narrow in SQL on start time only; the end-time test needs interval
        # arithmetic that differs per dialect, so it runs on the loaded rows.
        query = self.db.query(Appointment).filter(
            and_(
                Appointment.doctor_id == doctor_id,
                Appointment.status.in_(list(statuses)),
                Appointment.date_time < end,
                Appointment.date_time > start - timedelta(minutes=MAX_DURATION_MINUTES)
            )
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)

        candidates = query.order_by(Appointment.date_time).all()
        return [appointment for appointment in candidates if appointment.overlaps(start, end)]

    def update(self, appointment_id: uuid.UUID, update_data: dict) -> Optional[Appointment]:
        """Update appointment"""
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).first()
        if appointment:
            for key, value in update_data.items():
                if hasattr(appointment, key) and value is not None:
                    setattr(appointment, key, value)
            self.db.commit()
            self.db.refresh(appointment)
        return appointment
