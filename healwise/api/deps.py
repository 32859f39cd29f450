from datetime import datetime
from fastapi import Depends
from sqlalchemy.orm import Session

from healwise.infrastructure.database import get_db
from healwise.domain.appointments.service import AppointmentService, Clock


def get_clock() -> Clock:
    return datetime.now


def get_appointment_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
) -> AppointmentService:
    return AppointmentService(db, clock=clock)
