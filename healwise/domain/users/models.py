from sqlalchemy import Column, String, Boolean, DateTime, Enum, Uuid
from sqlalchemy.sql import func
from healwise.infrastructure.database import Base
import uuid
import enum


class UserRole(str, enum.Enum):
    """User roles in the HealWise portal"""
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class User(Base):
    """Portal account for a patient, doctor or administrator"""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.PATIENT, index=True)
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    @property
    def is_doctor(self) -> bool:
        return self.role == UserRole.DOCTOR
