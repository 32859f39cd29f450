from typing import Optional, List
from sqlalchemy.orm import Session
import uuid

from healwise.domain.users.models import User, UserRole


class UserRepository:
    """Repository for user data access operations"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_data: dict) -> User:
        """Create a new user"""
        user = User(**user_data)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_by_id(self, user_id: uuid.UUID, for_update: bool = False) -> Optional[User]:
        """Get user by ID, optionally locking the row for the current transaction"""
        query = self.db.query(User).filter(User.id == user_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_by_role(self, role: UserRole, active_only: bool = True) -> List[User]:
        """Get all users with a role, ordered by name"""
        query = self.db.query(User).filter(User.role == role)
        if active_only:
            query = query.filter(User.is_active == True)
        return query.order_by(User.name).all()
