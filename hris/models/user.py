"""
User Model with office roles.
Division is the org unit used to scope review rights.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from hris.database import Base


class UserRole(str, enum.Enum):
    """
    Office roles, most to least permissions:
    - HEAD_OF_OFFICE: office head; finalizes and approves
    - ADMIN_STAFF: administrative staff; same office-wide rights as the head
    - DIVISION_CHIEF: reviews forms of their own division
    - PROJECT_STAFF: regular employee, self-service only
    """
    HEAD_OF_OFFICE = "head_of_office"
    ADMIN_STAFF = "admin_staff"
    DIVISION_CHIEF = "division_chief"
    PROJECT_STAFF = "project_staff"


# Roles holding office-wide administrative rights
HR_MANAGER_ROLES = (UserRole.HEAD_OF_OFFICE, UserRole.ADMIN_STAFF)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    position = Column(String, nullable=True)

    role = Column(Enum(UserRole), default=UserRole.PROJECT_STAFF, nullable=False)
    division = Column(String, nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_hr_manager(self) -> bool:
        return self.role in HR_MANAGER_ROLES

    @property
    def is_division_chief(self) -> bool:
        return self.role == UserRole.DIVISION_CHIEF
