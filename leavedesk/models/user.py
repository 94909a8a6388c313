"""
User Model.
Carries the per-user leave balance map alongside identity and role.
"""
from sqlalchemy import Column, Integer, String, Enum, Date, DateTime, Boolean, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from leavedesk.database import Base


class UserRole(str, enum.Enum):
    """
    User roles.

    - ADMIN: Full access, user management, approvals
    - MANAGER: Approves, rejects and deletes leave requests
    - EMPLOYEE: Self-service access
    """
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class LeaveType(str, enum.Enum):
    ANNUAL = "AnnualLeave"
    SICK = "SickLeave"
    FAMILY_RESPONSIBILITY = "FamilyResponsibility"
    UNPAID = "UnpaidLeave"
    OTHER = "Other"


DEFAULT_LEAVE_BALANCES = {
    LeaveType.ANNUAL.value: 15,
    LeaveType.SICK.value: 10,
    LeaveType.FAMILY_RESPONSIBILITY.value: 5,
    LeaveType.UNPAID.value: 0,
    LeaveType.OTHER.value: 3,
}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)

    department = Column(String, nullable=True)
    position = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    join_date = Column(Date, nullable=True)

    # Leave type name -> remaining days. Always rewritten as a whole by the ledger.
    leave_balances = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_LEAVE_BALANCES))
    # Optimistic lock: every UPDATE on the row checks and bumps this counter
    version_id = Column(Integer, nullable=False, default=1)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    leaves = relationship("Leave", foreign_keys="[Leave.user_id]", back_populates="user")
    notifications = relationship(
        "Notification", foreign_keys="[Notification.recipient_id]", back_populates="recipient"
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def can_approve(self) -> bool:
        """Check if user can approve, reject or delete leave requests."""
        return self.role in [UserRole.ADMIN, UserRole.MANAGER]
