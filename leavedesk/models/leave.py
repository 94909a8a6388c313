from datetime import date
from sqlalchemy import Column, Integer, String, Date, Text, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leavedesk.database import Base
import enum


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


def count_leave_days(start_date: date, end_date: date) -> int:
    """Inclusive calendar day count: a single-day leave is 1 day."""
    return (end_date - start_date).days + 1


class Leave(Base):
    __tablename__ = "leaves"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_leaves_date_order"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="ck_leaves_status",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(String(50), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    emergency_contact = Column(String, nullable=True)
    emergency_phone = Column(String, nullable=True)
    status = Column(String(20), default=LeaveStatus.PENDING.value, nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    actioned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    # Optimistic lock, same scheme as users.version_id
    version_id = Column(Integer, nullable=False, default=1)

    user = relationship("User", foreign_keys=[user_id], back_populates="leaves")
    actioned_by_user = relationship("User", foreign_keys=[actioned_by])
    attachments = relationship("File", back_populates="leave", order_by="File.id")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self):
        return f"<Leave {self.id} {self.leave_type} {self.start_date}..{self.end_date} ({self.status})>"

    @property
    def is_pending(self) -> bool:
        return self.status == LeaveStatus.PENDING.value
