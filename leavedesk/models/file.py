from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leavedesk.database import Base


class File(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    storage_key = Column(String, nullable=False, unique=True)
    size = Column(Integer, nullable=False)
    type = Column(String(120), nullable=False)
    # NULL means the upload is temporary and eligible for the orphan sweep
    leave_id = Column(Integer, ForeignKey("leaves.id", ondelete="SET NULL"), nullable=True, index=True)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    leave = relationship("Leave", back_populates="attachments")
