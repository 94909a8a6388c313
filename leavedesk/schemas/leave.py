from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import List, Optional
from leavedesk.models.user import LeaveType
from leavedesk.models.leave import LeaveStatus
from leavedesk.schemas.file import FileResponse
from leavedesk.schemas.user import UserBrief


class LeaveCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(min_length=1)
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    file_ids: List[int] = Field(default_factory=list)


class LeaveUpdate(BaseModel):
    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = Field(default=None, min_length=1)
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    file_ids: List[int] = Field(default_factory=list)
    remove_file_ids: List[int] = Field(default_factory=list)


class LeaveRejectRequest(BaseModel):
    rejection_reason: str


class LeaveResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    leave_type: str
    start_date: date
    end_date: date
    days: int
    reason: str
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    status: LeaveStatus
    rejection_reason: Optional[str] = None
    actioned_by: Optional[int] = None
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserBrief] = None
    actioned_by_user: Optional[UserBrief] = None
    attachments: List[FileResponse] = []


class LeaveActionResponse(BaseModel):
    message: str
    leave: LeaveResponse
