from pydantic import BaseModel, EmailStr, ConfigDict, Field
from typing import Dict, Optional
from datetime import date, datetime
from leavedesk.models.user import UserRole, LeaveType


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    department: Optional[str] = None
    position: Optional[str] = None
    avatar: Optional[str] = None


class UserBase(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    join_date: Optional[date] = None


class UserCreate(UserBase):
    password: str = Field(min_length=8)
    role: UserRole = UserRole.EMPLOYEE
    leave_balances: Optional[Dict[LeaveType, int]] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    join_date: Optional[date] = None
    password: Optional[str] = Field(default=None, min_length=8)
    role: Optional[UserRole] = None
    leave_balances: Optional[Dict[LeaveType, int]] = None


class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role: UserRole
    leave_balances: Dict[str, int]
    is_active: bool
    created_at: Optional[datetime] = None
