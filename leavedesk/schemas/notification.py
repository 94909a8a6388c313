from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, Dict, Optional
from leavedesk.models.notification import NotificationType


class NotificationCreate(BaseModel):
    user_id: int
    type: NotificationType
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    leave_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient_id: int
    triggered_by_id: Optional[int] = None
    leave_id: Optional[int] = None
    type: NotificationType
    title: str
    message: str
    is_read: bool
    # The ORM attribute is ``meta``; the column and the API field are ``metadata``
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("meta", "metadata"))
    created_at: Optional[datetime] = None


class UnreadCount(BaseModel):
    count: int
