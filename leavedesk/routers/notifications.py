from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from leavedesk.core.schemas import ApiResponse
from leavedesk.database import get_db
from leavedesk.models.user import User
from leavedesk.routers.auth_deps import get_current_user, require_manager
from leavedesk.schemas.notification import NotificationCreate, NotificationResponse, UnreadCount
from leavedesk.services.notification import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


@router.get("/", response_model=ApiResponse[List[NotificationResponse]])
def get_notifications(
    unread_only: bool = False,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    items = [NotificationResponse.model_validate(n) for n in service.list_for(current_user.id, unread_only)]
    return ApiResponse.ok(data=items, metadata={"count": len(items)})


@router.get("/unread-count", response_model=ApiResponse[UnreadCount])
def get_unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return ApiResponse.ok(data=UnreadCount(count=service.unread_count(current_user.id)))


@router.put("/mark-all-read", response_model=ApiResponse[dict])
def mark_all_notifications_as_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    updated = service.mark_all_read(current_user.id)
    return ApiResponse.ok(data={"updated": updated}, message="All notifications marked as read")


@router.put("/{notification_id}/read", response_model=ApiResponse[NotificationResponse])
def mark_notification_as_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    notification = service.mark_read(notification_id, current_user.id)
    return ApiResponse.ok(data=NotificationResponse.model_validate(notification), message="Notification marked as read")


@router.delete("/read/all", response_model=ApiResponse[dict])
def delete_read_notifications(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    deleted = service.delete_all_read(current_user.id)
    return ApiResponse.ok(data={"deleted": deleted}, message="Read notifications deleted")


@router.delete("/{notification_id}", response_model=ApiResponse[dict])
def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    service.delete(notification_id, current_user.id)
    return ApiResponse.ok(data={"id": notification_id}, message="Notification deleted")


@router.post("/", response_model=ApiResponse[NotificationResponse], status_code=status.HTTP_201_CREATED)
def create_notification(
    data: NotificationCreate,
    current_user: User = Depends(require_manager()),
    service: NotificationService = Depends(get_notification_service),
):
    notification = service.create(
        data.user_id,
        data.type,
        data.title,
        data.message,
        triggered_by_id=current_user.id,
        leave_id=data.leave_id,
        metadata=data.metadata,
    )
    return ApiResponse.ok(data=NotificationResponse.model_validate(notification), message="Notification created")
