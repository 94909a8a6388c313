from typing import Any, Dict, List, Optional, Union
from leavedesk.core.exceptions import AccessDeniedError, NotFoundError
from leavedesk.models.notification import Notification, NotificationType
from leavedesk.models.user import User
from leavedesk.services.base import BaseService


class NotificationService(BaseService):
    """Appends notification rows and serves recipient-scoped reads and deletes."""

    def emit(
        self,
        recipient_id: int,
        type: Union[NotificationType, str],
        title: str,
        message: str,
        triggered_by_id: Optional[int] = None,
        leave_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """
        Add a notification to the current transaction. Does not commit, so a
        failed leave operation leaves no notification behind.
        """
        notification = Notification(
            recipient_id=recipient_id,
            triggered_by_id=triggered_by_id,
            leave_id=leave_id,
            type=NotificationType(type).value,
            title=title,
            message=message,
            meta=metadata,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def create(self, recipient_id: int, type, title: str, message: str, **kwargs) -> Notification:
        """Standalone creation used by the notifications endpoint."""
        if self.db.query(User.id).filter(User.id == recipient_id).first() is None:
            raise NotFoundError("User", recipient_id)
        with self.transaction():
            notification = self.emit(recipient_id, type, title, message, **kwargs)
        self.db.refresh(notification)
        return notification

    def list_for(self, recipient_id: int, unread_only: bool = False) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def unread_count(self, recipient_id: int) -> int:
        return self.db.query(Notification).filter(
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False)
        ).count()

    def _owned(self, notification_id: int, recipient_id: int, action: str) -> Notification:
        notification = self.db.query(Notification).filter(Notification.id == notification_id).first()
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if notification.recipient_id != recipient_id:
            raise AccessDeniedError(f"Unauthorized to {action} this notification")
        return notification

    def mark_read(self, notification_id: int, recipient_id: int) -> Notification:
        notification = self._owned(notification_id, recipient_id, "mark")
        with self.transaction():
            notification.is_read = True
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, recipient_id: int) -> int:
        with self.transaction():
            count = self.db.query(Notification).filter(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False)
            ).update({Notification.is_read: True}, synchronize_session=False)
        return count

    def delete(self, notification_id: int, recipient_id: int) -> None:
        notification = self._owned(notification_id, recipient_id, "delete")
        with self.transaction():
            self.db.delete(notification)

    def delete_all_read(self, recipient_id: int) -> int:
        with self.transaction():
            count = self.db.query(Notification).filter(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(True)
            ).delete(synchronize_session=False)
        return count
