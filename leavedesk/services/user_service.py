from typing import Dict, List, Optional

from leavedesk.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from leavedesk.models.leave import Leave
from leavedesk.models.notification import Notification
from leavedesk.models.user import User, UserRole, LeaveType, DEFAULT_LEAVE_BALANCES
from leavedesk.schemas.user import UserCreate, UserUpdate
from leavedesk.services import auth as auth_service
from leavedesk.services.base import BaseService


def _merge_balances(current: Optional[dict], changes: Optional[Dict[LeaveType, int]]) -> dict:
    balances = dict(current or {})
    for leave_type, days in (changes or {}).items():
        if days < 0:
            raise ValidationError(
                "Leave balances cannot be negative",
                details={"leave_type": LeaveType(leave_type).value, "value": days},
            )
        balances[LeaveType(leave_type).value] = days
    return balances


class UserService(BaseService):
    """Account management. Balance edits here are the direct admin override of the ledger."""

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.name, User.id).all()

    def create_user(self, data: UserCreate) -> User:
        email = data.email.lower()
        if self.db.query(User).filter(User.email == email).first():
            raise ValidationError("Email already registered", details={"email": email})

        user = User(
            name=data.name.strip(),
            email=email,
            hashed_password=auth_service.get_password_hash(data.password),
            role=data.role,
            department=data.department,
            position=data.position,
            phone=data.phone,
            avatar=data.avatar,
            join_date=data.join_date,
            leave_balances=_merge_balances(DEFAULT_LEAVE_BALANCES, data.leave_balances),
        )
        with self.transaction():
            self.db.add(user)
        self.db.refresh(user)
        self.log_info(f"User {user.id} created", user_id=user.id, role=user.role.value)
        return user

    def update_user(self, user_id: int, actor: User, data: UserUpdate) -> User:
        if actor.id != user_id and not actor.is_admin:
            raise AccessDeniedError("You can only update your own profile")
        fields = data.model_dump(exclude_unset=True)
        if ("role" in fields or "leave_balances" in fields) and not actor.is_admin:
            raise AccessDeniedError("Only admins can change roles or leave balances")

        user = self.get_user(user_id)
        if data.email is not None:
            email = data.email.lower()
            existing = self.db.query(User).filter(User.email == email).first()
            if existing and existing.id != user.id:
                raise ValidationError("Email already in use", details={"email": email})
            user.email = email

        with self.transaction():
            if data.name is not None:
                user.name = data.name.strip()
            for field in ("department", "position", "phone", "avatar", "join_date"):
                if field in fields:
                    setattr(user, field, fields[field])
            if data.password:
                user.hashed_password = auth_service.get_password_hash(data.password)
            if data.role is not None:
                user.role = data.role
            if data.leave_balances is not None:
                user.leave_balances = _merge_balances(user.leave_balances, data.leave_balances)

        self.db.refresh(user)
        self.log_info(f"User {user.id} updated by user {actor.id}", user_id=user.id)
        return user

    def delete_user(self, user_id: int, actor: User) -> None:
        if not actor.is_admin:
            raise AccessDeniedError("Admin access required")
        if actor.id == user_id:
            raise ValidationError("You cannot delete your own account")

        user = self.get_user(user_id)
        has_leaves = self.db.query(Leave.id).filter(
            (Leave.user_id == user.id) | (Leave.actioned_by == user.id)
        ).first()
        has_notifications = self.db.query(Notification.id).filter(
            (Notification.recipient_id == user.id) | (Notification.triggered_by_id == user.id)
        ).first()
        if has_leaves or has_notifications:
            raise ValidationError(
                "User has leave requests or notifications and cannot be deleted",
                details={"user_id": user.id},
            )

        with self.transaction():
            self.db.delete(user)
        self.log_info(f"User {user_id} deleted by user {actor.id}", user_id=user_id)
