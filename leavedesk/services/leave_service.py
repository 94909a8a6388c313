"""
Leave Lifecycle Service

Governs the status transitions of a leave request and the side effects of
each one. Every operation is a single transaction: the balance ledger, the
attachment links and the notification rows either all change or none do.

    pending --approve--> approved
    pending --reject---> rejected
    pending --cancel---> cancelled
    any     --delete---> (removed; approved leaves are credited back)

Only pending leaves may be edited, approved, rejected or cancelled.
"""
from datetime import date
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from leavedesk.core.exceptions import (
    AccessDeniedError,
    InvalidTransitionError,
    NotFoundError,
    OverlapConflictError,
    ValidationError,
)
from leavedesk.models.leave import Leave, LeaveStatus, count_leave_days
from leavedesk.models.notification import Notification, NotificationType
from leavedesk.models.user import User, UserRole, LeaveType
from leavedesk.schemas.leave import LeaveCreate, LeaveUpdate
from leavedesk.services.attachments import AttachmentManager
from leavedesk.services.base import BaseService
from leavedesk.services.ledger import LeaveBalanceLedger
from leavedesk.services.notification import NotificationService
from leavedesk.services.storage import LocalFileStorage


def _plural_days(days: int) -> str:
    return f"{days} day{'s' if days != 1 else ''}"


def describe_approval(leave: Leave) -> str:
    if leave.leave_type == LeaveType.UNPAID.value:
        return "Unpaid leave approved successfully"
    return f"Leave approved and {leave.days} days deducted from {leave.leave_type} balance"


class LeaveService(BaseService):

    def __init__(
        self,
        db: Session,
        storage: LocalFileStorage,
        clock: Callable[[], date] = date.today,
    ):
        super().__init__(db)
        self.ledger = LeaveBalanceLedger(db)
        self.attachments = AttachmentManager(db, storage)
        self.notifications = NotificationService(db)
        self.clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_leave(self, leave_id: int, actor: User) -> Leave:
        leave = self._get(leave_id)
        if leave.user_id != actor.id and not actor.can_approve:
            raise AccessDeniedError("Unauthorized access")
        return leave

    def list_leaves(
        self,
        status: Optional[LeaveStatus] = None,
        user_id: Optional[int] = None,
        leave_type: Optional[LeaveType] = None,
    ) -> List[Leave]:
        query = self.db.query(Leave)
        if status:
            query = query.filter(Leave.status == LeaveStatus(status).value)
        if user_id:
            query = query.filter(Leave.user_id == user_id)
        if leave_type:
            query = query.filter(Leave.leave_type == LeaveType(leave_type).value)
        return query.order_by(Leave.submitted_at.desc(), Leave.id.desc()).all()

    def list_user_leaves(self, user_id: int, status: Optional[LeaveStatus] = None) -> List[Leave]:
        return self.list_leaves(status=status, user_id=user_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create_leave(self, owner: User, data: LeaveCreate) -> Leave:
        self._validate_dates(data.start_date, data.end_date)
        days = count_leave_days(data.start_date, data.end_date)

        with self.transaction():
            user = self.ledger.lock(owner.id)
            # Checked only; the debit happens on approval
            self.ledger.ensure_available(user, data.leave_type, days)
            self._ensure_no_overlap(user.id, data.start_date, data.end_date)

            leave = Leave(
                user_id=user.id,
                leave_type=data.leave_type.value,
                start_date=data.start_date,
                end_date=data.end_date,
                days=days,
                reason=data.reason.strip(),
                emergency_contact=data.emergency_contact,
                emergency_phone=data.emergency_phone,
                status=LeaveStatus.PENDING.value,
            )
            self.db.add(leave)
            self.db.flush()

            self.attachments.attach(data.file_ids, leave)
            self._notify_approvers(leave, user)

        self.db.refresh(leave)
        self.log_info(f"Leave {leave.id} submitted by user {owner.id}", leave_id=leave.id, days=days)
        return leave

    def update_leave(self, leave_id: int, actor: User, data: LeaveUpdate) -> Leave:
        provided = data.model_dump(exclude_unset=True)

        with self.transaction():
            # Status is read under the row lock; a concurrent approval that
            # commits after this point fails the version check on flush.
            leave = self._get(leave_id, for_update=True)
            self._require_owner_or_admin(leave, actor)
            if not leave.is_pending:
                raise InvalidTransitionError(leave.id, leave.status, "updated")

            new_start = data.start_date or leave.start_date
            new_end = data.end_date or leave.end_date
            dates_changed = (new_start, new_end) != (leave.start_date, leave.end_date)
            if dates_changed:
                self._validate_dates(new_start, new_end)
            new_type = data.leave_type.value if data.leave_type else leave.leave_type
            new_days = count_leave_days(new_start, new_end)

            user = self.ledger.lock(leave.user_id)
            if dates_changed:
                self._ensure_no_overlap(leave.user_id, new_start, new_end, exclude_id=leave.id)
            if new_type != leave.leave_type or new_days != leave.days:
                self.ledger.ensure_available(user, new_type, new_days)

            self.attachments.detach(data.remove_file_ids, leave)
            self.attachments.attach(data.file_ids, leave)

            leave.leave_type = new_type
            leave.start_date = new_start
            leave.end_date = new_end
            leave.days = new_days
            if data.reason is not None:
                leave.reason = data.reason.strip()
            for field in ("emergency_contact", "emergency_phone"):
                if field in provided:
                    setattr(leave, field, provided[field])

        self.db.refresh(leave)
        self.log_info(f"Leave {leave.id} updated by user {actor.id}", leave_id=leave.id)
        return leave

    def approve_leave(self, leave_id: int, approver: User) -> Leave:
        self._require_approver(approver)

        with self.transaction():
            leave = self._get(leave_id, for_update=True)
            if not leave.is_pending:
                raise InvalidTransitionError(leave.id, leave.status, "approved")

            owner = self.ledger.lock(leave.user_id)
            remaining = self.ledger.debit(owner, leave.leave_type, leave.days)

            leave.status = LeaveStatus.APPROVED.value
            leave.rejection_reason = None
            leave.actioned_by = approver.id

            self.notifications.emit(
                recipient_id=leave.user_id,
                type=NotificationType.LEAVE_APPROVED,
                title="Leave Request Approved",
                message=(
                    f"Your {leave.leave_type} request for {_plural_days(leave.days)} "
                    f"({leave.start_date.isoformat()} - {leave.end_date.isoformat()}) has been approved."
                ),
                triggered_by_id=approver.id,
                leave_id=leave.id,
                metadata={
                    "leave_type": leave.leave_type,
                    "days": leave.days,
                    "remaining_balance": remaining,
                },
            )

        self.db.refresh(leave)
        self.log_info(f"Leave {leave.id} approved by user {approver.id}", leave_id=leave.id)
        return leave

    def reject_leave(self, leave_id: int, rejecter: User, rejection_reason: Optional[str]) -> Leave:
        self._require_approver(rejecter)
        reason = (rejection_reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason is required")

        with self.transaction():
            leave = self._get(leave_id, for_update=True)
            if not leave.is_pending:
                raise InvalidTransitionError(leave.id, leave.status, "rejected")

            leave.status = LeaveStatus.REJECTED.value
            leave.rejection_reason = reason
            leave.actioned_by = rejecter.id

            self.notifications.emit(
                recipient_id=leave.user_id,
                type=NotificationType.LEAVE_REJECTED,
                title="Leave Request Rejected",
                message=(
                    f"Your {leave.leave_type} request "
                    f"({leave.start_date.isoformat()} - {leave.end_date.isoformat()}) "
                    f"has been rejected. Reason: {reason}"
                ),
                triggered_by_id=rejecter.id,
                leave_id=leave.id,
                metadata={"leave_type": leave.leave_type, "days": leave.days, "rejection_reason": reason},
            )

        self.db.refresh(leave)
        self.log_info(f"Leave {leave.id} rejected by user {rejecter.id}", leave_id=leave.id)
        return leave

    def cancel_leave(self, leave_id: int, actor: User) -> Leave:
        with self.transaction():
            leave = self._get(leave_id, for_update=True)
            self._require_owner_or_admin(leave, actor)
            if not leave.is_pending:
                raise InvalidTransitionError(leave.id, leave.status, "cancelled")
            leave.status = LeaveStatus.CANCELLED.value

        self.db.refresh(leave)
        self.log_info(f"Leave {leave.id} cancelled by user {actor.id}", leave_id=leave.id)
        return leave

    def delete_leave(self, leave_id: int, actor: User) -> None:
        """
        Remove a leave in any status. An approved leave's days go back to
        the owner's balance, its attachments are deleted, and notifications
        that pointed at it keep existing with ``leave_id`` cleared.
        """
        self._require_approver(actor)

        with self.transaction():
            leave = self._get(leave_id, for_update=True)
            if leave.status == LeaveStatus.APPROVED.value:
                owner = self.ledger.lock(leave.user_id)
                self.ledger.credit(owner, leave.leave_type, leave.days)

            stored_keys = self.attachments.release_for_leave(leave)
            self.db.query(Notification).filter(
                Notification.leave_id == leave.id
            ).update({Notification.leave_id: None}, synchronize_session=False)
            self.db.delete(leave)

        self.attachments.purge_stored(stored_keys)
        self.log_info(f"Leave {leave_id} deleted by user {actor.id}", leave_id=leave_id)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _get(self, leave_id: int, for_update: bool = False) -> Leave:
        query = self.db.query(Leave).filter(Leave.id == leave_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        leave = query.first()
        if leave is None:
            raise NotFoundError("Leave", leave_id)
        return leave

    def _validate_dates(self, start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise ValidationError(
                "End date cannot be before start date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        if start_date < self.clock():
            raise ValidationError(
                "Start date cannot be in the past",
                details={"start_date": start_date.isoformat()},
            )

    def _ensure_no_overlap(self, user_id: int, start_date: date, end_date: date, exclude_id: Optional[int] = None):
        query = self.db.query(Leave).filter(
            Leave.user_id == user_id,
            Leave.status != LeaveStatus.REJECTED.value,
            Leave.start_date <= end_date,
            Leave.end_date >= start_date,
        )
        if exclude_id is not None:
            query = query.filter(Leave.id != exclude_id)
        existing = query.order_by(Leave.start_date).first()
        if existing is not None:
            raise OverlapConflictError(existing.id, existing.start_date, existing.end_date)

    def _require_owner_or_admin(self, leave: Leave, actor: User) -> None:
        if leave.user_id != actor.id and not actor.is_admin:
            raise AccessDeniedError("Unauthorized access")

    def _require_approver(self, actor: User) -> None:
        if not actor.can_approve:
            raise AccessDeniedError("Admin or manager access required")

    def _notify_approvers(self, leave: Leave, owner: User) -> None:
        approvers = self.db.query(User).filter(
            User.role.in_([UserRole.ADMIN, UserRole.MANAGER]),
            User.is_active.is_(True),
            User.id != owner.id,
        ).all()
        message = (
            f"{owner.name} has submitted a new {leave.leave_type} request for "
            f"{_plural_days(leave.days)} ({leave.start_date.isoformat()} - {leave.end_date.isoformat()})"
        )
        for approver in approvers:
            self.notifications.emit(
                recipient_id=approver.id,
                type=NotificationType.LEAVE_SUBMITTED,
                title="New Leave Request Submitted",
                message=message,
                triggered_by_id=owner.id,
                leave_id=leave.id,
                metadata={
                    "leave_type": leave.leave_type,
                    "days": leave.days,
                    "start_date": leave.start_date.isoformat(),
                    "end_date": leave.end_date.isoformat(),
                },
            )
