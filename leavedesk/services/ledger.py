"""
Leave Balance Ledger

Owns every mutation of ``User.leave_balances``. The map is stored as one JSON
value, so each debit or credit reads the whole map, changes a single key and
writes the whole map back. Callers run these inside their own transaction;
the ledger never commits.

Writers are serialized per user by ``lock()`` (SELECT ... FOR UPDATE where
the database supports it) and by the ``version_id`` counter on ``users``.
"""
from typing import Union

from leavedesk.core.exceptions import InsufficientBalanceError, NotFoundError
from leavedesk.models.user import User, LeaveType
from leavedesk.services.base import BaseService

UNCAPPED_LEAVE_TYPES = frozenset({LeaveType.UNPAID.value})


def _key(leave_type: Union[LeaveType, str]) -> str:
    return leave_type.value if isinstance(leave_type, LeaveType) else str(leave_type)


class LeaveBalanceLedger(BaseService):

    def lock(self, user_id: int) -> User:
        """Load the user row for update and refresh it from the database."""
        user = (
            self.db.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def available(self, user: User, leave_type: Union[LeaveType, str]) -> int:
        return int((user.leave_balances or {}).get(_key(leave_type), 0))

    def is_uncapped(self, leave_type: Union[LeaveType, str]) -> bool:
        return _key(leave_type) in UNCAPPED_LEAVE_TYPES

    def ensure_available(self, user: User, leave_type: Union[LeaveType, str], days: int) -> None:
        if self.is_uncapped(leave_type):
            return
        available = self.available(user, leave_type)
        if available < days:
            raise InsufficientBalanceError(_key(leave_type), available, days)

    def debit(self, user: User, leave_type: Union[LeaveType, str], days: int) -> int:
        """
        Deduct ``days`` on approval. Returns the new balance.

        UnpaidLeave is uncapped and its tracked value is left as is.
        """
        key = _key(leave_type)
        current = self.available(user, key)
        if self.is_uncapped(key):
            return current
        if current < days:
            raise InsufficientBalanceError(key, current, days)
        return self._write(user, key, current - days)

    def credit(self, user: User, leave_type: Union[LeaveType, str], days: int) -> int:
        """Restore ``days`` when an approved leave is deleted. Returns the new balance."""
        key = _key(leave_type)
        current = self.available(user, key)
        if self.is_uncapped(key):
            return current
        return self._write(user, key, current + days)

    def _write(self, user: User, key: str, value: int) -> int:
        # Assign a fresh dict so the JSON column is flagged dirty
        balances = dict(user.leave_balances or {})
        balances[key] = value
        user.leave_balances = balances
        self.db.flush()
        self.log_info(
            f"Balance {key} for user {user.id} set to {value}",
            user_id=user.id, leave_type=key, balance=value,
        )
        return value
