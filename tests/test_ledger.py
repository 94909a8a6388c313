import pytest
from sqlalchemy import update
from leavedesk.core.exceptions import ConcurrencyConflictError, InsufficientBalanceError, NotFoundError
from leavedesk.database import SessionLocal
from leavedesk.models.user import User, LeaveType
from leavedesk.services.ledger import LeaveBalanceLedger


def _reload(db_session, user_id):
    db_session.expire_all()
    return db_session.get(User, user_id)


def test_debit_then_credit_restores_balance(db_session, make_user):
    user = make_user("erin@acme.com", balances={"AnnualLeave": 10})
    ledger = LeaveBalanceLedger(db_session)

    locked = ledger.lock(user.id)
    assert ledger.debit(locked, LeaveType.ANNUAL, 4) == 6
    db_session.commit()
    assert _reload(db_session, user.id).leave_balances["AnnualLeave"] == 6

    locked = ledger.lock(user.id)
    assert ledger.credit(locked, LeaveType.ANNUAL, 4) == 10
    db_session.commit()
    assert _reload(db_session, user.id).leave_balances["AnnualLeave"] == 10


def test_debit_beyond_balance_fails(db_session, make_user):
    user = make_user("erin@acme.com", balances={"SickLeave": 2})
    ledger = LeaveBalanceLedger(db_session)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        ledger.debit(ledger.lock(user.id), LeaveType.SICK, 3)
    assert exc_info.value.details == {"leave_type": "SickLeave", "available": 2, "requested": 3}
    db_session.rollback()
    assert _reload(db_session, user.id).leave_balances["SickLeave"] == 2


def test_debit_only_touches_one_key(db_session, make_user):
    user = make_user("erin@acme.com")
    ledger = LeaveBalanceLedger(db_session)

    ledger.debit(ledger.lock(user.id), LeaveType.FAMILY_RESPONSIBILITY, 2)
    db_session.commit()

    balances = _reload(db_session, user.id).leave_balances
    assert balances["FamilyResponsibility"] == 3
    assert balances["AnnualLeave"] == 15
    assert balances["SickLeave"] == 10


def test_unpaid_leave_is_uncapped(db_session, make_user):
    user = make_user("erin@acme.com")
    ledger = LeaveBalanceLedger(db_session)
    locked = ledger.lock(user.id)

    ledger.ensure_available(locked, LeaveType.UNPAID, 30)
    assert ledger.debit(locked, LeaveType.UNPAID, 30) == 0
    assert ledger.credit(locked, LeaveType.UNPAID, 30) == 0
    assert locked.leave_balances["UnpaidLeave"] == 0


def test_missing_key_counts_as_zero(db_session, make_user):
    user = make_user("erin@acme.com")
    user.leave_balances = {"AnnualLeave": 5}
    db_session.commit()
    ledger = LeaveBalanceLedger(db_session)

    locked = ledger.lock(user.id)
    assert ledger.available(locked, LeaveType.OTHER) == 0
    with pytest.raises(InsufficientBalanceError):
        ledger.ensure_available(locked, LeaveType.OTHER, 1)


def test_write_bumps_version_counter(db_session, make_user):
    user = make_user("erin@acme.com")
    ledger = LeaveBalanceLedger(db_session)

    ledger.debit(ledger.lock(user.id), LeaveType.ANNUAL, 1)
    db_session.commit()
    assert _reload(db_session, user.id).version_id == 2


def test_lock_unknown_user(db_session):
    with pytest.raises(NotFoundError):
        LeaveBalanceLedger(db_session).lock(999)


def test_stale_version_raises_conflict_and_keeps_balance(db_session, make_user):
    user = make_user("erin@acme.com", balances={"AnnualLeave": 10})
    user_id = user.id
    ledger = LeaveBalanceLedger(db_session)

    with pytest.raises(ConcurrencyConflictError):
        with ledger.transaction():
            locked = ledger.lock(user_id)
            # Another writer commits between our read and our flush
            other = SessionLocal()
            try:
                other.execute(
                    update(User).where(User.id == user_id).values(version_id=User.version_id + 1)
                )
                other.commit()
            finally:
                other.close()
            ledger.debit(locked, LeaveType.ANNUAL, 4)

    reloaded = _reload(db_session, user_id)
    assert reloaded.leave_balances["AnnualLeave"] == 10
    assert reloaded.version_id == 2
