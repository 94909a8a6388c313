import logging
from typing import Tuple

from sqlalchemy.orm import Session

from leavedesk.core.config import settings
from leavedesk.database import SessionLocal
from leavedesk.models.user import User, UserRole, DEFAULT_LEAVE_BALANCES
from leavedesk.services import auth as auth_service

logger = logging.getLogger(__name__)


def ensure_admin(db: Session, email: str, password: str, name: str = "Admin User") -> Tuple[User, bool]:
    """Return the admin with ``email``, creating it with default balances if missing."""
    email = email.lower()
    admin = db.query(User).filter(User.email == email).first()
    if admin:
        return admin, False

    admin = User(
        name=name,
        email=email,
        hashed_password=auth_service.get_password_hash(password),
        role=UserRole.ADMIN,
        department="IT",
        position="Administrator",
        leave_balances=dict(DEFAULT_LEAVE_BALANCES),
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin, True


def init_system_data():
    """
    Creates the first admin account on an empty database when
    BOOTSTRAP_ADMIN_EMAIL and BOOTSTRAP_ADMIN_PASSWORD are set.
    """
    if not (settings.bootstrap_admin_email and settings.bootstrap_admin_password):
        return

    db = SessionLocal()
    try:
        user_count = db.query(User).count()
        if user_count:
            logger.info(f"System initialization check: {user_count} user(s) found.")
            return
        admin, _ = ensure_admin(db, settings.bootstrap_admin_email, settings.bootstrap_admin_password)
        logger.info(f"Created bootstrap admin {admin.email} (change the password immediately)")
    except Exception as e:
        db.rollback()
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
        raise
    finally:
        db.close()
