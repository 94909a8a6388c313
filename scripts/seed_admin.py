"""
Seed the default admin account.

    python scripts/seed_admin.py [email] [password]
"""
import sys

from leavedesk.database import SessionLocal, init_db
from leavedesk.core.init_system import ensure_admin
from leavedesk.services import auth as auth_service

DEFAULT_EMAIL = "admin@digititan.com"
DEFAULT_PASSWORD = "Admin@123"


def seed(email: str = DEFAULT_EMAIL, password: str = DEFAULT_PASSWORD):
    init_db()
    db = SessionLocal()
    try:
        admin, created = ensure_admin(db, email, password)
        if created:
            print(f"Admin user {admin.email} created with password '{password}'")
        else:
            # Reset the password so the seed is repeatable
            admin.hashed_password = auth_service.get_password_hash(password)
            db.commit()
            print(f"Admin user {admin.email} already exists. Password reset.")
    finally:
        db.close()


if __name__ == "__main__":
    seed(*sys.argv[1:3])
