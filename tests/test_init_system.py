from leavedesk.core.config import settings
from leavedesk.core.init_system import ensure_admin, init_system_data
from leavedesk.models.user import User, UserRole
from leavedesk.services import auth as auth_service
from scripts.seed_admin import seed


def test_ensure_admin_creates_once(db_session):
    admin, created = ensure_admin(db_session, "Root@Acme.com", "Secret123!")
    assert created is True
    assert admin.email == "root@acme.com"
    assert admin.role == UserRole.ADMIN
    assert admin.leave_balances["AnnualLeave"] == 15

    again, created = ensure_admin(db_session, "root@acme.com", "Other123!")
    assert created is False
    assert again.id == admin.id


def test_bootstrap_skipped_without_credentials(db_session, monkeypatch):
    monkeypatch.setattr(settings, "bootstrap_admin_email", "")
    init_system_data()
    assert db_session.query(User).count() == 0


def test_bootstrap_creates_admin_on_empty_database(db_session, monkeypatch):
    monkeypatch.setattr(settings, "bootstrap_admin_email", "boot@acme.com")
    monkeypatch.setattr(settings, "bootstrap_admin_password", "Secret123!")
    init_system_data()

    [admin] = db_session.query(User).all()
    assert admin.email == "boot@acme.com"
    assert auth_service.verify_password("Secret123!", admin.hashed_password)


def test_bootstrap_leaves_existing_users_alone(db_session, employee_user, monkeypatch):
    monkeypatch.setattr(settings, "bootstrap_admin_email", "boot@acme.com")
    monkeypatch.setattr(settings, "bootstrap_admin_password", "Secret123!")
    init_system_data()
    assert [u.email for u in db_session.query(User).all()] == [employee_user.email]


def test_seed_script_resets_password(db_session):
    seed("seed@acme.com", "First123!")
    seed("seed@acme.com", "Second123!")

    [admin] = db_session.query(User).all()
    assert auth_service.verify_password("Second123!", admin.hashed_password)
