import pytest
import os
import tempfile

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ORPHAN_SWEEP_ENABLED"] = "false"
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="leavedesk-uploads-"))

from fastapi.testclient import TestClient
from leavedesk.database import Base, SessionLocal, engine, get_db
from leavedesk.main import app
from leavedesk.models.user import User, UserRole, DEFAULT_LEAVE_BALANCES
from leavedesk.services import auth as auth_service
from leavedesk.services.storage import LocalFileStorage, get_storage

TEST_PASSWORD = "Password123!"
# Hashed once; bcrypt is deliberately slow
_TEST_PASSWORD_HASH = auth_service.get_password_hash(TEST_PASSWORD)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    A session on the shared in-memory database. Services commit for real,
    so every table is emptied after the test.
    """
    session = SessionLocal()
    yield session
    session.close()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function")
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "uploads"), "/uploads")


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for users with a known password and optional balance overrides."""
    def _make_user(email, role=UserRole.EMPLOYEE, name=None, balances=None, is_active=True):
        leave_balances = dict(DEFAULT_LEAVE_BALANCES)
        leave_balances.update(balances or {})
        user = User(
            name=name or email.split("@")[0].title(),
            email=email,
            hashed_password=_TEST_PASSWORD_HASH,
            role=role,
            leave_balances=leave_balances,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture(scope="function")
def admin_user(make_user):
    return make_user("admin@acme.com", role=UserRole.ADMIN, name="Alice Admin")


@pytest.fixture(scope="function")
def manager_user(make_user):
    return make_user("manager@acme.com", role=UserRole.MANAGER, name="Mark Manager")


@pytest.fixture(scope="function")
def employee_user(make_user):
    return make_user("employee@acme.com", name="Erin Employee")


@pytest.fixture(scope="function")
def auth_headers():
    """Helper fixture building a Bearer header for a user."""
    def _auth_headers(user):
        token = auth_service.create_access_token(data={
            "sub": user.email,
            "role": user.role.value,
            "user_id": user.id,
        })
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture(scope="function")
def client(db_session, storage):
    """Get a TestClient that uses the test session and upload directory via dependency overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
