import pytest
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from hris.database import Base, get_db
from hris.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Fresh schema per test; the engine commits for real, so isolation comes from drop_all."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)

def _make_user(db_session, email, role, division=None, full_name=None):
    from hris.models.user import User
    user = User(email=email, role=role, division=division, full_name=full_name or email.split("@")[0].title(), is_active=True)
    db_session.add(user)
    db_session.commit()
    return user

@pytest.fixture(scope="function")
def head(db_session):
    from hris.models.user import UserRole
    return _make_user(db_session, "head@pao.gov", UserRole.HEAD_OF_OFFICE, "Administrative Division", "Provincial Assessor")

@pytest.fixture(scope="function")
def admin_staff(db_session):
    from hris.models.user import UserRole
    return _make_user(db_session, "admin@pao.gov", UserRole.ADMIN_STAFF, "Administrative Division")

@pytest.fixture(scope="function")
def chief(db_session):
    from hris.models.user import UserRole
    return _make_user(db_session, "chief@pao.gov", UserRole.DIVISION_CHIEF, "Tax Mapping Division")

@pytest.fixture(scope="function")
def other_chief(db_session):
    from hris.models.user import UserRole
    return _make_user(db_session, "chief2@pao.gov", UserRole.DIVISION_CHIEF, "Appraisal and Assessment Division")

@pytest.fixture(scope="function")
def staff(db_session):
    from hris.models.user import UserRole
    return _make_user(db_session, "staff@pao.gov", UserRole.PROJECT_STAFF, "Tax Mapping Division", "Juan Dela Cruz")

@pytest.fixture(scope="function")
def other_staff(db_session):
    from hris.models.user import UserRole
    return _make_user(db_session, "staff2@pao.gov", UserRole.PROJECT_STAFF, "Appraisal and Assessment Division")

@pytest.fixture(scope="function")
def cycle(db_session):
    """The active SPMS cycle."""
    from hris.models.spms_cycle import SPMSCycle
    c = SPMSCycle(name="Jan-Jun 2026", period_start=date(2026, 1, 1), period_end=date(2026, 6, 30), is_active=True)
    db_session.add(c)
    db_session.commit()
    return c

@pytest.fixture(scope="function")
def actor_for():
    """Build the engine-side Actor for a User."""
    from hris.services.authorization import Actor

    def _actor(user):
        return Actor(id=user.id, role=user.role, division=user.division)
    return _actor

@pytest.fixture(scope="function")
def workflow(db_session):
    from hris.repositories.performance import SqlAlchemyFormStore
    from hris.services.audit import AuditService
    from hris.services.notification import NotificationService
    from hris.services.invalidation import CacheInvalidator
    from hris.services.workflow import PerformanceWorkflow

    return PerformanceWorkflow(
        store=SqlAlchemyFormStore(db_session),
        audit=AuditService(db_session),
        notifier=NotificationService(db_session),
        invalidator=CacheInvalidator(),
    )

@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens."""
    from hris.services.auth import create_access_token

    def _get_token(user):
        return create_access_token(data={"sub": str(user.id), "role": user.role.value, "type": "access"})
    return _get_token

@pytest.fixture(scope="function")
def auth_header(get_token):
    def _header(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _header

@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
