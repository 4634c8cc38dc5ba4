import os

# Tests drive the SLA job explicitly
os.environ.setdefault("SLA_SCHEDULER_ENABLED", "false")

import itertools
from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.main import app
from app.core.database import Base, build_engine, get_db
from app.core.location_resolution import GLOBAL_CITY
from app.core.security import create_access_token
from app.models.complaint import Complaint, ComplaintStatus, Department
from app.models.user import User, UserRole
from app.services.sla_scheduler import SLABatchScheduler, get_sla_scheduler

BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def test_engine(tmp_path):
    """File-backed SQLite database per test, shared by worker threads"""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Create a fresh database session for each test"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def scheduler(session_factory):
    return SLABatchScheduler(session_factory=session_factory, interval_minutes=1, max_workers=2)


@pytest.fixture(scope="function")
def client(session_factory, scheduler):
    """Create test client with database and scheduler overrides"""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sla_scheduler] = lambda: scheduler
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(test_db):
    counter = itertools.count(1)

    def _make_user(role=UserRole.STAFF, city=None, department=None, name=None, **fields):
        n = next(counter)
        user = User(
            name=name or f"{role.value.title()} {n}",
            email=f"{role.value}{n}@example.com",
            role=role,
            city=city,
            department=department,
            **fields
        )
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def citizen(make_user):
    return make_user(UserRole.CITIZEN, name="Asha Citizen")


@pytest.fixture
def global_admin(make_user):
    return make_user(UserRole.ADMIN, city=GLOBAL_CITY, name="Global Admin")


@pytest.fixture
def make_complaint(test_db, citizen):
    counter = itertools.count(1)

    def _make_complaint(
        city="Riverdale",
        department=Department.PLUMBING,
        created_at=BASE_TIME,
        status=ComplaintStatus.OPEN,
        assigned_to=None,
        **fields
    ):
        complaint = Complaint(
            tracking_number=f"CMP-TEST-{next(counter):06d}",
            submitted_by_id=citizen.id,
            title="Leaking pipe",
            description="Water leak near the market",
            category=department.value if department else "Uncategorized",
            department=department,
            city=city,
            status=status,
            created_at=created_at,
            assigned_to_id=assigned_to.id if assigned_to else None,
            **fields
        )
        if assigned_to is not None:
            complaint.add_assignee(assigned_to.id)
        test_db.add(complaint)
        test_db.commit()
        test_db.refresh(complaint)
        return complaint

    return _make_complaint


@pytest.fixture
def auth_headers():
    """Bearer headers for a user, as issued by the identity provider"""
    def _auth_headers(user):
        token = create_access_token({"sub": str(user.id), "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
