"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-leave-ledger-tests")
os.environ.setdefault("APP_ENV", "local")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.core.deps import get_collaborators
from app.core.security import ADMIN_TOKEN_KIND, create_access_token
from app.models.employee import Employee, Role
from app.models.leave import LeaveType
from app.services import leave_ledger_service as ledger
from app.services.side_effects import LeaveCollaborators, SideEffectDispatcher

# Import all models to ensure they're registered with Base.metadata
import app.models as _models  # noqa: F401


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingNotifier:
    """Collects notifications instead of sending them"""

    def __init__(self):
        self.submitted = []
        self.decisions = []

    def notify_leave_submitted(self, manager_contact, employee_name, leave_type, start, end, reason=None):
        self.submitted.append({
            "to": manager_contact,
            "employee_name": employee_name,
            "leave_type": leave_type,
            "start": start,
            "end": end,
            "reason": reason,
        })

    def notify_leave_decision(
        self, employee_contact, leave_type, start, end, decision, approver_name, rejection_reason=None
    ):
        self.decisions.append({
            "to": employee_contact,
            "leave_type": leave_type,
            "decision": decision,
            "approver_name": approver_name,
            "rejection_reason": rejection_reason,
        })


class RecordingCalendar:
    def __init__(self):
        self.approved = []
        self.removed = []

    def on_approved(self, request):
        self.approved.append(request.id)

    def on_removed(self, leave_request_id):
        self.removed.append(leave_request_id)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db):
    """Extra sessions on the same in-memory database (stale-read scenarios)"""
    return TestingSessionLocal


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def calendar_sync():
    return RecordingCalendar()


@pytest.fixture
def collaborators(notifier, calendar_sync):
    """Side effects run inline and are recorded"""
    return LeaveCollaborators(
        notifier=notifier,
        calendar=calendar_sync,
        dispatcher=SideEffectDispatcher(),
    )


@pytest.fixture(scope="function")
def client(db, collaborators):
    """Test client fixture with database and collaborator overrides"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_collaborators] = lambda: collaborators
    yield TestClient(app)
    app.dependency_overrides.clear()


def _add_employee(db, emp_code, name, role, reporting_manager_id=None, join_date=date(2020, 1, 1)):
    employee = Employee(
        emp_code=emp_code,
        name=name,
        email=f"{emp_code.lower()}@example.com",
        role=role.value,
        reporting_manager_id=reporting_manager_id,
        join_date=join_date,
        active=True,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def hr_employee(db):
    return _add_employee(db, "HR001", "Hema HR", Role.HR)


@pytest.fixture
def manager(db, hr_employee):
    return _add_employee(db, "MGR001", "Mona Manager", Role.MANAGER, reporting_manager_id=hr_employee.id)


@pytest.fixture
def employee(db, manager):
    return _add_employee(db, "EMP001", "Eli Employee", Role.EMPLOYEE, reporting_manager_id=manager.id)


@pytest.fixture
def other_manager(db, hr_employee):
    return _add_employee(db, "MGR002", "Omar Other", Role.MANAGER, reporting_manager_id=hr_employee.id)


@pytest.fixture
def add_employee(db):
    """Factory for extra employees"""
    def _factory(emp_code, role=Role.EMPLOYEE, reporting_manager_id=None, join_date=date(2020, 1, 1)):
        return _add_employee(db, emp_code, emp_code.title(), role, reporting_manager_id, join_date)
    return _factory


@pytest.fixture
def seed_balances(db):
    """Factory: ledger rows with explicit allocations (earned, sick, casual)"""
    def _seed(employee_id, year=2030, earned="12", sick="8", casual="8"):
        return ledger.initialize_balances(
            db,
            employee_id,
            year,
            overrides={
                LeaveType.EARNED: Decimal(earned),
                LeaveType.SICK: Decimal(sick),
                LeaveType.CASUAL: Decimal(casual),
            },
        )
    return _seed


@pytest.fixture
def employee_balances(employee, seed_balances):
    return seed_balances(employee.id)


@pytest.fixture
def balance_of(db):
    """Factory: freshly read ledger row"""
    def _balance(employee_id, leave_type, year=2030):
        db.expire_all()
        return ledger.get_balance_row(db, employee_id, year, leave_type)
    return _balance


@pytest.fixture
def auth_headers():
    """Factory: bearer header for an employee"""
    def _headers(employee):
        token = create_access_token({"sub": str(employee.id)})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def admin_headers():
    """Bearer header for an admin account without an employee profile"""
    token = create_access_token({"sub": "root", "kind": ADMIN_TOKEN_KIND})
    return {"Authorization": f"Bearer {token}"}
