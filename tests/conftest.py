"""Test configuration and fixtures."""

from datetime import timedelta
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import generate_password_hash

from aircraft_maintenance.db.base import build_engine, drop_database, get_db, init_database
from aircraft_maintenance.db.models import AircraftModel, IssueModel, TaskModel, UserModel
from aircraft_maintenance.fleet.aircraft import AircraftCreate
from aircraft_maintenance.fleet.enums import IssueSeverity, UserRole
from aircraft_maintenance.fleet.issue import IssueCreate
from aircraft_maintenance.fleet.primitives import utc_now
from aircraft_maintenance.fleet.services import (
    AircraftService,
    IssueService,
    TaskService,
    UserService,
)
from aircraft_maintenance.fleet.task import ChecklistItemCreate, TaskCreate
from aircraft_maintenance.fleet.user import UserCreate

ISSUE_DESCRIPTION = (
    "Hydraulic fluid leak observed near the left main gear actuator. " * 4
).strip()


def fast_password_hash(password: str) -> str:
    """Cheap PBKDF2 so user-heavy tests stay quick."""
    return generate_password_hash(password, method="pbkdf2:sha256:1000")


@pytest.fixture
def engine():
    """A fresh in-memory database per test."""
    test_engine = build_engine("sqlite:///:memory:")
    init_database(test_engine)
    yield test_engine
    drop_database(test_engine)
    test_engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def client(engine) -> Generator[TestClient, None, None]:
    """TestClient whose get_db dependency uses the test database."""
    from aircraft_maintenance.api import app

    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# Factories


def aircraft_payload(**overrides) -> dict:
    """A valid AircraftCreate payload with optional overrides."""
    defaults = {
        "tail_number": "N123AB",
        "model": "737-800",
        "manufacturer": "Boeing",
        "current_health": 100,
        "next_inspection_due": utc_now() + timedelta(days=30),
    }
    defaults.update(overrides)
    return defaults


def make_user(
    db: Session,
    email: str = "engineer@example.com",
    role: UserRole = UserRole.ENGINEER,
    name: str = "Test Engineer",
    password: str = "secret123",
) -> UserModel:
    service = UserService(db, password_hasher=fast_password_hash)
    return service.register(
        UserCreate(name=name, email=email, password=password, role=role)
    )


def make_aircraft(db: Session, **overrides) -> AircraftModel:
    return AircraftService(db).register(AircraftCreate(**aircraft_payload(**overrides)))


def make_issue(
    db: Session,
    reporter: UserModel,
    tail_number: str = "N123AB",
    severity: IssueSeverity = IssueSeverity.HIGH,
) -> IssueModel:
    return IssueService(db).report(
        IssueCreate(
            tail_number=tail_number, description=ISSUE_DESCRIPTION, severity=severity
        ),
        reported_by=reporter.id,
    )


def make_task(
    db: Session,
    aircraft: AircraftModel,
    issue: IssueModel,
    assignee: UserModel,
    /,
    checklist: Optional[List[dict]] = None,
    **overrides,
) -> TaskModel:
    data = {
        "aircraft": aircraft.id,
        "issue": issue.id,
        "assigned_to": assignee.id,
        "title": "Replace actuator seal",
        "description": "Replace the leaking seal and pressure-test the system",
        "priority": 2,
        "due_date": utc_now() + timedelta(days=7),
        "checklist": [ChecklistItemCreate(**item) for item in (checklist or [])],
    }
    data.update(overrides)
    return TaskService(db).create(TaskCreate(**data))


@pytest.fixture
def fleet(db_session):
    """One aircraft, a reporter, an engineer and a reported issue."""
    reporter = make_user(db_session, email="pilot@example.com", role=UserRole.PILOT)
    engineer = make_user(db_session, email="engineer@example.com")
    manager = make_user(db_session, email="manager@example.com", role=UserRole.MANAGER)
    aircraft = make_aircraft(db_session)
    issue = make_issue(db_session, reporter)
    return {
        "reporter": reporter,
        "engineer": engineer,
        "manager": manager,
        "aircraft": aircraft,
        "issue": issue,
    }
