"""
Pytest configuration and fixtures

IMPORTANT: All tests use transactional rollback isolation.
Nothing created during tests persists to the database.

The suite runs against in-memory SQLite; the environment below must be in
place before any app module reads settings.
"""
import os
import sys
from datetime import datetime, timedelta, timezone

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters-long")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from core.database import Base, engine, get_db
from core.security import create_access_token
from models import CoachClient, Profile, Program, ProgramAssignment, ProgramSchedule


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    """Create every table once for the whole run."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a database session with transactional rollback.

    Application code may call session.commit(); with "create_savepoint"
    that only releases a savepoint, and the outer transaction is rolled
    back after the test.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db_session):
    """TestClient whose requests share the test's rolled-back session."""
    from main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def auth_headers():
    """Build bearer headers for a profile."""
    def _headers(profile: Profile) -> dict:
        token = create_access_token({"sub": str(profile.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_profile(db_session):
    def _make(role: str = "client", display_name: str = None) -> Profile:
        profile = Profile(role=role, display_name=display_name or f"Test {role.title()}")
        db_session.add(profile)
        db_session.commit()
        return profile

    return _make


@pytest.fixture
def coach(make_profile):
    return make_profile("coach", "Coach Carter")


@pytest.fixture
def client_profile(db_session, make_profile, coach):
    """A client already linked to `coach`."""
    profile = make_profile("client", "Client Casey")
    db_session.add(CoachClient(coach_id=coach.id, client_id=profile.id))
    db_session.commit()
    return profile


@pytest.fixture
def make_program(db_session):
    """
    Program factory.

    `weeks` maps week_number -> list of day_of_week values, e.g.
    {1: [1, 3, 5], 2: [2, 4]} for the 3 + 2 day program.
    """
    def _make(coach: Profile, weeks: dict, name: str = "Strength Block") -> Program:
        program = Program(coach_id=coach.id, name=name)
        db_session.add(program)
        db_session.flush()
        for week_number, days in weeks.items():
            for day_of_week in days:
                db_session.add(ProgramSchedule(
                    program_id=program.id,
                    week_number=week_number,
                    day_of_week=day_of_week,
                    template_id=f"tpl-w{week_number}-d{day_of_week}",
                ))
        db_session.commit()
        return program

    return _make


@pytest.fixture
def make_assignment(db_session):
    """Assignment factory. `age_minutes` orders assignments by created_at."""
    def _make(
        client: Profile,
        coach: Profile,
        program: Program,
        *,
        status: str = "active",
        week_index: int = 0,
        day_index: int = 0,
        is_completed: bool = False,
        age_minutes: int = 0,
    ) -> ProgramAssignment:
        assignment = ProgramAssignment(
            client_id=client.id,
            coach_id=coach.id,
            program_id=program.id,
            name=program.name,
            status=status,
            current_week_index=week_index,
            current_day_index=day_index,
            is_completed=is_completed,
            created_at=datetime.now(timezone.utc) - timedelta(minutes=age_minutes),
        )
        db_session.add(assignment)
        db_session.commit()
        return assignment

    return _make
