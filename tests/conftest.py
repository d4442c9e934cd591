from contextlib import ExitStack, contextmanager
from datetime import datetime
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.activities.models import Activity
from app.api.check_in.dependencies import get_scanner_gate, get_token_cache
from app.api.event_scans.models import EventParticipant
from app.api.participants.models import Participant
from app.core.broker import get_settlement_broker
from app.core.config import Environment, settings
from app.core.database import Base, get_db
from app.core.security import create_access_token
from main import app

CHECK_IN_API_KEY = 'test_check_in_api_key'
ADMIN_API_KEY = 'test_admin_api_key'

CLOCK_TARGETS = (
    'app.api.activities.routes.current_time',
    'app.api.attendances.crud.current_time',
    'app.api.check_in.crud.current_time',
    'app.api.event_scans.crud.current_time',
)


@contextmanager
def frozen_time(now: datetime):
    """Pin the server clock used by every check-in decision"""
    with ExitStack() as stack:
        for target in CLOCK_TARGETS:
            stack.enter_context(patch(target, return_value=now))
        yield now


@pytest.fixture(scope='session', autouse=True)
def check_test_environment():
    if settings.ENVIRONMENT != Environment.TEST:
        raise RuntimeError(
            f'Tests can only be executed in test environment. Current environment: {settings.ENVIRONMENT}'
        )


@pytest.fixture(scope='session', autouse=True)
def setup_test_api_keys():
    """Set default keys for testing to avoid None values in headers"""
    # Save original values
    original = {
        'CHECK_IN_API_KEY': settings.CHECK_IN_API_KEY,
        'ADMIN_API_KEY': settings.ADMIN_API_KEY,
        'SECRET_KEY': settings.SECRET_KEY,
        'CHECK_IN_SIGNING_SECRET': settings.CHECK_IN_SIGNING_SECRET,
    }

    # Set test values
    settings.CHECK_IN_API_KEY = CHECK_IN_API_KEY
    settings.ADMIN_API_KEY = ADMIN_API_KEY
    settings.SECRET_KEY = 'test_secret_key'
    settings.CHECK_IN_SIGNING_SECRET = 'test_signing_secret'

    yield

    # Restore original values after tests
    for name, value in original.items():
        setattr(settings, name, value)


@pytest.fixture(scope='function', autouse=True)
def reset_in_memory_state():
    """Caches, scanner gates and the broker live for the process; start clean"""
    get_settlement_broker.cache_clear()
    get_token_cache.cache_clear()
    get_scanner_gate.cache_clear()
    yield
    get_settlement_broker.cache_clear()
    get_token_cache.cache_clear()
    get_scanner_gate.cache_clear()


@pytest.fixture(scope='session')
def test_db_engine():
    engine = create_engine(
        settings.SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope='function')
def db_session(test_db_engine):
    """Create a fresh database session for each test"""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_db_engine
    )

    # Drop and recreate all tables before each test
    Base.metadata.drop_all(bind=test_db_engine)
    Base.metadata.create_all(bind=test_db_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope='function')
def client(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def get_auth_headers_for_participant(participant: Participant) -> dict:
    """Generate auth headers for a specific participant"""
    user_data = {'participant_id': participant.id, 'email': participant.email}
    access_token = create_access_token(data=user_data)
    return {'Authorization': f'Bearer {access_token}'}


@pytest.fixture
def scanner_headers():
    return {'x-api-key': CHECK_IN_API_KEY}


@pytest.fixture
def admin_headers():
    return {'x-api-key': ADMIN_API_KEY}


@pytest.fixture(scope='function')
def create_test_participant(db_session):
    """Factory fixture to create test participants"""

    def _create_participant(n: int, is_active: bool = True):
        participant = Participant(
            full_name=f'Test Participant {n}',
            email=f'test{n}@example.com',
            student_number=f'24010{n:02d}',
            study_program='Computer Science',
            is_active=is_active,
        )
        db_session.add(participant)
        db_session.commit()
        return participant

    yield _create_participant


@pytest.fixture(scope='function')
def test_participant(create_test_participant):
    return create_test_participant(1)


@pytest.fixture(scope='function')
def auth_headers(test_participant):
    """Creates auth headers for the default test participant"""
    return get_auth_headers_for_participant(test_participant)


@pytest.fixture(scope='function')
def create_test_activity(db_session):
    """Factory fixture to create activities.

    Defaults to an attendance window of 2025-01-01 08:00 to 08:30 with the
    activity itself ending at 10:00.
    """

    def _create_activity(slug: str = 'general-assembly', **kwargs):
        data = {
            'title': 'General Assembly',
            'slug': slug,
            'location': 'Main Hall',
            'start_datetime': datetime(2025, 1, 1, 8, 0),
            'end_datetime': datetime(2025, 1, 1, 10, 0),
            'attendance_enabled': True,
            'attendance_open_time': datetime(2025, 1, 1, 8, 0),
            'attendance_close_time': datetime(2025, 1, 1, 8, 30),
        }
        data.update(kwargs)
        activity = Activity(**data)
        db_session.add(activity)
        db_session.commit()
        return activity

    yield _create_activity


@pytest.fixture(scope='function')
def test_activity(create_test_activity):
    return create_test_activity()


@pytest.fixture(scope='function')
def test_event_participant(db_session):
    participant = EventParticipant(
        qr_code='QR-001',
        member_name='Dimas Pratama',
        team_name='Line Tracer A',
        category='Line Follower',
        institution='SMA 1 Bandung',
        origin_region='West Java',
        advisor='Pak Hadi',
    )
    db_session.add(participant)
    db_session.commit()
    return participant
