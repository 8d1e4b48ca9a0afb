"""
Pytest configuration and shared fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from hms.database import Base, get_db
from hms.models import entities  # noqa: F401
from hms.models.entities import User, RoomType, Room, LoyaltyProgram, TravelCompany
from hms.models.enums import UserRole, RoomStatus
from hms.security.auth import create_access_token
from hms.main import app
from hms.services.event_handlers import ledger_handlers

FIXED_NOW = datetime(2026, 10, 19, 14, 0, 0)


@pytest.fixture(scope="function")
def db_engine():
    """In-memory database engine"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_engine, db_session):
    """Test client bound to the test session"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    default_factory = ledger_handlers.session_factory
    ledger_handlers.session_factory = sessionmaker(autocommit=False, autoflush=False,
                                                   bind=db_engine)
    with TestClient(app) as test_client:
        yield test_client
    ledger_handlers.session_factory = default_factory
    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    """Frozen service clock"""
    return lambda: FIXED_NOW


class EventCollector(list):
    """Event publisher that records what it is given"""

    def __call__(self, event):
        self.append(event)

    @property
    def types(self):
        return [e.event_type for e in self]


@pytest.fixture
def events():
    return EventCollector()


# ============== Entity fixtures ==============

@pytest.fixture
def sample_room_type(db_session):
    room_type = RoomType(
        name="Deluxe",
        description="Deluxe double",
        base_price=Decimal("15000.00"),
        capacity=2,
    )
    db_session.add(room_type)
    db_session.commit()
    return room_type


@pytest.fixture
def sample_room(db_session, sample_room_type):
    room = Room(room_number="101", room_type_id=sample_room_type.id, floor=1,
                status=RoomStatus.AVAILABLE)
    db_session.add(room)
    db_session.commit()
    return room


@pytest.fixture
def sample_guest(db_session):
    guest = User(name="Ada Guest", email="ada@example.com", role=UserRole.CUSTOMER,
                 password_hash="x")
    db_session.add(guest)
    db_session.commit()
    return guest


@pytest.fixture
def loyalty_guest(db_session):
    program = LoyaltyProgram(tier_name="Gold", min_points=1000,
                             discount_percentage=Decimal("10.00"))
    db_session.add(program)
    db_session.flush()
    guest = User(name="Gold Member", email="gold@example.com", role=UserRole.CUSTOMER,
                 loyalty_program_id=program.id)
    db_session.add(guest)
    db_session.commit()
    return guest


@pytest.fixture
def travel_company(db_session):
    company = TravelCompany(company_name="Globe Tours", email="ops@globe.example",
                            discount_rate=Decimal("5.00"),
                            credit_limit=Decimal("100000.00"),
                            current_balance=Decimal("0.00"))
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture
def travel_agent(db_session, travel_company):
    agent = User(name="Globe Agent", email="agent@globe.example", role=UserRole.TRAVEL,
                 travel_company_id=travel_company.id)
    db_session.add(agent)
    db_session.commit()
    return agent


# ============== Auth fixtures ==============

def _staff(db_session, name, email, role):
    user = User(name=name, email=email, role=role, password_hash="x")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def clerk_user(db_session):
    return _staff(db_session, "Front Clerk", "clerk@hotel.example", UserRole.CLERK)


@pytest.fixture
def manager_user(db_session):
    return _staff(db_session, "Hotel Manager", "manager@hotel.example", UserRole.MANAGER)


@pytest.fixture
def clerk_auth_headers(clerk_user):
    return {"Authorization": f"Bearer {create_access_token(clerk_user.id, UserRole.CLERK)}"}


@pytest.fixture
def manager_auth_headers(manager_user):
    return {"Authorization": f"Bearer {create_access_token(manager_user.id, UserRole.MANAGER)}"}


@pytest.fixture
def guest_auth_headers(sample_guest):
    return {"Authorization": f"Bearer {create_access_token(sample_guest.id, UserRole.CUSTOMER)}"}


@pytest.fixture
def travel_auth_headers(travel_agent):
    return {"Authorization": f"Bearer {create_access_token(travel_agent.id, UserRole.TRAVEL)}"}
