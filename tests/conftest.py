"""Pytest configuration and fixtures."""

from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fleetgrid.database.schema import Base
from fleetgrid.database.sqlite_client import session_context
from fleetgrid.database.vehicle_repo import create_vehicle
from fleetgrid.vehicles.vehicle_models import VehicleRecord


def _make_vehicle(**overrides) -> VehicleRecord:
    data = {
        "license_number": "AB-0001",
        "brand": "Ford",
        "model": "Focus",
        "registration_date": "2020-05-01",
        "mileage": 42000,
    }
    data.update(overrides)
    return VehicleRecord(**data)


def _add_vehicles(session, records, acting_user="test"):
    """Store records and commit; returns [(record, token), ...]."""
    stored = [create_vehicle(session, record, acting_user=acting_user) for record in records]
    session.commit()
    return stored


@pytest.fixture
def make_vehicle():
    """Build a valid VehicleRecord, overriding any fields."""
    return _make_vehicle


@pytest.fixture
def add_vehicles():
    """Store records through the repo and commit."""
    return _add_vehicles


@pytest.fixture
def session():
    """Create a temporary in-memory database session for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_path(tmp_path):
    """File-backed database, so several sessions can see each other's commits."""
    return str(tmp_path / "fleetgrid-test.db")


@pytest.fixture
def session_factory(sqlite_path):
    """Zero-arg factory returning a fresh session context per call."""

    @contextmanager
    def factory():
        with session_context(sqlite_path) as s:
            yield s

    return factory
