"""
Shared fixtures: a file-backed SQLite database per test, a fixed plant clock
and small factories for machines, quality gates and rotation teams.
"""
from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401
from app.database import Base, build_engine, get_db
from app.dependencies import get_engine_clock, get_oee_store, get_session_factory
from app.main import app as fastapi_app
from app.models.enums import MachineStatus
from app.models.machine import Machine
from app.models.quality_gate_config import QualityGateConfig
from app.models.shift_team import ShiftTeam
from app.utils.clock import FixedClock
from app.utils.events import configure_event_bus
from app.utils.store import InMemoryTTLStore

# Wednesday, inside the day shift
DEFAULT_NOW = datetime(2026, 10, 14, 9, 0)
REFERENCE_DATE = date(2026, 10, 1)


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'shift_engine.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(DEFAULT_NOW)


@pytest.fixture(autouse=True)
def event_bus():
    bus = configure_event_bus()
    yield bus
    bus.clear()


@pytest.fixture
def oee_store():
    return InMemoryTTLStore(default_ttl=900)


@pytest.fixture
def client(session_factory, clock, oee_store):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_engine_clock] = lambda: clock
    fastapi_app.dependency_overrides[get_oee_store] = lambda: oee_store
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory
    try:
        yield TestClient(fastapi_app)
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_machine(db):
    counter = {"n": 0}

    def _make(**overrides) -> Machine:
        counter["n"] += 1
        values = {
            "name": f"Extruder {counter['n']}",
            "code": f"EXT-{counter['n']:02d}",
            "status": MachineStatus.STOPPED.value,
            "production_speed": 1.0,
            "target_production": 600,
            "is_active": True,
        }
        values.update(overrides)
        machine = Machine(**values)
        db.add(machine)
        db.commit()
        db.refresh(machine)
        return machine

    return _make


@pytest.fixture
def machine(make_machine):
    return make_machine()


@pytest.fixture
def make_config(db, clock):
    def _make(machine_id: int, **overrides) -> QualityGateConfig:
        values = {
            "machine_id": machine_id,
            "test_name": "Wall thickness",
            "test_frequency_hours": 0,
            "products_per_test": 0,
            "is_required": True,
            "block_production": False,
            "min_pass_rate": 95.0,
            "is_active": True,
            "created_at": clock.now(),
            "updated_at": clock.now(),
        }
        values.update(overrides)
        config = QualityGateConfig(**values)
        db.add(config)
        db.commit()
        db.refresh(config)
        return config

    return _make


@pytest.fixture
def teams(db):
    created = []
    for code, phase in (("A", 0), ("B", 1), ("C", 2), ("D", 3)):
        team = ShiftTeam(team_code=code, phase_offset=phase, cycle_length=12, reference_date=REFERENCE_DATE)
        db.add(team)
        created.append(team)
    db.commit()
    return {t.team_code: t for t in created}
