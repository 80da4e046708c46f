import os

# Settings are read at import time; point them at a throwaway database first.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from medalert.db.adapters import store_streak
from medalert.db.base import Base
import medalert.db.models  # noqa  (imports all models)
from medalert.db.models.inventory import MedicationInventory
from medalert.db.models.medication import Medication
from medalert.db.models.streak import Streak
from medalert.db.models.user import User
from medalert.domain.streaks import StreakState
from medalert.services.schedules import build_slots, load_slots
from medalert.services.transitions import DoseTransitionService, MedicationLocks


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; keeps what would have been sent."""

    def __init__(self):
        self.submitted = []

    def submit(self, notice, channels):
        self.submitted.append((notice, list(channels)))

    def kinds(self):
        return [(n.kind, n.action) for n, _ in self.submitted]


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def service(db, dispatcher):
    return DoseTransitionService(db, dispatcher, locks=MedicationLocks(), default_channels=["email"])


@pytest.fixture
def user(db):
    u = User(
        email="ada@example.com",
        full_name="Ada Lovelace",
        phone="+61400000000",
        notification_preferences={},
    )
    db.add(u)
    db.commit()
    return u


@pytest.fixture
def make_medication(db, user):
    def _make(
        frequency="daily",
        times=(),
        hours=None,
        start=datetime(2024, 1, 1, 8, 0),
        inventory=None,
        name="Metformin",
    ):
        med = Medication(
            medication_id=uuid.uuid4(),
            user_id=user.user_id,
            name=name,
            dosage="500 mg",
            frequency=frequency,
            frequency_value=hours,
            active=True,
        )
        slots = build_slots(med, list(times), start)
        db.add(med)
        db.flush()
        db.add_all(slots)
        db.add(store_streak(Streak(medication_id=med.medication_id), StreakState()))
        if inventory is not None:
            db.add(MedicationInventory(medication_id=med.medication_id, total_refilled=0, **inventory))
        db.commit()
        return med, load_slots(db, med.medication_id)

    return _make
