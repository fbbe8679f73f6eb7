import json
import os

# Must be set before booking_core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOCK_BACKEND", "local")

import pytest
from sqlalchemy.orm import sessionmaker

from booking_core.database import init_db, make_engine
from booking_core.models import Professionals, Services, Shops
from booking_core.services.slots import BookingConfig, LocalKeyedLock, ReservationCommitter


def every_day(*intervals: tuple[str, str]) -> str:
    """Format B schedule with the same intervals on all seven days."""
    return json.dumps({str(day): [list(i) for i in intervals] for day in range(7)})


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


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
def config() -> BookingConfig:
    return BookingConfig()


@pytest.fixture
def shop(db) -> Shops:
    shop = Shops(name="Barbearia Central", work_schedule="{}")
    db.add(shop)
    db.commit()
    return shop


@pytest.fixture
def make_professional(db, shop):
    def _make(work_schedule: str | None = None, slot_step_minutes: int | None = None, active: bool = True) -> int:
        professional = Professionals(
            shop_id=shop.id,
            display_name="Rafael",
            work_schedule=work_schedule if work_schedule is not None else every_day(("08:00", "19:00")),
            slot_step_minutes=slot_step_minutes,
            is_active=1 if active else 0,
        )
        db.add(professional)
        db.commit()
        return professional.id

    return _make


@pytest.fixture
def professional_id(make_professional) -> int:
    return make_professional()


@pytest.fixture
def haircut(db, shop) -> Services:
    service = Services(shop_id=shop.id, name="Corte", duration_min=45, break_min=15, price=40.0)
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def committer(session_factory, config) -> ReservationCommitter:
    return ReservationCommitter(session_factory=session_factory, lock=LocalKeyedLock(), config=config)
