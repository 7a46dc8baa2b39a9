import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ATLAS_APP_CODE", "PARKIR_TEST")
os.environ.setdefault("ENCRYPTION_ENABLED", "false")
os.environ.setdefault("LOG_TO_FILE", "false")

import math
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from atams.db import Base
from app.core.timezone import get_local_zone
from app.models import ParkingArea, Jukir, ParkingSession, Payment
from app.services.event_manager import EventManager
from app.services.geo_service import EARTH_RADIUS_M

AREA_LAT = -6.175392
AREA_LNG = 106.827153


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def local_dt(*args) -> datetime:
    return datetime(*args, tzinfo=get_local_zone())


def north_of(lat: float, lng: float, meters: float):
    """Point `meters` due north along the meridian"""
    return lat + math.degrees(meters / EARTH_RADIUS_M), lng


def make_area(db, **overrides) -> ParkingArea:
    data = {
        "pa_name": "Monas Barat",
        "pa_address": "Jl. Medan Merdeka Barat",
        "pa_latitude": AREA_LAT,
        "pa_longitude": AREA_LNG,
        "pa_regional": "Jakarta Pusat",
        "pa_hourly_rate_mobil": 5000,
        "pa_hourly_rate_motor": 3000,
        "pa_max_mobil": 20,
        "pa_max_motor": 50,
        "pa_status": "active",
    }
    data.update(overrides)
    area = ParkingArea(**data)
    db.add(area)
    db.commit()
    db.refresh(area)
    return area


def make_jukir(db, area: ParkingArea, **overrides) -> Jukir:
    count = db.query(Jukir).count() + 1
    data = {
        "jk_user_id": 100 + count,
        "jk_code": f"JK{count:03d}",
        "jk_area_id": area.pa_id,
        "jk_qr_token": f"QR-JK{count:03d}",
        "jk_status": "active",
    }
    data.update(overrides)
    jukir = Jukir(**data)
    db.add(jukir)
    db.commit()
    db.refresh(jukir)
    return jukir


def make_session(db, area: ParkingArea, jukir: Jukir = None, **overrides) -> ParkingSession:
    data = {
        "ps_jukir_id": jukir.jk_id if jukir else None,
        "ps_area_id": area.pa_id,
        "ps_vehicle_type": "mobil",
        "ps_plat_nomor": None,
        "ps_is_manual_record": False,
        "ps_payment_status": "pending",
        "ps_session_status": "active",
    }
    data.update(overrides)
    session = ParkingSession(**data)
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def make_payment(db, session: ParkingSession, **overrides) -> Payment:
    data = {
        "py_session_id": session.ps_id,
        "py_amount": 0,
        "py_method": "cash",
        "py_status": "paid",
    }
    data.update(overrides)
    payment = Payment(**data)
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        execution_options={"schema_translate_map": {"parkir": None}},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    # Wednesday
    return FixedClock(local_dt(2025, 1, 15, 10, 0))


@pytest.fixture
def events():
    return EventManager(queue_size=10)


@pytest.fixture
def area(db):
    return make_area(db)


@pytest.fixture
def jukir(db, area):
    return make_jukir(db, area)
