"""
Parking Area Model - Billing zones with flat per-vehicle rates
"""
from sqlalchemy import Column, BigInteger, String, DateTime, Float, Integer, Numeric
from sqlalchemy.sql import func
from atams.db import Base


class ParkingArea(Base):
    """Parking Area model for parkir schema - Table: parkir.parking_areas"""
    __tablename__ = "parking_areas"
    __table_args__ = {"schema": "parkir"}

    pa_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    pa_name = Column(String(100), nullable=False)
    pa_address = Column(String(255), nullable=False, default="")
    pa_latitude = Column(Float, nullable=False)
    pa_longitude = Column(Float, nullable=False)
    pa_regional = Column(String(50), nullable=True, index=True)
    # Flat charge per session, despite the historical "hourly" name
    pa_hourly_rate_mobil = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    pa_hourly_rate_motor = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    pa_max_mobil = Column(Integer, nullable=True, default=0)
    pa_max_motor = Column(Integer, nullable=True, default=0)
    pa_status = Column(String(20), nullable=False, default="active")  # 'active', 'inactive' or 'maintenance'
    pa_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    pa_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
