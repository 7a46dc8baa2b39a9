"""
Parking Session Model - One vehicle's stay from check-in to check-out
"""
from sqlalchemy import Column, BigInteger, String, DateTime, Boolean, Integer, Numeric, ForeignKey
from sqlalchemy.sql import func
from atams.db import Base


class ParkingSession(Base):
    """Parking Session model for parkir schema - Table: parkir.parking_sessions"""
    __tablename__ = "parking_sessions"
    __table_args__ = {"schema": "parkir"}

    ps_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    ps_jukir_id = Column(BigInteger, ForeignKey("parkir.jukirs.jk_id"), nullable=True, index=True)
    ps_area_id = Column(BigInteger, ForeignKey("parkir.parking_areas.pa_id"), nullable=False, index=True)
    ps_vehicle_type = Column(String(10), nullable=False, default="mobil", index=True)  # 'mobil' or 'motor'
    ps_plat_nomor = Column(String(20), nullable=True, index=True)
    ps_is_manual_record = Column(Boolean, nullable=False, default=False)
    ps_checkin_time = Column(DateTime(timezone=True), nullable=False, index=True)
    ps_checkout_time = Column(DateTime(timezone=True), nullable=True)
    ps_duration = Column(Integer, nullable=True)  # minutes
    ps_total_cost = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    ps_payment_status = Column(String(20), nullable=False, default="pending")
    ps_session_status = Column(String(20), nullable=False, default="active", index=True)
    ps_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    ps_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
