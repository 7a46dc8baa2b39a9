"""
Jukir Model - Parking attendants bound to one area
"""
from sqlalchemy import Column, BigInteger, String, DateTime, Integer, ForeignKey
from sqlalchemy.sql import func
from atams.db import Base


class Jukir(Base):
    """Jukir model for parkir schema - Table: parkir.jukirs"""
    __tablename__ = "jukirs"
    __table_args__ = {"schema": "parkir"}

    jk_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    jk_user_id = Column(BigInteger, nullable=False, unique=True, index=True)  # Atlas SSO user id
    jk_code = Column(String(20), nullable=False, unique=True)
    jk_area_id = Column(BigInteger, ForeignKey("parkir.parking_areas.pa_id"), nullable=False, index=True)
    jk_qr_token = Column(String(64), nullable=False, unique=True, index=True)
    jk_status = Column(String(20), nullable=False, default="pending")  # 'pending', 'active' or 'inactive'
    jk_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    jk_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
