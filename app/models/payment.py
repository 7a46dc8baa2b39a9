"""
Payment Model - Settlement record, one per parking session
"""
from sqlalchemy import Column, BigInteger, String, DateTime, Integer, Numeric, ForeignKey
from sqlalchemy.sql import func
from atams.db import Base


class Payment(Base):
    """Payment model for parkir schema - Table: parkir.payments"""
    __tablename__ = "payments"
    __table_args__ = {"schema": "parkir"}

    py_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    py_session_id = Column(
        BigInteger, ForeignKey("parkir.parking_sessions.ps_id"), nullable=False, unique=True, index=True
    )
    py_amount = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    py_method = Column(String(20), nullable=False, default="cash")  # 'cash', 'qris' or 'bank_transfer'
    py_confirmed_by = Column(BigInteger, ForeignKey("parkir.jukirs.jk_id"), nullable=True)  # Jukir ID
    py_confirmed_at = Column(DateTime(timezone=True), nullable=True, index=True)
    py_status = Column(String(20), nullable=False, default="pending")
    py_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    py_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
