"""
Payment Repository - Data access layer for session payments
"""
from typing import Optional, List
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import and_, func

from atams.db import BaseRepository
from app.core.timezone import to_local
from app.models.payment import Payment
from app.models.parking_session import ParkingSession
from app.models.enums import PaymentStatus, SessionStatus

# Sessions whose value is reported as estimated revenue
UNSETTLED_STATUSES = (SessionStatus.ACTIVE.value, SessionStatus.PENDING_PAYMENT.value)


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self):
        super().__init__(Payment)

    def get_by_session_id(self, db: Session, session_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.py_session_id == session_id).first()

    def get_revenue_by_date_range(
        self,
        db: Session,
        start: datetime,
        end: datetime,
        area_ids: Optional[List[int]] = None,
        vehicle_type: Optional[str] = None,
        jukir_id: Optional[int] = None
    ) -> float:
        """
        Sum of settled payments confirmed within [start, end).

        Payments of sessions that are still active or awaiting payment are
        left out; those sessions are counted as estimated revenue instead.
        Optional filters scope the payments through their parking session.
        An empty `area_ids` list means no area is in scope.
        """
        if area_ids is not None and not area_ids:
            return 0.0

        query = db.query(func.coalesce(func.sum(Payment.py_amount), 0)).select_from(Payment).join(
            ParkingSession, Payment.py_session_id == ParkingSession.ps_id
        ).filter(
            and_(
                Payment.py_status == PaymentStatus.PAID.value,
                Payment.py_confirmed_at >= to_local(start),
                Payment.py_confirmed_at < to_local(end),
                ParkingSession.ps_session_status.notin_(UNSETTLED_STATUSES)
            )
        )

        if area_ids is not None:
            query = query.filter(ParkingSession.ps_area_id.in_(area_ids))
        if vehicle_type:
            query = query.filter(ParkingSession.ps_vehicle_type == vehicle_type)
        if jukir_id:
            query = query.filter(ParkingSession.ps_jukir_id == jukir_id)

        return float(query.scalar() or 0)

    def get_jukir_daily_revenue(self, db: Session, jukir_id: int, start: datetime, end: datetime) -> float:
        """Sum of payments an attendant confirmed within [start, end)"""
        total = db.query(func.coalesce(func.sum(Payment.py_amount), 0)).filter(
            and_(
                Payment.py_confirmed_by == jukir_id,
                Payment.py_status == PaymentStatus.PAID.value,
                Payment.py_confirmed_at >= to_local(start),
                Payment.py_confirmed_at < to_local(end)
            )
        ).scalar()
        return float(total or 0)
