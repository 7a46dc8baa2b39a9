"""
Parking Session Repository - Data access layer for parking sessions
"""
from typing import Optional, List, Tuple
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import and_

from atams.db import BaseRepository
from atams.transaction import transaction
from app.core.timezone import to_local
from app.models.jukir import Jukir
from app.models.parking_session import ParkingSession
from app.models.payment import Payment
from app.models.enums import SessionStatus
from app.repositories.payment_repository import PaymentRepository


class ParkingSessionRepository(BaseRepository[ParkingSession]):
    def __init__(self):
        super().__init__(ParkingSession)
        self.payment_repo = PaymentRepository()

    def get_by_id(self, db: Session, session_id: int) -> Optional[ParkingSession]:
        return db.query(ParkingSession).filter(ParkingSession.ps_id == session_id).first()

    def get_active_by_plate(self, db: Session, plat_nomor: str) -> Optional[ParkingSession]:
        """Get the active session of a license plate using ORM"""
        return db.query(ParkingSession).filter(
            and_(
                ParkingSession.ps_plat_nomor == plat_nomor,
                ParkingSession.ps_session_status == SessionStatus.ACTIVE.value
            )
        ).order_by(ParkingSession.ps_checkin_time.asc()).first()

    def get_active_by_token(self, db: Session, qr_token: str) -> Optional[ParkingSession]:
        """Get the oldest active session checked in with an attendant's QR token"""
        return db.query(ParkingSession).join(
            Jukir, ParkingSession.ps_jukir_id == Jukir.jk_id
        ).filter(
            and_(
                Jukir.jk_qr_token == qr_token,
                ParkingSession.ps_session_status == SessionStatus.ACTIVE.value
            )
        ).order_by(ParkingSession.ps_checkin_time.asc(), ParkingSession.ps_id.asc()).first()

    def get_active_anonymous_by_token(self, db: Session, qr_token: str) -> Optional[ParkingSession]:
        """Get an active session without a plate checked in with the given QR token"""
        return db.query(ParkingSession).join(
            Jukir, ParkingSession.ps_jukir_id == Jukir.jk_id
        ).filter(
            and_(
                Jukir.jk_qr_token == qr_token,
                ParkingSession.ps_plat_nomor.is_(None),
                ParkingSession.ps_session_status == SessionStatus.ACTIVE.value
            )
        ).first()

    def get_sessions_by_area(
        self,
        db: Session,
        area_id: int,
        start: datetime,
        end: datetime
    ) -> List[ParkingSession]:
        """Sessions of an area checked in within [start, end)"""
        return db.query(ParkingSession).filter(
            and_(
                ParkingSession.ps_area_id == area_id,
                ParkingSession.ps_checkin_time >= to_local(start),
                ParkingSession.ps_checkin_time < to_local(end)
            )
        ).order_by(ParkingSession.ps_checkin_time.asc()).all()

    def get_sessions_by_jukir(
        self,
        db: Session,
        jukir_id: int,
        start: datetime,
        end: datetime
    ) -> List[ParkingSession]:
        """Sessions handled by an attendant checked in within [start, end)"""
        return db.query(ParkingSession).filter(
            and_(
                ParkingSession.ps_jukir_id == jukir_id,
                ParkingSession.ps_checkin_time >= to_local(start),
                ParkingSession.ps_checkin_time < to_local(end)
            )
        ).order_by(ParkingSession.ps_checkin_time.asc()).all()

    def get_jukir_active_sessions(self, db: Session, jukir_id: int) -> List[ParkingSession]:
        return db.query(ParkingSession).filter(
            and_(
                ParkingSession.ps_jukir_id == jukir_id,
                ParkingSession.ps_session_status == SessionStatus.ACTIVE.value
            )
        ).order_by(ParkingSession.ps_checkin_time.asc()).all()

    def get_pending_payments(self, db: Session, jukir_id: int) -> List[ParkingSession]:
        return db.query(ParkingSession).filter(
            and_(
                ParkingSession.ps_jukir_id == jukir_id,
                ParkingSession.ps_session_status == SessionStatus.PENDING_PAYMENT.value
            )
        ).all()

    def get_history_by_plate(
        self,
        db: Session,
        plat_nomor: str,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[ParkingSession], int]:
        """Get a plate's sessions, newest first, with the total count"""
        query = db.query(ParkingSession).filter(ParkingSession.ps_plat_nomor == plat_nomor)
        total = query.count()
        sessions = query.order_by(
            ParkingSession.ps_checkin_time.desc()
        ).offset(skip).limit(limit).all()
        return sessions, total

    def record_checkin(self, db: Session, session_data: dict, payment_data: dict) -> ParkingSession:
        """
        Persist a new session and its up-front payment as one unit of work.

        Either both rows are committed or neither is.
        """
        with transaction(db):
            db_session = ParkingSession(**session_data)
            db.add(db_session)
            db.flush()

            db_payment = Payment(py_session_id=db_session.ps_id, **payment_data)
            db.add(db_payment)

        db.refresh(db_session)
        return db_session

    def record_checkout(
        self,
        db: Session,
        db_session: ParkingSession,
        session_data: dict,
        payment_data: dict
    ) -> ParkingSession:
        """
        Close a session and settle its payment as one unit of work.

        The existing payment row is updated in place; one is created only
        when the check-in left none behind.
        """
        with transaction(db):
            for field, value in session_data.items():
                setattr(db_session, field, value)
            db.add(db_session)

            db_payment = self.payment_repo.get_by_session_id(db, db_session.ps_id)
            if db_payment is None:
                db_payment = Payment(py_session_id=db_session.ps_id, **payment_data)
            else:
                for field, value in payment_data.items():
                    setattr(db_payment, field, value)
            db.add(db_payment)

        db.refresh(db_session)
        return db_session
