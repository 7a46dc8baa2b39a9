"""
Jukir Service - Attendant lookup and dashboard figures
"""
from typing import Callable, List, Optional
from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from app.repositories.jukir_repository import JukirRepository
from app.repositories.parking_session_repository import ParkingSessionRepository
from app.repositories.payment_repository import PaymentRepository
from app.models.jukir import Jukir
from app.schemas.jukir import JukirDashboardResponse
from app.schemas.parking import ParkingSession
from app.core.timezone import now_local, start_of_day
from app.core.exceptions import JukirNotFoundException


class JukirService:
    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.jukir_repo = JukirRepository()
        self.session_repo = ParkingSessionRepository()
        self.payment_repo = PaymentRepository()
        self._clock = clock or now_local

    def get_jukir_by_user(self, db: Session, user_id: int) -> Jukir:
        """
        Resolve the SSO user to the attendant record

        Raises:
            JukirNotFoundException: User is not registered as an attendant
        """
        jukir = self.jukir_repo.get_by_user_id(db, user_id)
        if not jukir:
            raise JukirNotFoundException("Jukir profile not found for this user")
        return jukir

    def get_dashboard(self, db: Session, jukir_id: int) -> JukirDashboardResponse:
        """Today's pending payments, collected revenue, open sessions and transactions"""
        start = start_of_day(self._clock())
        end = start + timedelta(days=1)

        return JukirDashboardResponse(
            pending_payments=len(self.session_repo.get_pending_payments(db, jukir_id)),
            daily_revenue=self.payment_repo.get_jukir_daily_revenue(db, jukir_id, start, end),
            active_sessions=len(self.session_repo.get_jukir_active_sessions(db, jukir_id)),
            total_transactions=len(self.session_repo.get_sessions_by_jukir(db, jukir_id, start, end))
        )

    def get_active_sessions(self, db: Session, jukir_id: int) -> List[ParkingSession]:
        sessions = self.session_repo.get_jukir_active_sessions(db, jukir_id)
        return [ParkingSession.model_validate(s) for s in sessions]
