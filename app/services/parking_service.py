"""
Parking Service - Session lifecycle: check-in, check-out and manual records
"""
from typing import Callable, List, Optional, Tuple
from datetime import datetime
from sqlalchemy.orm import Session

from atams.logging import get_logger

from app.repositories.jukir_repository import JukirRepository
from app.repositories.parking_area_repository import ParkingAreaRepository
from app.repositories.parking_session_repository import ParkingSessionRepository
from app.services.billing_service import rate_for, duration_minutes
from app.services.geo_service import ensure_within_area, filter_nearby
from app.services.event_manager import EventManager, event_manager as default_event_manager
from app.models.jukir import Jukir
from app.models.parking_area import ParkingArea
from app.models.parking_session import ParkingSession as ParkingSessionModel
from app.models.enums import JukirStatus, SessionStatus, PaymentStatus, PaymentMethod
from app.schemas.parking import (
    ParkingSession,
    NearbyArea,
    CheckinRequest,
    CheckinResponse,
    CheckoutRequest,
    CheckoutResponse,
    ManualCheckinRequest,
    ManualCheckinResponse,
    ManualCheckoutRequest,
    ManualCheckoutResponse,
    ActiveSessionResponse
)
from app.schemas.event import EventType, SessionUpdateEvent
from app.core.concurrency import KeyedLock
from app.core.config import settings
from app.core.timezone import now_local, to_local
from app.core.exceptions import (
    InvalidTokenException,
    JukirNotFoundException,
    AreaNotFoundException,
    SessionNotFoundException,
    AttendantInactiveException,
    CrossAreaMismatchException,
    AttendantMismatchException,
    SessionAlreadyCompletedException,
    SessionNotActiveException,
    SessionAlreadyActiveException,
    NotManualRecordException,
    LocationRequiredException
)

logger = get_logger(__name__)

# Shared by every service instance in this process
_checkin_locks = KeyedLock()
_checkout_locks = KeyedLock()


def _rfc3339(value: datetime) -> str:
    return to_local(value).isoformat(timespec="seconds")


class ParkingService:
    def __init__(
        self,
        event_manager: Optional[EventManager] = None,
        clock: Optional[Callable[[], datetime]] = None
    ) -> None:
        self.jukir_repo = JukirRepository()
        self.area_repo = ParkingAreaRepository()
        self.session_repo = ParkingSessionRepository()
        self.event_manager = event_manager or default_event_manager
        self._clock = clock or now_local

    def _get_jukir_by_token(self, db: Session, qr_token: str) -> Jukir:
        jukir = self.jukir_repo.get_by_token(db, qr_token)
        if not jukir:
            raise InvalidTokenException()
        return jukir

    def _get_area(self, db: Session, area_id: int) -> ParkingArea:
        area = self.area_repo.get_by_id(db, area_id)
        if not area:
            raise AreaNotFoundException()
        return area

    @staticmethod
    def _require_active(jukir: Jukir) -> None:
        if jukir.jk_status != JukirStatus.ACTIVE.value:
            raise AttendantInactiveException(details={"status": jukir.jk_status})

    @staticmethod
    def _require_location(latitude: Optional[float], longitude: Optional[float]) -> None:
        if latitude is None or longitude is None:
            raise LocationRequiredException()

    def _open_session(
        self,
        db: Session,
        jukir: Jukir,
        area: ParkingArea,
        vehicle_type: str,
        plat_nomor: Optional[str],
        lock_key: tuple,
        checkin_time: Optional[datetime] = None,
        manual: bool = False
    ) -> Tuple[ParkingSessionModel, float, datetime]:
        """Create the active session and its paid payment under the check-in lock"""
        with _checkin_locks.hold(lock_key):
            if plat_nomor:
                existing = self.session_repo.get_active_by_plate(db, plat_nomor)
            else:
                existing = self.session_repo.get_active_anonymous_by_token(db, jukir.jk_qr_token)
            if existing:
                raise SessionAlreadyActiveException(details={"session_id": existing.ps_id})

            rate = rate_for(area, vehicle_type)
            now = self._clock()
            checkin_time = to_local(checkin_time) if checkin_time else now

            session_data = {
                "ps_jukir_id": jukir.jk_id,
                "ps_area_id": area.pa_id,
                "ps_vehicle_type": vehicle_type,
                "ps_plat_nomor": plat_nomor,
                "ps_is_manual_record": manual,
                "ps_checkin_time": checkin_time,
                "ps_total_cost": rate,
                "ps_payment_status": PaymentStatus.PAID.value,
                "ps_session_status": SessionStatus.ACTIVE.value
            }
            payment_data = {
                "py_amount": rate,
                "py_method": PaymentMethod(settings.DEFAULT_PAYMENT_METHOD).value,
                "py_confirmed_by": jukir.jk_id,
                "py_confirmed_at": now,
                "py_status": PaymentStatus.PAID.value
            }
            db_session = self.session_repo.record_checkin(db, session_data, payment_data)

        logger.info(
            f"Checked in session {db_session.ps_id}",
            extra={'extra_data': {
                'session_id': db_session.ps_id,
                'jukir_id': jukir.jk_id,
                'area_id': area.pa_id,
                'vehicle_type': vehicle_type,
                'manual': manual,
                'total_cost': rate
            }}
        )
        self.event_manager.notify(jukir.jk_id, EventType.SESSION_CREATED, {
            "session_id": db_session.ps_id,
            "plat_nomor": plat_nomor,
            "vehicle_type": vehicle_type,
            "total_cost": rate,
            "checkin_time": _rfc3339(checkin_time)
        })
        return db_session, rate, checkin_time

    def _close_session(
        self,
        db: Session,
        db_session: ParkingSessionModel,
        jukir: Jukir,
        area: ParkingArea,
        checkout_time: datetime
    ) -> CheckoutResponse:
        """Settle an active session at the area's current rate and notify its attendant"""
        checkin_time = to_local(db_session.ps_checkin_time)
        checkout_time = to_local(checkout_time)
        duration = duration_minutes(checkin_time, checkout_time)
        # Re-read at check-out; may differ from the rate charged at check-in
        total_cost = rate_for(area, db_session.ps_vehicle_type)
        old_status = db_session.ps_session_status

        session_data = {
            "ps_checkout_time": checkout_time,
            "ps_duration": duration,
            "ps_total_cost": total_cost,
            "ps_session_status": SessionStatus.COMPLETED.value,
            "ps_payment_status": PaymentStatus.PAID.value
        }
        payment_data = {
            "py_amount": total_cost,
            "py_method": PaymentMethod(settings.DEFAULT_PAYMENT_METHOD).value,
            "py_confirmed_by": jukir.jk_id,
            "py_confirmed_at": checkout_time,
            "py_status": PaymentStatus.PAID.value
        }
        db_session = self.session_repo.record_checkout(db, db_session, session_data, payment_data)

        logger.info(
            f"Checked out session {db_session.ps_id}",
            extra={'extra_data': {
                'session_id': db_session.ps_id,
                'jukir_id': jukir.jk_id,
                'duration': duration,
                'total_cost': total_cost
            }}
        )

        if db_session.ps_jukir_id:
            event = SessionUpdateEvent(
                session_id=db_session.ps_id,
                plat_nomor=db_session.ps_plat_nomor,
                vehicle_type=db_session.ps_vehicle_type,
                old_status=old_status,
                new_status=SessionStatus.COMPLETED.value,
                total_cost=total_cost,
                checkout_time=_rfc3339(checkout_time),
                checkin_time=_rfc3339(checkin_time)
            )
            self.event_manager.notify(db_session.ps_jukir_id, EventType.SESSION_UPDATE, event.model_dump())
            self.event_manager.notify(db_session.ps_jukir_id, EventType.PAYMENT_CONFIRMED, {
                "session_id": db_session.ps_id,
                "amount": total_cost,
                "payment_method": payment_data["py_method"],
                "confirmed_at": _rfc3339(checkout_time)
            })

        return CheckoutResponse(
            session_id=db_session.ps_id,
            checkout_time=checkout_time,
            duration=duration,
            total_cost=total_cost,
            payment_status=PaymentStatus.PAID.value
        )

    def checkin(self, db: Session, request: CheckinRequest) -> CheckinResponse:
        """
        Start a parking session with an attendant's QR token

        Args:
            db: Database session
            request: Token, vehicle class, optional plate and optional GPS

        Returns:
            CheckinResponse: Session id, check-in time, area name and rate charged

        Raises:
            InvalidTokenException: Unknown QR token
            AttendantInactiveException: Attendant is not active
            OutOfRangeException: GPS given and too far from the area
            SessionAlreadyActiveException: Plate (or plate-less token) already parked
        """
        jukir = self._get_jukir_by_token(db, request.qr_token)
        self._require_active(jukir)
        area = self._get_area(db, jukir.jk_area_id)

        if request.latitude is not None and request.longitude is not None:
            ensure_within_area(request.latitude, request.longitude, area)

        vehicle_type = request.vehicle_type.value
        if request.plat_nomor:
            lock_key = ("plate", request.plat_nomor)
        else:
            lock_key = ("token", jukir.jk_qr_token)

        db_session, rate, checkin_time = self._open_session(
            db, jukir, area, vehicle_type, request.plat_nomor, lock_key
        )

        return CheckinResponse(
            session_id=db_session.ps_id,
            checkin_time=checkin_time,
            area_name=area.pa_name,
            hourly_rate=rate
        )

    def _select_session(self, db: Session, request: CheckoutRequest) -> ParkingSessionModel:
        # session id > plate > token
        if request.session_id is not None:
            db_session = self.session_repo.get_by_id(db, request.session_id)
            if not db_session:
                raise SessionNotFoundException()
            if db_session.ps_session_status == SessionStatus.COMPLETED.value:
                raise SessionAlreadyCompletedException()
            return db_session

        if request.plat_nomor:
            db_session = self.session_repo.get_active_by_plate(db, request.plat_nomor)
        else:
            db_session = self.session_repo.get_active_by_token(db, request.qr_token)
        if not db_session:
            raise SessionNotFoundException("No active session found")
        return db_session

    def checkout(self, db: Session, request: CheckoutRequest) -> CheckoutResponse:
        """
        End a parking session and settle its payment

        Raises:
            InvalidTokenException: Unknown QR token
            SessionNotFoundException: No session matches the selector
            SessionAlreadyCompletedException: Session was already checked out
            SessionNotActiveException: Session is cancelled or awaiting payment
            CrossAreaMismatchException: Token belongs to another area
            AttendantMismatchException: Token belongs to another attendant of the area
            OutOfRangeException: GPS given and too far from the area
        """
        jukir = self._get_jukir_by_token(db, request.qr_token)
        db_session = self._select_session(db, request)

        with _checkout_locks.hold(db_session.ps_id):
            # A concurrent check-out may have closed it while we waited
            db.refresh(db_session)
            if db_session.ps_session_status == SessionStatus.COMPLETED.value:
                raise SessionAlreadyCompletedException()
            if db_session.ps_session_status != SessionStatus.ACTIVE.value:
                raise SessionNotActiveException(details={"status": db_session.ps_session_status})

            if db_session.ps_area_id != jukir.jk_area_id:
                raise CrossAreaMismatchException()
            if db_session.ps_jukir_id != jukir.jk_id:
                raise AttendantMismatchException()

            area = self._get_area(db, db_session.ps_area_id)
            if request.latitude is not None and request.longitude is not None:
                ensure_within_area(request.latitude, request.longitude, area)

            return self._close_session(db, db_session, jukir, area, self._clock())

    def manual_checkin(self, db: Session, jukir_id: int, request: ManualCheckinRequest) -> ManualCheckinResponse:
        """
        Record a session by hand for a vehicle the attendant could not scan

        GPS is mandatory.

        Raises:
            LocationRequiredException: Latitude or longitude missing
            JukirNotFoundException: Attendant does not exist
            AttendantInactiveException: Attendant is not active
            OutOfRangeException: Too far from the area
            SessionAlreadyActiveException: Plate already parked
        """
        self._require_location(request.latitude, request.longitude)

        jukir = self.jukir_repo.get_by_id(db, jukir_id)
        if not jukir:
            raise JukirNotFoundException()
        self._require_active(jukir)
        area = self._get_area(db, jukir.jk_area_id)
        ensure_within_area(request.latitude, request.longitude, area)

        db_session, rate, checkin_time = self._open_session(
            db,
            jukir,
            area,
            request.vehicle_type.value,
            request.plat_nomor,
            ("plate", request.plat_nomor),
            checkin_time=request.checkin_time,
            manual=True
        )

        return ManualCheckinResponse(
            session_id=db_session.ps_id,
            checkin_time=checkin_time,
            area_name=area.pa_name,
            hourly_rate=rate
        )

    def manual_checkout(self, db: Session, jukir_id: int, request: ManualCheckoutRequest) -> ManualCheckoutResponse:
        """
        Close a manual record

        Raises:
            LocationRequiredException: Latitude or longitude missing
            JukirNotFoundException: Attendant does not exist
            SessionNotFoundException: Unknown session
            AttendantMismatchException: Session belongs to another attendant
            CrossAreaMismatchException: Session belongs to another area
            SessionNotActiveException: Session is not active
            NotManualRecordException: Session was created by a scan
            OutOfRangeException: Too far from the area
        """
        self._require_location(request.latitude, request.longitude)

        jukir = self.jukir_repo.get_by_id(db, jukir_id)
        if not jukir:
            raise JukirNotFoundException()

        db_session = self.session_repo.get_by_id(db, request.session_id)
        if not db_session:
            raise SessionNotFoundException()

        with _checkout_locks.hold(db_session.ps_id):
            db.refresh(db_session)
            if db_session.ps_jukir_id != jukir.jk_id:
                raise AttendantMismatchException("Session does not belong to this jukir")
            if db_session.ps_area_id != jukir.jk_area_id:
                raise CrossAreaMismatchException("Session belongs to a different parking area")
            if db_session.ps_session_status != SessionStatus.ACTIVE.value:
                raise SessionNotActiveException(details={"status": db_session.ps_session_status})
            if not db_session.ps_is_manual_record:
                raise NotManualRecordException()

            area = self._get_area(db, db_session.ps_area_id)
            ensure_within_area(request.latitude, request.longitude, area)

            checkout_time = request.checkout_time or self._clock()
            response = self._close_session(db, db_session, jukir, area, checkout_time)

        return ManualCheckoutResponse(**response.model_dump())

    def _active_session_response(self, db: Session, db_session: ParkingSessionModel) -> ActiveSessionResponse:
        area = self._get_area(db, db_session.ps_area_id)
        checkin_time = to_local(db_session.ps_checkin_time)
        rate = rate_for(area, db_session.ps_vehicle_type)
        return ActiveSessionResponse(
            session_id=db_session.ps_id,
            plat_nomor=db_session.ps_plat_nomor,
            vehicle_type=db_session.ps_vehicle_type,
            checkin_time=checkin_time,
            area_name=area.pa_name,
            hourly_rate=rate,
            duration=duration_minutes(checkin_time, self._clock()),
            current_cost=rate
        )

    def get_active_session(self, db: Session, qr_token: str) -> ActiveSessionResponse:
        """Oldest open session checked in with the QR token"""
        self._get_jukir_by_token(db, qr_token)
        db_session = self.session_repo.get_active_by_token(db, qr_token)
        if not db_session:
            raise SessionNotFoundException("No active session found")
        return self._active_session_response(db, db_session)

    def get_active_session_by_id(self, db: Session, session_id: int) -> ActiveSessionResponse:
        db_session = self.session_repo.get_by_id(db, session_id)
        if not db_session:
            raise SessionNotFoundException()
        if db_session.ps_session_status != SessionStatus.ACTIVE.value:
            raise SessionNotActiveException(details={"status": db_session.ps_session_status})
        return self._active_session_response(db, db_session)

    def get_history_by_plate(
        self,
        db: Session,
        plat_nomor: str,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[ParkingSession], int]:
        sessions, total = self.session_repo.get_history_by_plate(
            db, plat_nomor.strip().upper(), skip=offset, limit=limit
        )
        return [ParkingSession.model_validate(s) for s in sessions], total

    def get_nearby_areas(
        self,
        db: Session,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius_km: Optional[float] = None
    ) -> List[NearbyArea]:
        """
        Active areas around a point, closest first

        Without coordinates every active area is returned.
        """
        if latitude is None or longitude is None:
            return [NearbyArea.model_validate(area) for area in self.area_repo.get_active_areas(db)]

        radius_km = radius_km or settings.NEARBY_DEFAULT_RADIUS_KM
        candidates = self.area_repo.get_nearby_areas(db, latitude, longitude, radius_km)
        return [
            NearbyArea.model_validate(area).model_copy(update={"distance_m": round(distance, 1)})
            for area, distance in filter_nearby(candidates, latitude, longitude, radius_km)
        ]
