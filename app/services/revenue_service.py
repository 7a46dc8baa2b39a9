"""
Revenue Service - Actual and estimated revenue over time windows

Actual revenue is money confirmed for settled sessions. Estimated revenue projects the
value of sessions that are still open, by elapsed minutes, even though the
amount finally charged is the flat rate. The two are not expected to match.
Nothing is cached: every call re-scans the scoped areas.
"""
from typing import Callable, List, Optional, Tuple
from datetime import date, datetime, time, timedelta
from sqlalchemy.orm import Session

from atams.exceptions import BadRequestException

from app.repositories.parking_area_repository import ParkingAreaRepository
from app.repositories.parking_session_repository import ParkingSessionRepository
from app.repositories.payment_repository import PaymentRepository
from app.services.billing_service import duration_minutes, estimate_accrual, round_currency
from app.models.parking_area import ParkingArea
from app.models.enums import SessionStatus
from app.schemas.revenue import (
    DateRangePreset,
    Granularity,
    PeriodBucket,
    RevenueBreakdown,
    RevenueFilter
)
from app.core.timezone import get_local_zone, now_local, start_of_day, to_local

PERIOD_COUNT = 7

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _add_months(value: datetime, months: int) -> datetime:
    index = value.year * 12 + value.month - 1 + months
    return value.replace(year=index // 12, month=index % 12 + 1, day=1)


def resolve_date_range(preset: DateRangePreset, now: datetime) -> Tuple[datetime, datetime]:
    """
    Window of a named preset

    `today` covers the whole calendar day. The other presets run from the
    start of the week (Monday), month or year up to `now`.
    """
    today = start_of_day(now)
    preset = DateRangePreset(preset)

    if preset == DateRangePreset.THIS_WEEK:
        return today - timedelta(days=today.weekday()), to_local(now)
    if preset == DateRangePreset.THIS_MONTH:
        return today.replace(day=1), to_local(now)
    if preset == DateRangePreset.THIS_YEAR:
        return today.replace(month=1, day=1), to_local(now)
    return today, today + timedelta(days=1)


def parse_date_range(start_date: Optional[date], end_date: Optional[date]) -> Optional[Tuple[datetime, datetime]]:
    """
    Window covering two calendar dates, both inclusive

    Returns None when neither date is given.

    Raises:
        BadRequestException: Only one date given, or end before start
    """
    if start_date is None and end_date is None:
        return None
    if start_date is None or end_date is None:
        raise BadRequestException("Both start_date and end_date are required")
    if end_date < start_date:
        raise BadRequestException("end_date must not be before start_date")

    zone = get_local_zone()
    start = datetime.combine(start_date, time.min, tzinfo=zone)
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=zone)
    return start, end


class RevenueService:
    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.area_repo = ParkingAreaRepository()
        self.session_repo = ParkingSessionRepository()
        self.payment_repo = PaymentRepository()
        self._clock = clock or now_local

    def _scoped_areas(self, db: Session, filters: RevenueFilter) -> List[ParkingArea]:
        areas = self.area_repo.get_active_areas(db)
        if filters.regional:
            areas = [a for a in areas if a.pa_regional == filters.regional]
        if filters.area_id is not None:
            areas = [a for a in areas if a.pa_id == filters.area_id]
        return areas

    def _estimate(
        self,
        db: Session,
        areas: List[ParkingArea],
        start: datetime,
        end: datetime,
        filters: RevenueFilter
    ) -> float:
        now = self._clock()
        vehicle_type = filters.vehicle_type.value if filters.vehicle_type else None
        estimated = 0.0

        for area in areas:
            for session in self.session_repo.get_sessions_by_area(db, area.pa_id, start, end):
                if vehicle_type and session.ps_vehicle_type != vehicle_type:
                    continue
                if filters.jukir_id is not None and session.ps_jukir_id != filters.jukir_id:
                    continue

                if session.ps_session_status == SessionStatus.ACTIVE.value and session.ps_checkout_time is None:
                    elapsed = duration_minutes(session.ps_checkin_time, now)
                    estimated += estimate_accrual(area, session.ps_vehicle_type, elapsed)
                elif (session.ps_session_status == SessionStatus.PENDING_PAYMENT.value
                      and session.ps_total_cost is not None):
                    estimated += float(session.ps_total_cost)

        return estimated

    def get_revenue(
        self,
        db: Session,
        start: datetime,
        end: datetime,
        filters: Optional[RevenueFilter] = None
    ) -> RevenueBreakdown:
        """
        Actual and estimated revenue for the window [start, end)

        Args:
            db: Database session
            start: Inclusive window start
            end: Exclusive window end
            filters: Optional vehicle class, regional, area or attendant scope

        Returns:
            RevenueBreakdown: Rounded actual, estimated and total revenue
        """
        filters = filters or RevenueFilter()
        start, end = to_local(start), to_local(end)
        areas = self._scoped_areas(db, filters)

        actual = self.payment_repo.get_revenue_by_date_range(
            db,
            start,
            end,
            area_ids=[a.pa_id for a in areas],
            vehicle_type=filters.vehicle_type.value if filters.vehicle_type else None,
            jukir_id=filters.jukir_id
        )
        estimated = self._estimate(db, areas, start, end, filters)

        actual = round_currency(actual)
        estimated = round_currency(estimated)
        return RevenueBreakdown(
            actual_revenue=actual,
            estimated_revenue=estimated,
            total_revenue=actual + estimated
        )

    def _period_windows(self, granularity: Granularity) -> List[Tuple[str, str, datetime, datetime]]:
        today = start_of_day(self._clock())
        granularity = Granularity(granularity)
        windows = []

        for offset in range(PERIOD_COUNT - 1, -1, -1):
            if granularity == Granularity.WEEKLY:
                monday = today - timedelta(days=today.weekday())
                start = monday - timedelta(weeks=offset)
                end = start + timedelta(weeks=1)
                label = f"Week {start.isocalendar()[1]}"
                key = start.strftime("%Y-%m-%d")
            elif granularity == Granularity.MONTHLY:
                start = _add_months(today, -offset)
                end = _add_months(start, 1)
                label = MONTH_LABELS[start.month - 1]
                key = start.strftime("%Y-%m")
            else:
                start = today - timedelta(days=offset)
                end = start + timedelta(days=1)
                label = WEEKDAY_LABELS[start.weekday()]
                key = start.strftime("%Y-%m-%d")
            windows.append((label, key, start, end))

        return windows

    def get_periods(
        self,
        db: Session,
        granularity: Granularity = Granularity.DAILY,
        filters: Optional[RevenueFilter] = None
    ) -> List[PeriodBucket]:
        """Seven buckets ending with the current day, week or month, oldest first"""
        buckets = []
        for label, key, start, end in self._period_windows(granularity):
            breakdown = self.get_revenue(db, start, end, filters)
            buckets.append(PeriodBucket(
                label=label,
                date=key,
                actual_revenue=breakdown.actual_revenue,
                estimated_revenue=breakdown.estimated_revenue
            ))
        return buckets
