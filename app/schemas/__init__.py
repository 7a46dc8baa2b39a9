from .parking import (
    ParkingArea,
    NearbyArea,
    ParkingSession,
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
from .jukir import JukirDashboardResponse
from .revenue import (
    Granularity,
    DateRangePreset,
    RevenueFilter,
    RevenueBreakdown,
    RevenueReport,
    PeriodBucket
)
from .event import EventType, EventEnvelope, SessionUpdateEvent, SSEStatusResponse
from .common import DataResponse, PaginationResponse

__all__ = [
    # Parking schemas
    "ParkingArea",
    "NearbyArea",
    "ParkingSession",
    "CheckinRequest",
    "CheckinResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "ManualCheckinRequest",
    "ManualCheckinResponse",
    "ManualCheckoutRequest",
    "ManualCheckoutResponse",
    "ActiveSessionResponse",
    # Jukir schemas
    "JukirDashboardResponse",
    # Revenue schemas
    "Granularity",
    "DateRangePreset",
    "RevenueFilter",
    "RevenueBreakdown",
    "RevenueReport",
    "PeriodBucket",
    # Event schemas
    "EventType",
    "EventEnvelope",
    "SessionUpdateEvent",
    "SSEStatusResponse",
    # Common schemas
    "DataResponse",
    "PaginationResponse"
]
