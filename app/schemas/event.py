"""
Event Schemas for live attendant notifications
"""
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class EventType(str, Enum):
    SESSION_UPDATE = "session_update"
    SESSION_CREATED = "session_created"
    PAYMENT_CONFIRMED = "payment_confirmed"


class EventEnvelope(BaseModel):
    """Message delivered to a subscriber, serialized as one SSE data line"""
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class SessionUpdateEvent(BaseModel):
    """Payload of a session_update event; times are RFC 3339 strings"""
    session_id: int
    plat_nomor: Optional[str] = None
    vehicle_type: str
    old_status: str
    new_status: str
    total_cost: float
    checkout_time: str
    checkin_time: str


class SSEStatusResponse(BaseModel):
    connected_count: int
