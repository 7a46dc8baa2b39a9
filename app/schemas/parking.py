"""
Parking Schemas for areas, sessions and the check-in/check-out flows
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.enums import VehicleType


def _fix_datetime_timezone(v):
    """
    Fix datetime timezone format from PostgreSQL
    PostgreSQL returns: '2025-10-01 09:17:39.587802+07'
    Pydantic expects: '2025-10-01 09:17:39.587802+07:00'
    """
    if v == '' or v is None:
        return None

    if isinstance(v, str):
        import re
        pattern = r'([+-]\d{2})$'
        match = re.search(pattern, v)
        if match:
            v = v + ':00'

    return v


def _blank_plate_to_none(v):
    if isinstance(v, str):
        v = v.strip().upper()
        return v or None
    return v


class ParkingAreaBase(BaseModel):
    pa_name: str
    pa_address: str = ""
    pa_latitude: float
    pa_longitude: float
    pa_regional: Optional[str] = None
    pa_hourly_rate_mobil: float
    pa_hourly_rate_motor: float
    pa_max_mobil: Optional[int] = None
    pa_max_motor: Optional[int] = None
    pa_status: str = "active"


class ParkingAreaInDB(ParkingAreaBase):
    model_config = ConfigDict(from_attributes=True)

    pa_id: int
    pa_created_at: Optional[datetime] = None
    pa_updated_at: Optional[datetime] = None

    @field_validator('pa_created_at', 'pa_updated_at', mode='before')
    @classmethod
    def fix_datetime_timezone(cls, v):
        return _fix_datetime_timezone(v)


class ParkingArea(ParkingAreaInDB):
    pass


class NearbyArea(ParkingArea):
    """Active area with its distance from the caller, when coordinates were given"""
    distance_m: Optional[float] = None


class ParkingSessionBase(BaseModel):
    ps_jukir_id: Optional[int] = None
    ps_area_id: int
    ps_vehicle_type: VehicleType
    ps_plat_nomor: Optional[str] = None
    ps_is_manual_record: bool = False
    ps_checkin_time: datetime
    ps_checkout_time: Optional[datetime] = None
    ps_duration: Optional[int] = None
    ps_total_cost: Optional[float] = None
    ps_payment_status: str
    ps_session_status: str


class ParkingSessionInDB(ParkingSessionBase):
    model_config = ConfigDict(from_attributes=True)

    ps_id: int
    ps_created_at: Optional[datetime] = None
    ps_updated_at: Optional[datetime] = None

    @field_validator(
        'ps_checkin_time', 'ps_checkout_time', 'ps_created_at', 'ps_updated_at', mode='before'
    )
    @classmethod
    def fix_datetime_timezone(cls, v):
        return _fix_datetime_timezone(v)


class ParkingSession(ParkingSessionInDB):
    pass


# Request/Response schemas for API endpoints
class CheckinRequest(BaseModel):
    """Request schema for scanned check-in"""
    qr_token: str = Field(..., min_length=1)
    vehicle_type: VehicleType
    plat_nomor: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator('plat_nomor', mode='before')
    @classmethod
    def normalize_plate(cls, v):
        return _blank_plate_to_none(v)


class CheckinResponse(BaseModel):
    """Response schema for check-in"""
    session_id: int
    checkin_time: datetime
    area_name: str
    hourly_rate: float


class CheckoutRequest(BaseModel):
    """
    Request schema for scanned check-out

    The session is selected by `session_id`, then `plat_nomor`, then the
    oldest active session of the scanned QR token.
    """
    qr_token: str = Field(..., min_length=1)
    session_id: Optional[int] = None
    plat_nomor: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator('plat_nomor', mode='before')
    @classmethod
    def normalize_plate(cls, v):
        return _blank_plate_to_none(v)


class CheckoutResponse(BaseModel):
    """Response schema for check-out"""
    session_id: int
    checkout_time: datetime
    duration: int
    total_cost: float
    payment_status: str


class ManualCheckinRequest(BaseModel):
    """Request schema for a session recorded by hand by the attendant"""
    plat_nomor: str = Field(..., min_length=1, max_length=20)
    vehicle_type: VehicleType
    checkin_time: Optional[datetime] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator('plat_nomor', mode='before')
    @classmethod
    def normalize_plate(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class ManualCheckinResponse(CheckinResponse):
    pass


class ManualCheckoutRequest(BaseModel):
    """Request schema for closing a manual record"""
    session_id: int
    checkout_time: Optional[datetime] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class ManualCheckoutResponse(CheckoutResponse):
    pass


class ActiveSessionResponse(BaseModel):
    """Response schema for an open session"""
    session_id: int
    plat_nomor: Optional[str] = None
    vehicle_type: VehicleType
    checkin_time: datetime
    area_name: str
    hourly_rate: float
    duration: int
    current_cost: float
