"""
Billing Service - Flat-rate pricing and accrual estimates
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from atams.exceptions import BadRequestException

from app.core.timezone import to_local
from app.models.enums import VehicleType
from app.models.parking_area import ParkingArea


def _vehicle_type(value: Union[VehicleType, str]) -> VehicleType:
    try:
        return VehicleType(value)
    except ValueError:
        raise BadRequestException(
            f"Invalid vehicle type: {value}",
            details={"allowed": [v.value for v in VehicleType]}
        )


def rate_for(area: ParkingArea, vehicle_type: Union[VehicleType, str]) -> float:
    """
    Flat charge of one session for the vehicle class

    The rate is whatever the area holds right now; elapsed time never
    changes it.
    """
    if _vehicle_type(vehicle_type) == VehicleType.MOTOR:
        rate = area.pa_hourly_rate_motor
    else:
        rate = area.pa_hourly_rate_mobil
    return float(rate or 0)


def duration_minutes(checkin_time: datetime, checkout_time: datetime) -> int:
    """Whole minutes between check-in and check-out, clamped at zero"""
    elapsed = (to_local(checkout_time) - to_local(checkin_time)).total_seconds()
    if elapsed <= 0:
        return 0
    return int(elapsed // 60)


def estimate_accrual(
    area: ParkingArea,
    vehicle_type: Union[VehicleType, str],
    elapsed_minutes: int
) -> float:
    """Projected value of an open session: elapsed minutes / 60 x current rate"""
    return max(0, int(elapsed_minutes)) / 60 * rate_for(area, vehicle_type)


def round_currency(value: float) -> float:
    """Round to whole currency units, halves away from zero"""
    return float(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
