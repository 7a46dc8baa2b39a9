from .parking_area import ParkingArea
from .jukir import Jukir
from .parking_session import ParkingSession
from .payment import Payment

__all__ = [
    "ParkingArea",
    "Jukir",
    "ParkingSession",
    "Payment"
]
