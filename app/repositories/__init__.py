from .parking_area_repository import ParkingAreaRepository
from .jukir_repository import JukirRepository
from .parking_session_repository import ParkingSessionRepository
from .payment_repository import PaymentRepository

__all__ = [
    "ParkingAreaRepository",
    "JukirRepository",
    "ParkingSessionRepository",
    "PaymentRepository"
]
