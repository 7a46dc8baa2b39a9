from .event_manager import EventManager, event_manager
from .parking_service import ParkingService
from .jukir_service import JukirService
from .revenue_service import RevenueService

__all__ = [
    "EventManager",
    "event_manager",
    "ParkingService",
    "JukirService",
    "RevenueService"
]
