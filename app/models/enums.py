"""
Status and classification enums shared by models, schemas and services
"""
from enum import Enum


class VehicleType(str, Enum):
    MOBIL = "mobil"  # car
    MOTOR = "motor"  # motorcycle


class JukirStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class AreaStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    PENDING_PAYMENT = "pending_payment"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    QRIS = "qris"
    BANK_TRANSFER = "bank_transfer"
