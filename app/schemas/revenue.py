"""
Revenue Schemas for reporting windows, filters and results
"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from app.models.enums import VehicleType


class Granularity(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DateRangePreset(str, Enum):
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    THIS_YEAR = "this_year"


class RevenueFilter(BaseModel):
    """Scope of a revenue computation; every field is optional"""
    vehicle_type: Optional[VehicleType] = None
    regional: Optional[str] = None
    area_id: Optional[int] = None
    jukir_id: Optional[int] = None


class RevenueBreakdown(BaseModel):
    actual_revenue: float
    estimated_revenue: float
    total_revenue: float


class RevenueReport(RevenueBreakdown):
    """Breakdown together with the window it was computed over"""
    start: datetime
    end: datetime


class PeriodBucket(BaseModel):
    label: str
    date: str
    actual_revenue: float
    estimated_revenue: float
