"""
Admin Endpoints - Revenue reports and live connection status
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.db.session import get_db
from app.services.revenue_service import RevenueService, parse_date_range, resolve_date_range
from app.services.event_manager import event_manager
from app.models.enums import VehicleType
from app.schemas import (
    DateRangePreset,
    Granularity,
    RevenueFilter,
    RevenueReport,
    SSEStatusResponse,
    DataResponse
)
from app.api.deps import require_min_role_level
from app.core.config import settings
from app.core.timezone import now_local
from atams.encryption import encrypt_response_data

router = APIRouter()
revenue_service = RevenueService()


@router.get(
    "/revenue",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_revenue(
    date_range: DateRangePreset = Query(DateRangePreset.TODAY, description="Preset window"),
    start_date: Optional[date] = Query(None, description="Start date (YYYY-MM-DD), overrides date_range"),
    end_date: Optional[date] = Query(None, description="End date (YYYY-MM-DD), inclusive"),
    vehicle_type: Optional[VehicleType] = Query(None),
    regional: Optional[str] = Query(None),
    area_id: Optional[int] = Query(None),
    jukir_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Actual and estimated revenue

    **Authorization:**
    - Requires role level >= 50 (Admin or above)

    **Notes:**
    - actual: paid payments confirmed in the window
    - estimated: open sessions projected by elapsed minutes, plus pending payments
    """
    window = parse_date_range(start_date, end_date) or resolve_date_range(date_range, now_local())
    filters = RevenueFilter(vehicle_type=vehicle_type, regional=regional, area_id=area_id, jukir_id=jukir_id)

    breakdown = revenue_service.get_revenue(db, window[0], window[1], filters)

    response = DataResponse(
        success=True,
        message="Revenue retrieved successfully",
        data=RevenueReport(start=window[0], end=window[1], **breakdown.model_dump())
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/revenue/periods",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_revenue_periods(
    granularity: Granularity = Query(Granularity.DAILY),
    vehicle_type: Optional[VehicleType] = Query(None),
    regional: Optional[str] = Query(None),
    area_id: Optional[int] = Query(None),
    jukir_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    """Revenue of the last 7 days, weeks or months, oldest first"""
    filters = RevenueFilter(vehicle_type=vehicle_type, regional=regional, area_id=area_id, jukir_id=jukir_id)

    response = DataResponse(
        success=True,
        message="Revenue periods retrieved successfully",
        data=revenue_service.get_periods(db, granularity, filters)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/sse-status",
    response_model=DataResponse[SSEStatusResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_sse_status():
    return DataResponse(
        success=True,
        message="SSE status retrieved successfully",
        data=SSEStatusResponse(connected_count=event_manager.connected_count())
    )
