"""
Parking Endpoints - QR check-in/check-out, session lookup and nearby areas

The attendant's QR token is the credential for these routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from app.db.session import get_db
from app.services.parking_service import ParkingService
from app.schemas import (
    CheckinRequest,
    CheckinResponse,
    CheckoutRequest,
    CheckoutResponse,
    DataResponse,
    PaginationResponse
)
from app.core.config import settings
from atams.encryption import encrypt_response_data

router = APIRouter()
parking_service = ParkingService()


@router.post(
    "/checkin",
    response_model=DataResponse[CheckinResponse],
    status_code=status.HTTP_201_CREATED
)
async def checkin(
    request: CheckinRequest,
    db: Session = Depends(get_db)
):
    """
    Start a parking session by scanning an attendant's QR code

    **Process:**
    1. Resolve the attendant from the QR token (must be active)
    2. Geofence validation when latitude/longitude are sent
    3. Charge the area's flat rate for the vehicle type up front

    **Errors:**
    - 403: Attendant inactive or location out of range
    - 404: Invalid QR code
    - 409: Vehicle already has an active session
    """
    checkin_response = parking_service.checkin(db, request)

    return DataResponse(
        success=True,
        message="Check-in successful",
        data=checkin_response
    )


@router.post(
    "/checkout",
    response_model=DataResponse[CheckoutResponse],
    status_code=status.HTTP_200_OK
)
async def checkout(
    request: CheckoutRequest,
    db: Session = Depends(get_db)
):
    """
    End a parking session

    The session is chosen by `session_id`, then `plat_nomor`, then the
    oldest active session of the QR token.

    **Errors:**
    - 403: Different area or attendant, or location out of range
    - 404: Invalid QR code or no matching session
    - 409: Session already completed or not active
    """
    checkout_response = parking_service.checkout(db, request)

    return DataResponse(
        success=True,
        message="Check-out successful",
        data=checkout_response
    )


@router.get(
    "/active",
    status_code=status.HTTP_200_OK
)
async def get_active_session(
    qr_token: str = Query(..., min_length=1, description="Attendant QR token"),
    db: Session = Depends(get_db)
):
    """Get the active session checked in with a QR token"""
    session_data = parking_service.get_active_session(db, qr_token)

    response = DataResponse(
        success=True,
        message="Active session retrieved successfully",
        data=session_data
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/sessions/{session_id}/active",
    status_code=status.HTTP_200_OK
)
async def get_active_session_by_id(
    session_id: int,
    db: Session = Depends(get_db)
):
    session_data = parking_service.get_active_session_by_id(db, session_id)

    response = DataResponse(
        success=True,
        message="Active session retrieved successfully",
        data=session_data
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/history",
    status_code=status.HTTP_200_OK
)
async def get_history(
    plat_nomor: str = Query(..., min_length=1, description="License plate"),
    limit: int = Query(50, ge=1, le=200, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    db: Session = Depends(get_db)
):
    """
    Parking history of a license plate, newest first
    """
    sessions, total = parking_service.get_history_by_plate(db, plat_nomor, limit=limit, offset=offset)

    response = PaginationResponse(
        success=True,
        message="Parking history retrieved successfully",
        data=sessions,
        total=total,
        page=offset // limit + 1,
        size=limit,
        pages=(total + limit - 1) // limit
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/areas/nearby",
    status_code=status.HTTP_200_OK
)
async def get_nearby_areas(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    radius: Optional[float] = Query(None, gt=0, le=50, description="Radius in km (default 1)"),
    db: Session = Depends(get_db)
):
    """
    Active parking areas around a point, closest first

    Without coordinates every active area is listed.
    """
    areas = parking_service.get_nearby_areas(db, latitude, longitude, radius)

    response = DataResponse(
        success=True,
        message="Parking areas retrieved successfully",
        data=areas
    )

    return encrypt_response_data(response, settings)
