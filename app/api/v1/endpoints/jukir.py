"""
Jukir Endpoints - Manual records, dashboard and live event stream
"""
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.jukir_service import JukirService
from app.services.parking_service import ParkingService
from app.services.event_manager import EventManager, Subscription, event_manager
from app.schemas import (
    ManualCheckinRequest,
    ManualCheckinResponse,
    ManualCheckoutRequest,
    ManualCheckoutResponse,
    DataResponse
)
from app.api.deps import require_auth, require_min_role_level
from app.core.config import settings
from atams.encryption import encrypt_response_data

router = APIRouter()
jukir_service = JukirService()
parking_service = ParkingService()


async def sse_events(
    subscription: Subscription,
    keepalive: Optional[float] = None,
    manager: EventManager = event_manager
) -> AsyncIterator[str]:
    """
    Render a subscription as text/event-stream frames

    A client disconnect cancels or closes this generator; either way the
    subscription is released.
    """
    events = manager.listen(subscription, keepalive)
    try:
        yield 'data: {"type":"connected","data":{}}\n\n'
        async for envelope in events:
            if envelope is None:
                yield ": keepalive\n\n"
                continue
            yield f"data: {envelope.model_dump_json()}\n\n"
    finally:
        await events.aclose()
        manager.unregister(subscription.jukir_id, subscription)


@router.post(
    "/manual-checkin",
    response_model=DataResponse[ManualCheckinResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_min_role_level(1))]
)
async def manual_checkin(
    request: ManualCheckinRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Record a vehicle by hand

    **Authentication:**
    - Requires valid user authentication (role level >= 1) bound to a jukir

    **Errors:**
    - 400: Latitude/longitude missing
    - 403: Jukir inactive or location out of range
    - 409: Plate already has an active session
    """
    jukir = jukir_service.get_jukir_by_user(db, current_user["user_id"])

    checkin_response = parking_service.manual_checkin(db, jukir.jk_id, request)

    return DataResponse(
        success=True,
        message="Manual check-in successful",
        data=checkin_response
    )


@router.post(
    "/manual-checkout",
    response_model=DataResponse[ManualCheckoutResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def manual_checkout(
    request: ManualCheckoutRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Close a manual record

    **Errors:**
    - 400: Latitude/longitude missing or session is not a manual record
    - 403: Session belongs to another jukir or area, or location out of range
    - 404: Session not found
    - 409: Session is not active
    """
    jukir = jukir_service.get_jukir_by_user(db, current_user["user_id"])

    checkout_response = parking_service.manual_checkout(db, jukir.jk_id, request)

    return DataResponse(
        success=True,
        message="Manual check-out successful",
        data=checkout_response
    )


@router.get(
    "/dashboard",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_dashboard(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """Today's figures of the current jukir"""
    jukir = jukir_service.get_jukir_by_user(db, current_user["user_id"])

    response = DataResponse(
        success=True,
        message="Dashboard retrieved successfully",
        data=jukir_service.get_dashboard(db, jukir.jk_id)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/active-sessions",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_active_sessions(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    jukir = jukir_service.get_jukir_by_user(db, current_user["user_id"])

    response = DataResponse(
        success=True,
        message="Active sessions retrieved successfully",
        data=jukir_service.get_active_sessions(db, jukir.jk_id)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/events",
    dependencies=[Depends(require_min_role_level(1))]
)
async def stream_events(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Live session events of the current jukir (text/event-stream)

    Opening a second stream for the same jukir ends the first one.
    """
    jukir = jukir_service.get_jukir_by_user(db, current_user["user_id"])
    subscription = event_manager.register(jukir.jk_id)

    return StreamingResponse(
        sse_events(subscription, settings.EVENT_KEEPALIVE_SECONDS),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )
