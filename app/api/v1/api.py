from fastapi import APIRouter
from app.api.v1.endpoints import parking, jukir, admin

api_router = APIRouter()

# Register routes
api_router.include_router(parking.router, prefix="/parking", tags=["Parking"])
api_router.include_router(jukir.router, prefix="/jukir", tags=["Jukir"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
