"""
Parking Area Repository - Data access layer for parking areas
"""
import math
from typing import Optional, List
from sqlalchemy.orm import Session
from sqlalchemy import and_

from atams.db import BaseRepository
from app.models.parking_area import ParkingArea
from app.models.enums import AreaStatus

KM_PER_DEGREE_LAT = 111.0


class ParkingAreaRepository(BaseRepository[ParkingArea]):
    def __init__(self):
        super().__init__(ParkingArea)

    def get_by_id(self, db: Session, area_id: int) -> Optional[ParkingArea]:
        """Get area by ID using ORM"""
        return db.query(ParkingArea).filter(ParkingArea.pa_id == area_id).first()

    def get_active_areas(self, db: Session) -> List[ParkingArea]:
        """Get all areas currently open for business using ORM"""
        return db.query(ParkingArea).filter(
            ParkingArea.pa_status == AreaStatus.ACTIVE.value
        ).order_by(ParkingArea.pa_id.asc()).all()

    def get_nearby_areas(self, db: Session, lat: float, lng: float, radius_km: float) -> List[ParkingArea]:
        """
        Bounding-box prefilter for active areas around a point.

        Callers refine the result with an exact haversine distance.
        """
        lat_range = radius_km / KM_PER_DEGREE_LAT
        cos_lat = math.cos(math.radians(lat))
        lng_range = radius_km / (KM_PER_DEGREE_LAT * cos_lat) if cos_lat > 1e-9 else 180.0

        return db.query(ParkingArea).filter(
            and_(
                ParkingArea.pa_latitude.between(lat - lat_range, lat + lat_range),
                ParkingArea.pa_longitude.between(lng - lng_range, lng + lng_range),
                ParkingArea.pa_status == AreaStatus.ACTIVE.value
            )
        ).all()
