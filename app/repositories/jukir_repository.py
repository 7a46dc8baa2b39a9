"""
Jukir Repository - Data access layer for parking attendants
"""
from typing import Optional
from sqlalchemy.orm import Session

from atams.db import BaseRepository
from app.models.jukir import Jukir


class JukirRepository(BaseRepository[Jukir]):
    def __init__(self):
        super().__init__(Jukir)

    def get_by_id(self, db: Session, jukir_id: int) -> Optional[Jukir]:
        return db.query(Jukir).filter(Jukir.jk_id == jukir_id).first()

    def get_by_token(self, db: Session, qr_token: str) -> Optional[Jukir]:
        """Resolve the attendant owning a QR token"""
        if not qr_token:
            return None
        return db.query(Jukir).filter(Jukir.jk_qr_token == qr_token).first()

    def get_by_user_id(self, db: Session, user_id: int) -> Optional[Jukir]:
        return db.query(Jukir).filter(Jukir.jk_user_id == user_id).first()
