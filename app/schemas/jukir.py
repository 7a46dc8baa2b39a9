"""
Jukir Schemas for attendants and their dashboard
"""
from pydantic import BaseModel


class JukirDashboardResponse(BaseModel):
    """Today's figures for one attendant"""
    pending_payments: int
    daily_revenue: float
    active_sessions: int
    total_transactions: int
