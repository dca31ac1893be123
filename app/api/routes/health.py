"""
Health check endpoint.
"""

from fastapi import APIRouter, Depends

from ..deps import get_db
from ..schemas import HealthResponse
from ...core.database import Database

router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
def health_check(db: Database = Depends(get_db)):
    """Check API health and database status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        database_orders=db.get_order_count(),
        last_synced_at=db.get_last_synced_at()
    )
