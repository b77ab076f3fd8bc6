# pulse_analytics/api/v1/endpoints/health.py
from fastapi import APIRouter, HTTPException

from pulse_analytics.db.session import check_db_connection

router = APIRouter(tags=["health"])


@router.get("/health/db")
def health_db():
    if not check_db_connection():
        raise HTTPException(status_code=503, detail="Database unavailable")
    return {"db": "ok"}
