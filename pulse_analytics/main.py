# pulse_analytics/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pulse_analytics.core.config import settings
from pulse_analytics.core.errors import (
    DuplicateTracker, InvalidCustomRange, InvalidPeriod, ReportError,
    UnresolvableQuestionReference,
)
from pulse_analytics.api.v1.endpoints import health, reports, trackers

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_V1_PREFIX = "/api/v1"

ERROR_STATUS = {
    InvalidPeriod: 422,
    InvalidCustomRange: 422,
    UnresolvableQuestionReference: 404,
    DuplicateTracker: 409,
}

app = FastAPI(
    title=settings.APP_NAME,
    description="Survey analytics reports and caching API",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReportError)
def report_error_handler(request: Request, exc: ReportError):
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    logger.info("[api] %s %s -> %s: %s", request.method, request.url.path, status, exc.message)
    return JSONResponse(status_code=status, content={"detail": {"field": exc.field, "message": exc.message}})


# versioned routers
app.include_router(health.router,   prefix=API_V1_PREFIX)
app.include_router(reports.router,  prefix=API_V1_PREFIX)
app.include_router(trackers.router, prefix=API_V1_PREFIX)


@app.get("/health")
def health_root():
    return {"status": "ok"}


@app.get("/")
def root():
    return {
        "message": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "api_v1": API_V1_PREFIX,
    }
