import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime
from fastapi import FastAPI, Depends, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional

from socialshield.config import settings
from socialshield.database import SessionLocal, Base, engine, get_db
from socialshield.errors import (
    CatalogUnavailableError,
    IllegalTransitionError,
    InvalidInputError,
    PersistenceError,
    SocialShieldError,
    ThreatNotFoundError,
)
from socialshield.models import pattern, stats, threat  # noqa: F401  (register tables)
from socialshield.pipelines.scan_pipeline import ScanPipeline, SOURCE_TYPES
from socialshield.schemas.scan_schemas import (
    DailyStatsResponse,
    ScanRequest,
    ThreatRecordResponse,
)
from socialshield.services.catalog_service import seed_default_patterns
from socialshield.services.stats_service import StatsStore
from socialshield.services.threat_service import ThreatStore
from socialshield.api.security import verify_api_token, check_rate_limit
from socialshield.api.admin import router as admin_router
from socialshield.utils.logging_config import StructuredLogger, init_logging, request_id_var, user_id_var

init_logging()

logger = StructuredLogger(__name__)

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.seed_default_patterns:
        db = SessionLocal()
        try:
            seed_default_patterns(db)
        finally:
            db.close()
    yield


app = FastAPI(
    title="SocialShield API",
    version="0.1.0",
    description="Social engineering detection: pattern scoring and explanations",
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag logs with a request id and add security and rate-limit headers."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    if hasattr(request.state, "rate_limit_remaining"):
        response.headers["X-RateLimit-Limit"] = str(request.state.rate_limit_limit)
        response.headers["X-RateLimit-Remaining"] = str(request.state.rate_limit_remaining)
    return response


# ============== ERROR MAPPING ==============


ERROR_STATUS = [
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (ThreatNotFoundError, status.HTTP_404_NOT_FOUND),
    (IllegalTransitionError, status.HTTP_409_CONFLICT),
    (CatalogUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def error_status(exc: SocialShieldError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(SocialShieldError)
async def handle_domain_error(request: Request, exc: SocialShieldError):
    code = error_status(exc)
    if code >= 500:
        logger.error("request_failed", path=request.url.path, error=type(exc).__name__, detail=str(exc))
    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


app.include_router(admin_router)


@app.get("/health")
def health():
    """Health check endpoint - no auth required."""
    return {"status": "ok"}


@app.get("/status")
def status_info():
    """API status and configuration info."""
    return {
        "status": "ok",
        "version": "0.1.0",
        "environment": settings.environment,
        "auth_enabled": bool(settings.api_token),
        "catalog_failure_policy": "fail_closed" if settings.fail_closed else "fail_open",
        "rate_limit": {
            "requests": settings.rate_limit_requests,
            "window_seconds": settings.rate_limit_window,
        },
        "supported_source_types": sorted(SOURCE_TYPES),
    }


# ============== SCAN ==============


@app.post(
    "/scan",
    response_model=ThreatRecordResponse,
    dependencies=[Depends(verify_api_token), Depends(check_rate_limit)],
)
def scan(request: ScanRequest, db: Session = Depends(get_db)):
    """Scan submitted content and store the resulting threat record."""
    user_id_var.set(request.user_id)
    record = ScanPipeline(db).scan(request.user_id, request.content, request.source_type)
    return ThreatRecordResponse.model_validate(record)


# ============== THREAT RECORDS ==============


@app.get(
    "/threats",
    response_model=List[ThreatRecordResponse],
    dependencies=[Depends(verify_api_token)],
)
def list_threats(
    user_id: str,
    limit: int = Query(settings.recent_threats_limit, ge=1, le=settings.max_recent_threats_limit),
    db: Session = Depends(get_db),
):
    """Recent threat records for a user, most recent first."""
    records = ThreatStore(db).list_recent(user_id, limit=limit)
    return [ThreatRecordResponse.model_validate(r) for r in records]


@app.get(
    "/threats/{record_id}",
    response_model=ThreatRecordResponse,
    dependencies=[Depends(verify_api_token)],
)
def get_threat(record_id: int, db: Session = Depends(get_db)):
    record = ThreatStore(db).get(record_id)
    if record is None:
        raise ThreatNotFoundError(record_id)
    return ThreatRecordResponse.model_validate(record)


@app.post(
    "/threats/{record_id}/acknowledge",
    response_model=ThreatRecordResponse,
    dependencies=[Depends(verify_api_token)],
)
def acknowledge_threat(record_id: int, db: Session = Depends(get_db)):
    return ThreatRecordResponse.model_validate(ThreatStore(db).acknowledge(record_id))


@app.post(
    "/threats/{record_id}/resolve",
    response_model=ThreatRecordResponse,
    dependencies=[Depends(verify_api_token)],
)
def resolve_threat(record_id: int, db: Session = Depends(get_db)):
    return ThreatRecordResponse.model_validate(ThreatStore(db).resolve(record_id))


@app.post(
    "/threats/{record_id}/false-positive",
    response_model=ThreatRecordResponse,
    dependencies=[Depends(verify_api_token)],
)
def mark_false_positive(record_id: int, db: Session = Depends(get_db)):
    """Report a threat record as a false positive."""
    return ThreatRecordResponse.model_validate(ThreatStore(db).mark_false_positive(record_id))


# ============== STATS ==============


@app.get(
    "/stats/{user_id}",
    response_model=DailyStatsResponse,
    dependencies=[Depends(verify_api_token)],
)
def get_daily_stats(
    user_id: str,
    day: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """Counters for one user and day (UTC today by default)."""
    day = day or datetime.utcnow().date()
    row = StatsStore(db).get(user_id, day)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No stats for user '{user_id}' on {day.isoformat()}.",
        )
    return DailyStatsResponse.model_validate(row)


@app.get(
    "/stats/{user_id}/history",
    response_model=List[DailyStatsResponse],
    dependencies=[Depends(verify_api_token)],
)
def get_stats_history(
    user_id: str,
    days: int = Query(7, ge=1, le=366),
    db: Session = Depends(get_db),
):
    rows = StatsStore(db).history(user_id, days)
    return [DailyStatsResponse.model_validate(r) for r in rows]
