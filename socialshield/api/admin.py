"""
Admin API endpoints for SocialShield management.

Includes:
- Pattern catalog curation
- Metrics and monitoring
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from socialshield.api.security import verify_api_token
from socialshield.database import get_db
from socialshield.schemas.scan_schemas import PatternCreateRequest, PatternResponse
from socialshield.services.catalog_service import create_pattern, list_patterns, set_pattern_active
from socialshield.utils.logging_config import metrics


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(verify_api_token)],
)


# ============== PATTERN CATALOG ==============


@router.get("/patterns", response_model=List[PatternResponse])
def get_patterns(include_inactive: bool = False, db: Session = Depends(get_db)):
    """List catalog patterns in catalog order."""
    return [PatternResponse.model_validate(p) for p in list_patterns(db, include_inactive)]


@router.post("/patterns", response_model=PatternResponse)
def add_pattern(request: PatternCreateRequest, db: Session = Depends(get_db)):
    """Add a pattern to the catalog."""
    pattern = create_pattern(
        db,
        name=request.name,
        category=request.category,
        indicators=request.indicators,
        severity_weight=request.severity_weight,
        active=request.active,
    )
    return PatternResponse.model_validate(pattern)


@router.post("/patterns/{pattern_id}/activate", response_model=PatternResponse)
def activate_pattern(pattern_id: int, db: Session = Depends(get_db)):
    return _set_active(db, pattern_id, True)


@router.post("/patterns/{pattern_id}/deactivate", response_model=PatternResponse)
def deactivate_pattern(pattern_id: int, db: Session = Depends(get_db)):
    return _set_active(db, pattern_id, False)


def _set_active(db: Session, pattern_id: int, active: bool) -> PatternResponse:
    pattern = set_pattern_active(db, pattern_id, active)
    if pattern is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Pattern {pattern_id} not found.",
        )
    return PatternResponse.model_validate(pattern)


# ============== METRICS ==============


@router.get("/metrics")
def get_metrics():
    """Scan counters, gauges and latency timings."""
    return metrics.get_stats()


@router.post("/metrics/reset")
def reset_metrics():
    metrics.reset()
    return {"message": "Metrics reset"}
