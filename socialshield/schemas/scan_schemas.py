import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional


class ScanRequest(BaseModel):
    user_id: str
    content: str
    source_type: str  # email, message, link, other


class ThreatRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    threat_type: str
    severity_level: str
    source_type: str
    source_content: str
    detected_patterns: List[str]
    confidence_score: float  # 0-95
    explanation: str
    status: str
    detected_at: datetime.datetime
    resolved_at: Optional[datetime.datetime] = None


class DailyStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    date: datetime.date
    total_scanned: int
    threats_detected: int
    false_positives: int
    by_severity: Dict[str, int]


class PatternCreateRequest(BaseModel):
    """Request to add a pattern to the catalog."""
    name: str
    category: str
    indicators: List[str] = Field(min_length=1)
    severity_weight: float = Field(ge=0.0, le=1.0)
    active: bool = True


class PatternResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: str
    indicators: List[str]
    severity_weight: float
    active: bool
