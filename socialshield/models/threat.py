"""
Threat record model: one row per scan.
Append-only after creation except for status and resolved_at.
"""

import enum
from datetime import datetime
from sqlalchemy import CheckConstraint, Column, DateTime, Float, Integer, JSON, String, Text
from socialshield.database import Base


class SourceType(str, enum.Enum):
    EMAIL = "email"
    MESSAGE = "message"
    LINK = "link"
    OTHER = "other"


class ThreatStatus(str, enum.Enum):
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    FALSE_POSITIVE = "false_positive"


def parse_status(value: str) -> ThreatStatus:
    """Parse a stored status; an unknown value means the row is corrupt."""
    try:
        return ThreatStatus(value)
    except ValueError:
        raise ValueError(f"Unknown threat status '{value}'") from None


class ThreatRecord(Base):
    """Result of scanning one piece of submitted content."""
    __tablename__ = "threat_detections"
    __table_args__ = (
        CheckConstraint(
            "severity_level IN ('safe', 'low', 'medium', 'high', 'critical')",
            name="ck_threat_detections_severity",
        ),
        CheckConstraint(
            "source_type IN ('email', 'message', 'link', 'other')",
            name="ck_threat_detections_source_type",
        ),
        CheckConstraint(
            "status IN ('new', 'acknowledged', 'resolved', 'false_positive')",
            name="ck_threat_detections_status",
        ),
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 95",
            name="ck_threat_detections_confidence_range",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)

    threat_type = Column(String(100), nullable=False)    # category of the first matched pattern, or "none"
    severity_level = Column(String(10), nullable=False, index=True)
    source_type = Column(String(10), nullable=False)
    source_content = Column(Text, nullable=False)        # verbatim input

    detected_patterns = Column(JSON, nullable=False, default=list)  # matched pattern names, catalog order
    confidence_score = Column(Float, nullable=False)     # 0-95
    explanation = Column(Text, nullable=False)

    status = Column(String(20), nullable=False, default=ThreatStatus.NEW.value, index=True)
    detected_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    resolved_at = Column(DateTime, nullable=True)        # set iff status == resolved

    def __repr__(self) -> str:
        return (
            f"<ThreatRecord(id={self.id}, user_id={self.user_id}, "
            f"severity={self.severity_level}, status={self.status})>"
        )
