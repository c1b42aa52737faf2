"""
Threat pattern catalog model.
Curated out-of-band; the scanner only reads active rows.
"""

from datetime import datetime
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Integer, JSON, String
from socialshield.database import Base


class PatternRecord(Base):
    """A named, weighted group of indicator strings."""
    __tablename__ = "threat_patterns"
    __table_args__ = (
        CheckConstraint(
            "severity_weight >= 0 AND severity_weight <= 1",
            name="ck_threat_patterns_weight_range",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(200), nullable=False, index=True)
    category = Column(String(100), nullable=False)   # phishing | pretexting | baiting ...
    indicators = Column(JSON, nullable=False)        # ["urgent", "act now"]
    severity_weight = Column(Float, nullable=False)  # 0-1
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<PatternRecord(id={self.id}, name={self.name}, active={self.active})>"
