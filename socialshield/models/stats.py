"""
Per-user, per-day scan counters.
"""

from datetime import datetime
from typing import Dict
from sqlalchemy import Column, Date, DateTime, Integer, String, UniqueConstraint
from socialshield.database import Base
from socialshield.utils.severity import SeverityLevel, SEVERITY_ORDER


# One counter column per severity level, so the breakdown is always fully populated
SEVERITY_COLUMNS: Dict[SeverityLevel, str] = {
    level: f"{level.value}_count" for level in SEVERITY_ORDER
}


class DailyStats(Base):
    __tablename__ = "detection_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_detection_stats_user_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, index=True)
    date = Column(Date, nullable=False)

    total_scanned = Column(Integer, nullable=False, default=0)
    threats_detected = Column(Integer, nullable=False, default=0)  # scans with severity != safe
    false_positives = Column(Integer, nullable=False, default=0)

    safe_count = Column(Integer, nullable=False, default=0)
    low_count = Column(Integer, nullable=False, default=0)
    medium_count = Column(Integer, nullable=False, default=0)
    high_count = Column(Integer, nullable=False, default=0)
    critical_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def by_severity(self) -> Dict[str, int]:
        return {
            level.value: getattr(self, column) or 0
            for level, column in SEVERITY_COLUMNS.items()
        }

    def __repr__(self) -> str:
        return f"<DailyStats(user_id={self.user_id}, date={self.date}, total={self.total_scanned})>"
