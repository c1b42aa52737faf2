"""
Daily stats aggregation.
One counter row per (user_id, date), incremented on every scan.

Increments run as a single INSERT ... ON CONFLICT DO UPDATE with in-database
arithmetic on SQLite and PostgreSQL, so concurrent scans by the same user on
the same day cannot lose updates. Other dialects fall back to a locked
read-modify-write inside the caller's transaction.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Any, List, Optional
from sqlalchemy.orm import Session

from socialshield.models.stats import DailyStats, SEVERITY_COLUMNS
from socialshield.utils.logging_config import StructuredLogger
from socialshield.utils.severity import SeverityLevel, is_threat, parse_severity

logger = StructuredLogger(__name__)


def _dialect_insert(dialect_name: str):
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    return None


def _initial_values(user_id: str, day: date, severity: SeverityLevel) -> Dict[str, Any]:
    values = {
        "user_id": user_id,
        "date": day,
        "total_scanned": 1,
        "threats_detected": 1 if is_threat(severity) else 0,
        "false_positives": 0,
        "created_at": datetime.utcnow(),
    }
    for level, column in SEVERITY_COLUMNS.items():
        values[column] = 1 if level == severity else 0
    return values


class StatsStore:
    """
    Persistence for DailyStats.

    increment() only flushes; committing is left to the caller so a scan's
    record and its stats update land in the same transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def increment(self, user_id: str, day: date, severity: SeverityLevel) -> None:
        severity = parse_severity(severity)
        insert = _dialect_insert(self.db.get_bind().dialect.name)

        if insert is None:
            self._increment_locked(user_id, day, severity)
            return

        table = DailyStats.__table__
        column = SEVERITY_COLUMNS[severity]
        threat = 1 if is_threat(severity) else 0

        stmt = insert(table).values(**_initial_values(user_id, day, severity))
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.user_id, table.c.date],
            set_={
                "total_scanned": table.c.total_scanned + 1,
                "threats_detected": table.c.threats_detected + threat,
                column: table.c[column] + 1,
            },
        )
        self.db.execute(stmt)

    def _increment_locked(self, user_id: str, day: date, severity: SeverityLevel) -> None:
        row = (
            self.db.query(DailyStats)
            .filter(DailyStats.user_id == user_id, DailyStats.date == day)
            .with_for_update()
            .one_or_none()
        )
        if row is None:
            self.db.add(DailyStats(**_initial_values(user_id, day, severity)))
        else:
            column = SEVERITY_COLUMNS[severity]
            row.total_scanned += 1
            if is_threat(severity):
                row.threats_detected += 1
            setattr(row, column, getattr(row, column) + 1)
        self.db.flush()

    def record_false_positive(self, user_id: str, day: date) -> bool:
        """Bump false_positives for an existing row. Returns False if there is no row."""
        updated = (
            self.db.query(DailyStats)
            .filter(DailyStats.user_id == user_id, DailyStats.date == day)
            .update(
                {DailyStats.false_positives: DailyStats.false_positives + 1},
                synchronize_session=False,
            )
        )
        if not updated:
            logger.warning("No stats row for false positive", user_id=user_id, date=day.isoformat())
        return bool(updated)

    def get(self, user_id: str, day: date) -> Optional[DailyStats]:
        return (
            self.db.query(DailyStats)
            .populate_existing()
            .filter(DailyStats.user_id == user_id, DailyStats.date == day)
            .one_or_none()
        )

    def history(self, user_id: str, days: int, today: Optional[date] = None) -> List[DailyStats]:
        """Rows for the last `days` days (today included), most recent first."""
        today = today or datetime.utcnow().date()
        since = today - timedelta(days=max(days, 1) - 1)
        return (
            self.db.query(DailyStats)
            .populate_existing()
            .filter(DailyStats.user_id == user_id, DailyStats.date >= since)
            .order_by(DailyStats.date.desc())
            .all()
        )


def record_scan(db: Session, user_id: str, day: date, severity: SeverityLevel) -> DailyStats:
    """Standalone increment-and-commit, for callers outside a scan transaction."""
    store = StatsStore(db)
    try:
        store.increment(user_id, day, severity)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return store.get(user_id, day)
