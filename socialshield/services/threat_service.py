"""
Threat record persistence and the record status state machine.

    new -> acknowledged -> resolved
    new -> resolved
    new | acknowledged | resolved -> false_positive

resolved and false_positive are terminal for acknowledge/resolve; any
transition not listed raises IllegalTransitionError.
"""

from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from socialshield.config import settings
from socialshield.errors import IllegalTransitionError, PersistenceError, ThreatNotFoundError
from socialshield.models.threat import ThreatRecord, ThreatStatus, parse_status
from socialshield.services.stats_service import StatsStore
from socialshield.utils.logging_config import StructuredLogger, metrics

logger = StructuredLogger(__name__)


ALLOWED_TRANSITIONS: Dict[ThreatStatus, FrozenSet[ThreatStatus]] = {
    ThreatStatus.ACKNOWLEDGED: frozenset({ThreatStatus.NEW}),
    ThreatStatus.RESOLVED: frozenset({ThreatStatus.NEW, ThreatStatus.ACKNOWLEDGED}),
    ThreatStatus.FALSE_POSITIVE: frozenset(
        {ThreatStatus.NEW, ThreatStatus.ACKNOWLEDGED, ThreatStatus.RESOLVED}
    ),
}


def can_transition(current: ThreatStatus, target: ThreatStatus) -> bool:
    return current in ALLOWED_TRANSITIONS.get(target, frozenset())


class ThreatStore:
    """Persistence for ThreatRecord rows."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock

    def create(self, record: ThreatRecord) -> ThreatRecord:
        """Stage a new record and flush it to obtain an id. Does not commit."""
        try:
            self.db.add(record)
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Could not save threat record: {e}") from e
        return record

    def get(self, record_id: int) -> Optional[ThreatRecord]:
        return self.db.get(ThreatRecord, record_id)

    def list_recent(self, user_id: str, limit: Optional[int] = None) -> List[ThreatRecord]:
        """Most recent first, by detected_at."""
        limit = limit or settings.recent_threats_limit
        return (
            self.db.query(ThreatRecord)
            .filter(ThreatRecord.user_id == user_id)
            .order_by(ThreatRecord.detected_at.desc(), ThreatRecord.id.desc())
            .limit(limit)
            .all()
        )

    # ============== TRANSITIONS ==============

    def acknowledge(self, record_id: int) -> ThreatRecord:
        return self._transition(record_id, ThreatStatus.ACKNOWLEDGED)

    def resolve(self, record_id: int) -> ThreatRecord:
        return self._transition(record_id, ThreatStatus.RESOLVED)

    def mark_false_positive(self, record_id: int) -> ThreatRecord:
        return self._transition(record_id, ThreatStatus.FALSE_POSITIVE)

    def _transition(self, record_id: int, target: ThreatStatus) -> ThreatRecord:
        record = self.get(record_id)
        if record is None:
            raise ThreatNotFoundError(record_id)

        current = parse_status(record.status)
        if not can_transition(current, target):
            logger.warning(
                "Illegal status transition",
                record_id=record_id,
                current=current.value,
                target=target.value,
            )
            raise IllegalTransitionError(record_id, current.value, target.value)

        values = {ThreatRecord.status: target.value}
        if target == ThreatStatus.RESOLVED:
            values[ThreatRecord.resolved_at] = self.clock()
        elif target == ThreatStatus.FALSE_POSITIVE:
            values[ThreatRecord.resolved_at] = None

        try:
            # Compare-and-set on the status we validated against
            updated = (
                self.db.query(ThreatRecord)
                .filter(ThreatRecord.id == record_id, ThreatRecord.status == current.value)
                .update(values, synchronize_session=False)
            )
            if not updated:
                self.db.rollback()
                latest = self.get(record_id)
                raise IllegalTransitionError(
                    record_id, latest.status if latest else current.value, target.value
                )

            if target == ThreatStatus.FALSE_POSITIVE:
                StatsStore(self.db).record_false_positive(record.user_id, record.detected_at.date())

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Status update failed", record_id=record_id, error=str(e), exc_info=True)
            raise PersistenceError(f"Could not update threat record {record_id}: {e}") from e

        self.db.refresh(record)
        metrics.increment(f"threat.transition.{target.value}")
        logger.info("Threat status changed", record_id=record_id, status=target.value)
        return record
