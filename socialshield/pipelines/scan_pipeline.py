"""
Scan pipeline.
Matcher -> Scorer -> Explainer -> persist threat record -> daily stats.

The threat record and the stats increment are committed together: if
anything fails (or the call is interrupted) before commit, both roll back.
"""

import time
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from socialshield.config import settings
from socialshield.errors import (
    CatalogUnavailableError,
    ContentTooLongError,
    EmptyContentError,
    InvalidInputError,
    PersistenceError,
    UnsupportedSourceTypeError,
)
from socialshield.models.threat import SourceType, ThreatRecord, ThreatStatus
from socialshield.services.catalog_service import PatternCatalog
from socialshield.services.matching_service import ThreatPattern, match_patterns
from socialshield.services.scoring_service import score_matches
from socialshield.services.stats_service import StatsStore
from socialshield.services.threat_service import ThreatStore
from socialshield.utils.explainability import generate_explanation
from socialshield.utils.logging_config import StructuredLogger, metrics

logger = StructuredLogger(__name__)

SOURCE_TYPES = {s.value for s in SourceType}


def validate_scan_input(content: str, source_type: str, max_length: Optional[int] = None) -> SourceType:
    """Reject bad input before any I/O. Returns the parsed source type."""
    if content is None or not content.strip():
        raise EmptyContentError()

    limit = max_length if max_length is not None else settings.max_content_length
    if limit and len(content) > limit:
        raise ContentTooLongError(len(content), limit)

    normalized = (getattr(source_type, "value", source_type) or "").strip().lower()
    if normalized not in SOURCE_TYPES:
        raise UnsupportedSourceTypeError(str(source_type), SOURCE_TYPES)
    return SourceType(normalized)


class ScanPipeline:
    """
    Runs one scan start to finish.

    Collaborators are injected so tests and alternative stores can stand in
    for the SQL-backed ones.
    """

    def __init__(
        self,
        db: Session,
        catalog: Optional[PatternCatalog] = None,
        threats: Optional[ThreatStore] = None,
        stats: Optional[StatsStore] = None,
        fail_closed: Optional[bool] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.catalog = catalog or PatternCatalog(db)
        self.threats = threats or ThreatStore(db, clock=clock)
        self.stats = stats or StatsStore(db)
        self.fail_closed = settings.fail_closed if fail_closed is None else fail_closed
        self.clock = clock

    def _load_patterns(self, user_id: str) -> List[ThreatPattern]:
        try:
            patterns = self.catalog.list_active_patterns()
        except CatalogUnavailableError as e:
            metrics.increment("scan.catalog_unavailable")
            if self.fail_closed:
                logger.error("catalog_unavailable: failing closed", user_id=user_id, error=str(e))
                raise
            logger.warning(
                "catalog_unavailable: scanning with an empty catalog, result downgraded to safe",
                user_id=user_id,
                error=str(e),
            )
            return []

        if not patterns:
            logger.warning("catalog_empty: no active patterns to check", user_id=user_id)
        metrics.gauge("catalog.active_patterns", len(patterns))
        return patterns

    def scan(self, user_id: str, content: str, source_type: str) -> ThreatRecord:
        """
        Scan content and persist the resulting threat record.

        Raises:
            InvalidInputError: empty content, oversized content or unknown source type
            CatalogUnavailableError: catalog unreachable and the policy is fail-closed
            PersistenceError: the record or stats write failed; nothing was committed
        """
        if not user_id or not str(user_id).strip():
            raise InvalidInputError("user_id is required.")
        source = validate_scan_input(content, source_type)

        start = time.time()
        metrics.increment("scan.total")

        patterns = self._load_patterns(user_id)
        matches = match_patterns(content, patterns)
        result = score_matches(matches, catalog_available=bool(patterns))
        explanation = generate_explanation(matches, result.severity_level, source.value)

        detected_at = self.clock()
        record = ThreatRecord(
            user_id=user_id,
            threat_type=result.threat_type,
            severity_level=result.severity_level.value,
            source_type=source.value,
            source_content=content,
            detected_patterns=[m.pattern.name for m in matches],
            confidence_score=result.confidence_score,
            explanation=explanation,
            status=ThreatStatus.NEW.value,
            detected_at=detected_at,
            resolved_at=None,
        )

        try:
            self.threats.create(record)
            self.stats.increment(user_id, detected_at.date(), result.severity_level)
            self.db.commit()
        except PersistenceError:
            metrics.increment("scan.errors")
            logger.error("Threat record write failed", user_id=user_id, exc_info=True)
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            metrics.increment("scan.errors")
            logger.error("Stats update failed, scan rolled back", user_id=user_id, error=str(e), exc_info=True)
            raise PersistenceError(f"Could not update daily stats: {e}") from e
        except BaseException:
            # Interrupted mid-write: leave nothing half-applied
            self.db.rollback()
            raise

        self.db.refresh(record)

        metrics.increment(f"scan.severity.{result.severity_level.value}")
        metrics.timing("scan.latency", time.time() - start)
        logger.info(
            "Scan complete",
            record_id=record.id,
            severity=result.severity_level.value,
            confidence=result.confidence_score,
            threat_type=result.threat_type,
            patterns_matched=len(matches),
        )
        return record
