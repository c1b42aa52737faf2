"""
Pattern catalog service.
Read path used by the scanner plus the admin operations that curate the catalog.
"""

from typing import Dict, Any, List, Optional, Sequence
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from socialshield.errors import CatalogUnavailableError, InvalidInputError
from socialshield.models.pattern import PatternRecord
from socialshield.services.matching_service import ThreatPattern
from socialshield.utils.logging_config import StructuredLogger, metrics

logger = StructuredLogger(__name__)


DEFAULT_PATTERNS: List[Dict[str, Any]] = [
    {
        "name": "Urgent Action Required",
        "category": "urgency_manipulation",
        "indicators": [
            "urgent", "immediately", "act now", "expires today",
            "final notice", "account suspended", "verify now",
        ],
        "severity_weight": 0.75,
    },
    {
        "name": "Authority Impersonation",
        "category": "pretexting",
        "indicators": [
            "from: ceo", "from: it department", "from: security team",
            "official notice", "compliance required", "mandatory update",
        ],
        "severity_weight": 0.85,
    },
    {
        "name": "Suspicious Links",
        "category": "phishing",
        "indicators": [
            "bit.ly", "tinyurl", "click here", "verify account",
            "confirm identity", "unusual login", "security alert",
        ],
        "severity_weight": 0.90,
    },
    {
        "name": "Financial Request",
        "category": "baiting",
        "indicators": [
            "wire transfer", "payment urgent", "invoice attached", "refund processing",
            "prize winner", "unclaimed money", "tax refund",
        ],
        "severity_weight": 0.95,
    },
    {
        "name": "Credential Harvesting",
        "category": "phishing",
        "indicators": [
            "reset password", "confirm password", "update payment", "verify credit card",
            "login credentials", "username and password",
        ],
        "severity_weight": 0.95,
    },
    {
        "name": "Emotional Manipulation",
        "category": "manipulation",
        "indicators": [
            "help needed", "emergency", "family member", "sick relative",
            "in trouble", "need help", "please help",
        ],
        "severity_weight": 0.70,
    },
]


def to_threat_pattern(row: PatternRecord) -> ThreatPattern:
    return ThreatPattern(
        name=row.name,
        category=row.category,
        indicators=tuple(row.indicators or ()),
        severity_weight=float(row.severity_weight),
        active=bool(row.active),
    )


class PatternCatalog:
    """
    SQL-backed pattern catalog.

    Any database error while listing is surfaced as CatalogUnavailableError
    so the caller can apply its failure policy. Rows that do not form a valid
    pattern (no indicators, weight out of range) are skipped and logged.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_active_patterns(self) -> List[ThreatPattern]:
        try:
            rows = (
                self.db.query(PatternRecord)
                .filter(PatternRecord.active.is_(True))
                .order_by(PatternRecord.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CatalogUnavailableError(f"Could not read pattern catalog: {e}") from e

        patterns = []
        for row in rows:
            try:
                patterns.append(to_threat_pattern(row))
            except ValueError as e:
                metrics.increment("catalog.invalid_rows")
                logger.warning("catalog_row_invalid", pattern=row.name, pattern_id=row.id, error=str(e))
        return patterns


# ============== ADMIN OPERATIONS ==============


def list_patterns(db: Session, include_inactive: bool = False) -> List[PatternRecord]:
    query = db.query(PatternRecord)
    if not include_inactive:
        query = query.filter(PatternRecord.active.is_(True))
    return query.order_by(PatternRecord.id).all()


def create_pattern(
    db: Session,
    name: str,
    category: str,
    indicators: Sequence[str],
    severity_weight: float,
    active: bool = True,
) -> PatternRecord:
    """
    Add a pattern to the catalog.

    Raises:
        InvalidInputError: blank name/category, no usable indicators, weight
            outside [0, 1], or an active pattern with the same name exists
    """
    name = (name or "").strip()
    category = (category or "").strip()
    cleaned = [ind.strip() for ind in indicators if ind and ind.strip()]

    if not name or not category:
        raise InvalidInputError("Pattern name and category are required.")
    if not cleaned:
        raise InvalidInputError("A pattern needs at least one non-empty indicator.")
    if not 0.0 <= severity_weight <= 1.0:
        raise InvalidInputError("severity_weight must be within [0, 1].")

    if active and _active_pattern_named(db, name) is not None:
        raise InvalidInputError(f"An active pattern named '{name}' already exists.")

    pattern = PatternRecord(
        name=name,
        category=category,
        indicators=cleaned,
        severity_weight=severity_weight,
        active=active,
    )
    db.add(pattern)
    db.commit()
    db.refresh(pattern)

    logger.info("Pattern created", pattern=name, category=category, weight=severity_weight)
    return pattern


def set_pattern_active(db: Session, pattern_id: int, active: bool) -> Optional[PatternRecord]:
    """Activate or deactivate a pattern. Returns None if the id is unknown."""
    pattern = db.get(PatternRecord, pattern_id)
    if pattern is None:
        return None

    if active and not pattern.active:
        clash = _active_pattern_named(db, pattern.name)
        if clash is not None and clash.id != pattern.id:
            raise InvalidInputError(f"An active pattern named '{pattern.name}' already exists.")

    pattern.active = active
    db.commit()
    db.refresh(pattern)

    logger.info("Pattern updated", pattern=pattern.name, active=active)
    return pattern


def seed_default_patterns(db: Session) -> int:
    """Insert the default catalog if the table is empty. Returns rows inserted."""
    if db.query(PatternRecord).count() > 0:
        return 0

    for fields in DEFAULT_PATTERNS:
        db.add(PatternRecord(active=True, **fields))
    db.commit()

    logger.info("Seeded default pattern catalog", count=len(DEFAULT_PATTERNS))
    return len(DEFAULT_PATTERNS)


def _active_pattern_named(db: Session, name: str) -> Optional[PatternRecord]:
    return (
        db.query(PatternRecord)
        .filter(PatternRecord.name == name, PatternRecord.active.is_(True))
        .first()
    )
