"""
Scoring: turns match results into a severity level, a confidence score and a threat type.
"""

from dataclasses import dataclass
from typing import List

from socialshield.services.matching_service import MatchResult
from socialshield.utils.confidence import (
    NO_CATALOG_CONFIDENCE,
    NO_MATCH_CONFIDENCE,
    calculate_confidence,
)
from socialshield.utils.severity import SeverityLevel, severity_from_weight

NO_THREAT_TYPE = "none"


@dataclass
class ScoreResult:
    severity_level: SeverityLevel
    confidence_score: float  # 0-95
    threat_type: str


def score_matches(matches: List[MatchResult], catalog_available: bool = True) -> ScoreResult:
    """
    Score a scan.

    Args:
        matches: Matcher output, in catalog order
        catalog_available: False when there were no patterns to check at all

    Returns:
        ScoreResult. threat_type is the category of the FIRST matched pattern in
        catalog order, not the highest-weighted one.
    """
    if not catalog_available:
        return ScoreResult(SeverityLevel.SAFE, NO_CATALOG_CONFIDENCE, NO_THREAT_TYPE)

    if not matches:
        return ScoreResult(SeverityLevel.SAFE, NO_MATCH_CONFIDENCE, NO_THREAT_TYPE)

    count = len(matches)
    # 6 places: (0.85 + 0.95) / 2 must compare as 0.90
    avg_weight = round(sum(m.pattern.severity_weight for m in matches) / count, 6)

    return ScoreResult(
        severity_level=severity_from_weight(avg_weight),
        confidence_score=calculate_confidence(count, avg_weight),
        threat_type=matches[0].pattern.category,
    )
