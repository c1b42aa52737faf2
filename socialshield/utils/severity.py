"""
Severity level utilities.
Maps the average severity weight of matched patterns onto a closed set of levels.
"""

import enum
from typing import List


class SeverityLevel(str, enum.Enum):
    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Fixed ordering, lowest to highest
SEVERITY_ORDER: List[SeverityLevel] = [
    SeverityLevel.SAFE,
    SeverityLevel.LOW,
    SeverityLevel.MEDIUM,
    SeverityLevel.HIGH,
    SeverityLevel.CRITICAL,
]

# Lower bounds on average weight, inclusive, checked highest first
CRITICAL_THRESHOLD = 0.90
HIGH_THRESHOLD = 0.75
MEDIUM_THRESHOLD = 0.50


def severity_from_weight(avg_weight: float) -> SeverityLevel:
    """
    Derive severity from the mean severity weight of matched patterns.

    Args:
        avg_weight: Mean weight (0-1) over the patterns that matched

    Returns:
        LOW, MEDIUM, HIGH or CRITICAL. SAFE is never returned here; it is
        reserved for scans where nothing matched.
    """
    if avg_weight >= CRITICAL_THRESHOLD:
        return SeverityLevel.CRITICAL
    elif avg_weight >= HIGH_THRESHOLD:
        return SeverityLevel.HIGH
    elif avg_weight >= MEDIUM_THRESHOLD:
        return SeverityLevel.MEDIUM
    else:
        return SeverityLevel.LOW


def parse_severity(value: str) -> SeverityLevel:
    """
    Parse a stored severity value.

    Anything outside the closed set is a data-integrity error, not input to recover from.
    """
    try:
        return SeverityLevel(value)
    except ValueError:
        raise ValueError(f"Unknown severity level '{value}'") from None


def is_threat(severity: SeverityLevel) -> bool:
    return severity != SeverityLevel.SAFE
