"""
Confidence score utilities.
A bounded heuristic for how strongly matched patterns support the severity. Not a probability.
"""

# The detector never claims certainty
MAX_CONFIDENCE = 95.0
MIN_CONFIDENCE = 0.0

# Checked a populated catalog and nothing matched
NO_MATCH_CONFIDENCE = 95.0
# Nothing to check against (catalog empty or unreachable)
NO_CATALOG_CONFIDENCE = 0.0

BASE_CONFIDENCE = 50.0
PER_PATTERN_BONUS = 15.0
WEIGHT_BONUS = 20.0


def clamp_confidence(value: float) -> float:
    """Clamp to the closed interval [0, 95]."""
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, value))


def calculate_confidence(match_count: int, avg_weight: float) -> float:
    """
    Confidence for a scan with at least one matched pattern.

    confidence = min(95, 50 + 15 * count + 20 * avg_weight)

    Args:
        match_count: Number of patterns with at least one matched indicator
        avg_weight: Mean severity weight over those patterns (0-1)

    Returns:
        Confidence rounded to 2 decimals, always within [0, 95]
    """
    raw = BASE_CONFIDENCE + (PER_PATTERN_BONUS * match_count) + (WEIGHT_BONUS * avg_weight)
    return round(clamp_confidence(raw), 2)
