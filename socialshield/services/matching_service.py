"""
Indicator matching.
Case-insensitive substring containment of each pattern indicator in the submitted content.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple


@dataclass(frozen=True)
class ThreatPattern:
    """Immutable view of one catalog pattern, read at scan time."""
    name: str
    category: str
    indicators: Tuple[str, ...]
    severity_weight: float  # 0-1
    active: bool = True

    def __post_init__(self):
        if not 0.0 <= self.severity_weight <= 1.0:
            raise ValueError(
                f"severity_weight for '{self.name}' must be within [0, 1], got {self.severity_weight}"
            )
        if not self.indicators:
            raise ValueError(f"Pattern '{self.name}' has no indicators")


@dataclass
class MatchResult:
    """A pattern plus every indicator of it found in the content, in declaration order."""
    pattern: ThreatPattern
    matched_indicators: List[str] = field(default_factory=list)

    @property
    def match_count(self) -> int:
        return len(self.matched_indicators)


def match_patterns(content: str, patterns: Sequence[ThreatPattern]) -> List[MatchResult]:
    """
    Scan content against the catalog.

    Returns one MatchResult per pattern with at least one indicator present,
    in catalog order. Inactive patterns are skipped.
    """
    if not content or not patterns:
        return []

    content_lower = content.lower()
    results: List[MatchResult] = []

    for pattern in patterns:
        if not pattern.active:
            continue

        matches = [
            indicator
            for indicator in pattern.indicators
            if indicator and indicator.lower() in content_lower
        ]
        if matches:
            results.append(MatchResult(pattern=pattern, matched_indicators=matches))

    return results
