"""
Explainability utilities.
Renders the human-readable narrative stored on every threat record.

The output is a pure function of its inputs: no timestamps, no randomness,
so identical scans produce byte-identical explanations.
"""

from dataclasses import dataclass
from typing import Dict, List, Union

from socialshield.services.matching_service import MatchResult
from socialshield.utils.severity import SeverityLevel

# Indicators quoted per pattern line
MAX_QUOTED_INDICATORS = 3


@dataclass(frozen=True)
class SeverityNarrative:
    """Summary and recommendation for one severity level."""
    summary: str
    recommendation: str


SEVERITY_NARRATIVES: Dict[SeverityLevel, SeverityNarrative] = {
    SeverityLevel.CRITICAL: SeverityNarrative(
        summary=(
            "CRITICAL THREAT - This communication exhibits multiple high-risk social "
            "engineering tactics commonly used in sophisticated attacks."
        ),
        recommendation=(
            "DO NOT interact with this message. Do not click any links, download attachments, "
            "or provide any information. Report this immediately to your security team and delete it."
        ),
    ),
    SeverityLevel.HIGH: SeverityNarrative(
        summary=(
            "HIGH RISK - This communication shows strong indicators of a social engineering "
            "attack designed to manipulate you into taking harmful actions."
        ),
        recommendation=(
            "Exercise extreme caution. Verify the sender through a separate, trusted communication "
            "channel before taking any action. Do not click links or provide sensitive information."
        ),
    ),
    SeverityLevel.MEDIUM: SeverityNarrative(
        summary=(
            "MEDIUM RISK - This communication contains suspicious elements that may indicate "
            "a social engineering attempt."
        ),
        recommendation=(
            "Be cautious. Independently verify the legitimacy of this communication before "
            "responding or taking action. Look for additional warning signs."
        ),
    ),
    SeverityLevel.LOW: SeverityNarrative(
        summary=(
            "LOW RISK - Minor indicators detected that warrant attention, though the threat "
            "level is relatively low."
        ),
        recommendation=(
            "Remain alert. While not immediately dangerous, verify the authenticity if the "
            "message requests any action or information from you."
        ),
    ),
    SeverityLevel.SAFE: SeverityNarrative(
        summary=(
            "Analysis complete: No social engineering indicators detected. "
            "This communication appears legitimate and safe."
        ),
        recommendation="No immediate action required.",
    ),
}

EDUCATIONAL_BLOCK = """💡 WHY SOCIAL ENGINEERING WORKS:
Social engineering attacks exploit human psychology rather than technical vulnerabilities. Attackers use manipulation techniques like urgency, authority, fear, or reward to bypass your natural skepticism and trick you into:
- Revealing sensitive information (passwords, financial data)
- Clicking malicious links that install malware
- Transferring money or making unauthorized purchases
- Granting access to secure systems

Patterns like the ones this scanner looks for are consistent with known tactics used by cybercriminals to compromise individuals and organizations."""

CLOSING_BLOCK = """🛡️ REMEMBER: Legitimate organizations will never:
- Demand immediate action with threats
- Ask for passwords or sensitive data via email
- Use urgent language to prevent you from thinking clearly
- Send unsolicited links requiring immediate clicks"""


def describe_match(match: MatchResult) -> str:
    """One line per matched pattern, quoting at most the first three indicators."""
    quoted = ", ".join(f'"{m}"' for m in match.matched_indicators[:MAX_QUOTED_INDICATORS])
    return (
        f"• {match.pattern.name}: Detected {match.match_count} indicator(s) including {quoted}"
    )


def generate_explanation(
    matches: List[MatchResult],
    severity_level: Union[SeverityLevel, str],
    source_type: str,
) -> str:
    """
    Build the explanation text for a scan.

    Sections, in order: severity summary and recommendation, source type,
    matched patterns (omitted when nothing matched), educational block,
    recommended action, closing reminder.
    """
    severity = SeverityLevel(severity_level)
    source = getattr(source_type, "value", source_type)

    if not matches:
        severity = SeverityLevel.SAFE
    narrative = SEVERITY_NARRATIVES[severity]

    sections = [
        f"{narrative.summary}\n{narrative.recommendation}",
        f"📊 SOURCE TYPE: {source.upper()}",
    ]

    if matches:
        lines = "\n".join(describe_match(m) for m in matches)
        sections.append(f"🔍 DETECTED ATTACK PATTERNS:\n{lines}")

    sections.append(EDUCATIONAL_BLOCK)
    sections.append(f"✅ RECOMMENDED ACTION:\n{narrative.recommendation}")
    sections.append(CLOSING_BLOCK)

    return "\n\n".join(sections)
