"""
Heuristic extraction of structured fields from a free-text model reply.

Everything here is best-effort keyword and section-header matching. A reply
that does not follow the requested format simply yields empty results; none
of these functions raise on unexpected input.
"""

import re
from typing import Dict, List

from models import Interpretation, Recommendations, SeverityLevel

MAX_DISEASES = 5
MAX_DISEASE_LENGTH = 50  # exclusive
MAX_RECOMMENDATION_LENGTH = 500

# Each pattern captures the rest of the line after its introductory phrase
DISEASE_PATTERNS = [
    re.compile(r"possible (?:conditions?|diseases?):\s*([^\n]+)", re.IGNORECASE),
    re.compile(r"may (?:have|be|indicate):\s*([^\n]+)", re.IGNORECASE),
    re.compile(r"could be:\s*([^\n]+)", re.IGNORECASE),
]

DISEASE_SEPARATORS = re.compile(r",|;|\n")


def _section_pattern(header: str, stop_words: List[str]) -> "re.Pattern":
    # Lazy capture up to the first other-category keyword or end of text
    return re.compile(
        header + r":(.*?)(?=" + "|".join(stop_words) + r"|\Z)",
        re.IGNORECASE | re.DOTALL,
    )


# Stop words are the other three categories, never the category itself
RECOMMENDATION_PATTERNS = {
    "diet": _section_pattern(
        r"diet(?:\s+plan)?(?:\s+recommendations)?",
        ["activity", "lifestyle", "precautions"],
    ),
    "activities": _section_pattern(
        r"activity(?:\s+recommendations)?(?:\s+and\s+exercise)?",
        ["lifestyle", "diet", "precautions"],
    ),
    "lifestyle": _section_pattern(
        r"lifestyle(?:\s+tips)?(?:\s+modifications)?",
        ["precautions", "diet", "activity"],
    ),
    "precautions": _section_pattern(
        r"precautions?",
        ["diet", "lifestyle", "activity"],
    ),
}

EMERGENCY_KEYWORDS = [
    "emergency",
    "urgent",
    "immediately",
    "right away",
    "serious",
    "severe",
    "life-threatening",
    "critical",
    "seek medical attention",
    "call 108",
    "hospital",
]


def extract_diseases(text: str) -> List[str]:
    """
    Pull candidate condition names out of lines such as
    "Possible conditions: Flu, Common Cold".

    Every pattern is tried against the whole text. Items are split on
    commas, semicolons and newlines; items of 50 characters or more are
    dropped rather than truncated. The result keeps first-seen order,
    drops exact duplicates and holds at most five names.
    """
    diseases = []

    for pattern in DISEASE_PATTERNS:
        match = pattern.search(text)
        if match:
            items = [item.strip() for item in DISEASE_SEPARATORS.split(match.group(1))]
            diseases.extend(item for item in items if 0 < len(item) < MAX_DISEASE_LENGTH)

    return list(dict.fromkeys(diseases))[:MAX_DISEASES]


def extract_recommendations(text: str) -> Dict[str, str]:
    """
    Pull the diet / activities / lifestyle / precautions sections out of the
    reply. Categories whose header is missing are left out of the result.
    """
    recommendations = {}

    for category, pattern in RECOMMENDATION_PATTERNS.items():
        match = pattern.search(text)
        if match:
            section = match.group(1).strip()[:MAX_RECOMMENDATION_LENGTH]
            recommendations[category] = section.rstrip()

    return recommendations


def check_emergency_keywords(text: str) -> bool:
    """Plain case-insensitive substring check, so "hospitalization" counts."""
    lower_text = text.lower()
    return any(keyword in lower_text for keyword in EMERGENCY_KEYWORDS)


def is_emergency(text: str, severity_level: SeverityLevel) -> bool:
    return SeverityLevel(severity_level) == SeverityLevel.HIGH or check_emergency_keywords(text)


def interpret_response(text: str, severity_level: SeverityLevel) -> Interpretation:
    """Turn one model reply into the structured fields stored with a search."""
    return Interpretation(
        diseases=extract_diseases(text),
        recommendations=Recommendations(**extract_recommendations(text)),
        emergency=is_emergency(text, severity_level),
    )
