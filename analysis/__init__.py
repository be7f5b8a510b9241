from .extraction import (
    check_emergency_keywords,
    extract_diseases,
    extract_recommendations,
    interpret_response,
    is_emergency,
)
from .interpret import HealthAnalyzer, build_conversation

__all__ = [
    "HealthAnalyzer",
    "build_conversation",
    "check_emergency_keywords",
    "extract_diseases",
    "extract_recommendations",
    "interpret_response",
    "is_emergency",
]
