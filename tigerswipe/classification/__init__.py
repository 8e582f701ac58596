"""
TigerSwipe classification - heuristics with optional LLM enrichment.
"""

from tigerswipe.classification.models import (
    Atmosphere,
    CardCategory,
    ClassificationResult,
    ClubType,
    EventType,
)

__all__ = [
    "Atmosphere",
    "CardCategory",
    "ClassificationResult",
    "ClubType",
    "EventType",
]
