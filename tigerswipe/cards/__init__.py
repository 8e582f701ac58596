"""
TigerSwipe cards - deck building, caching and apply bookkeeping.
"""

from tigerswipe.cards.models import (
    ApplyRecord,
    ApplyRequest,
    ApplyResponse,
    EventCard,
)

__all__ = [
    # Models
    "ApplyRecord",
    "ApplyRequest",
    "ApplyResponse",
    "EventCard",
]
