"""TigerSwipe - classify inbox opportunities into a swipeable deck of event and club cards"""

from __future__ import annotations

__version__ = "0.1.0"


# Lazy imports for the card pipeline
def __getattr__(name: str):
    """
    Lazy imports to avoid loading the LLM SDK when only importing lightweight modules.
    """
    if name in ("EventCard", "ApplyRecord"):
        from tigerswipe.cards import models

        return getattr(models, name)

    if name == "CardService":
        from tigerswipe.cards.service import CardService

        return CardService

    if name == "classify_heuristically":
        from tigerswipe.classification.heuristics import classify_heuristically

        return classify_heuristically

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ApplyRecord",
    "CardService",
    "EventCard",
    "classify_heuristically",
]
