"""Health check endpoint for the TigerSwipe API.

Reports readiness of each collaborator from configuration only; no external
call is made.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from tigerswipe.cards.service import CardService, get_card_service
from tigerswipe.config import APP_VERSION
from tigerswipe.observability.telemetry import get_latency_stats

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(service: CardService = Depends(get_card_service)) -> dict[str, Any]:
    """Health check endpoint.

    Returns service status, version, and which collaborators are configured
    (LLM enrichment, server Gmail credentials, calendar service).
    """
    enricher = service.builder.enricher
    return {
        "status": "healthy",
        "service": "TigerSwipe API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {
            "ready": enricher.enabled,
            "model": enricher.model_name,
        },
        "gmail": {"configured": service.gmail_source.is_configured},
        "calendar": {"configured": service.calendar.is_configured},
        "deck": {
            "cache": service.deck_cache.stats(),
            "build_latency": get_latency_stats("cards.deck_build.latency"),
        },
    }
