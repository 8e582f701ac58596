"""
Card deck endpoints for the swipe client.

Provides endpoints for:
- Listing cards (optionally by category)
- Applying to a card (creates a calendar event once per card)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from tigerswipe.api.dependencies import get_optional_access_token
from tigerswipe.calendar.client import CalendarServiceError
from tigerswipe.cards.models import ApplyRequest, ApplyResponse, CardListResponse
from tigerswipe.cards.service import (
    CardNotFoundError,
    CardService,
    EmailSourceError,
    get_card_service,
)
from tigerswipe.classification.models import CardCategory
from tigerswipe.observability.logging import get_logger

router = APIRouter(prefix="/api/cards", tags=["cards"])
logger = get_logger(__name__)


@router.get("", response_model=CardListResponse)
async def list_cards(
    card_type: CardCategory | None = Query(default=None, alias="type"),
    access_token: str | None = Depends(get_optional_access_token),
    service: CardService = Depends(get_card_service),
) -> CardListResponse:
    """
    List cards newest first.

    With a bearer token the deck is built from the caller's Gmail inbox and
    never shared; otherwise the shared (cached) deck is returned.
    """
    try:
        cards = await service.list_cards(card_type=card_type, access_token=access_token)
    except EmailSourceError as e:
        logger.error("Failed to load cards: %s", e)
        raise HTTPException(status_code=502, detail="Email source unavailable") from None

    return CardListResponse(data=cards)


@router.post(
    "/{card_id}/apply",
    response_model=ApplyResponse,
    response_model_exclude_none=True,
)
async def apply_to_card(
    card_id: str,
    request: ApplyRequest,
    access_token: str | None = Depends(get_optional_access_token),
    service: CardService = Depends(get_card_service),
) -> ApplyResponse:
    """
    Confirm an application and schedule it on the calendar.

    Repeat calls for the same card return the first result without creating
    another calendar event.
    """
    try:
        record = await service.apply(card_id, request, access_token=access_token)
    except CardNotFoundError:
        raise HTTPException(status_code=404, detail="Card not found") from None
    except CalendarServiceError as e:
        logger.error("Calendar event creation failed for card: %s", e)
        raise HTTPException(status_code=502, detail="Failed to create calendar event") from None
    except EmailSourceError as e:
        logger.error("Failed to load cards for apply: %s", e)
        raise HTTPException(status_code=502, detail="Email source unavailable") from None

    return ApplyResponse(calendar_event_id=record.calendar_event_id)
