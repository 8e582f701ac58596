"""
Classification vocabulary shared by the heuristic and LLM paths.

The enumerated sets double as the allow-lists used when validating LLM output.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CardCategory(str, Enum):
    """Top-level card category."""

    EVENT = "event"
    CLUB = "club"


class EventType(str, Enum):
    CONFERENCE = "conference"
    SUMMIT = "summit"
    HACKATHON = "hackathon"
    FELLOWSHIP = "fellowship"
    WORKSHOP = "workshop"
    NETWORKING = "networking"
    COMPETITION = "competition"
    EXPO = "expo"
    FESTIVAL = "festival"
    OTHER = "other"


class ClubType(str, Enum):
    PROFESSIONAL = "professional"
    ACADEMIC = "academic"
    FOUNDER = "founder"
    TECH = "tech"
    CREATIVE = "creative"
    SOCIAL = "social"
    SERVICE = "service"
    SPORTS = "sports"
    OTHER = "other"


class Atmosphere(str, Enum):
    CASUAL = "casual"
    PROFESSIONAL = "professional"
    COMPETITIVE = "competitive"
    COLLABORATIVE = "collaborative"
    SOCIAL = "social"
    EXCLUSIVE = "exclusive"


class ClassificationResult(BaseModel):
    """Structured verdict for one email.

    `event_type` is only meaningful for events and `club_type` only for clubs;
    the validator refuses any other combination.
    """

    model_config = ConfigDict(frozen=True)

    type: CardCategory
    tags: list[str] = Field(..., min_length=1, max_length=6)
    event_type: EventType | None = None
    club_type: ClubType | None = None
    atmosphere: Atmosphere | None = None
    event_date: str | None = None
    location: str | None = None
    summary: str | None = None
    google_form_url: str | None = None
    skip: bool = Field(default=False, description="True means not a genuine opportunity")

    @model_validator(mode="after")
    def _check_subtype_matches_category(self) -> ClassificationResult:
        if self.event_type is not None and self.type != CardCategory.EVENT:
            raise ValueError("event_type is only allowed when type is 'event'")
        if self.club_type is not None and self.type != CardCategory.CLUB:
            raise ValueError("club_type is only allowed when type is 'club'")
        if len(set(self.tags)) != len(self.tags):
            raise ValueError("tags must be unique")
        return self
