"""
Provider-agnostic email record consumed by the classification pipeline.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NormalizedEmail(BaseModel):
    """An inbox message reduced to plaintext plus the links found in it.

    `body` never contains markup; `links` keeps extraction order and duplicates.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Stable per-source message id")
    from_address: str = Field(..., alias="from", description="Raw From header")
    subject: str
    body: str = Field(..., description="Plaintext body (HTML already stripped)")
    received_at: str = Field(..., description="ISO-8601 timestamp")
    links: list[str] = Field(default_factory=list)
