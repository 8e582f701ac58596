"""
LLM enrichment over the heuristic classifier.

Flow per email:
    1. No backend configured -> heuristic result, nothing cached
    2. Cache hit (content hash, unexpired) -> cached result
    3. Otherwise: compute the heuristic fallback, call the backend once,
       parse the reply and merge it field by field over the fallback

Nothing raised by the backend or the parser escapes classify(): every failure
degrades to the fallback and is logged and counted. Only successful merges
are cached, so a transient outage heals on the next request.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from enum import Enum
from hashlib import sha1
from typing import Any, TypeVar

from tigerswipe.classification.models import (
    Atmosphere,
    CardCategory,
    ClassificationResult,
    ClubType,
    EventType,
)
from tigerswipe.config import LLM_CACHE_TTL_SECONDS, MAX_TAGS
from tigerswipe.email.models import NormalizedEmail
from tigerswipe.llm.client import ClassificationBackend, GeminiBackend
from tigerswipe.llm.prompts import PROMPT_VERSION, build_classification_prompt
from tigerswipe.observability.logging import get_logger
from tigerswipe.observability.telemetry import counter, log_event, time_block
from tigerswipe.storage.cache import Clock, TTLCache
from tigerswipe.utils.redaction import redact, redact_subject

logger = get_logger(__name__)

FallbackFn = Callable[[NormalizedEmail], ClassificationResult]
E = TypeVar("E", bound=Enum)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class LLMResponseError(ValueError):
    """The reply could not be read as a single JSON object."""


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Parse the first JSON object in an LLM reply.

    Tolerates markdown code fences and prose around the object.

    Raises:
        LLMResponseError: If no JSON object can be parsed
    """
    cleaned = _CODE_FENCE_RE.sub("", text or "").strip()
    if not cleaned:
        raise LLMResponseError("empty response")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _JSON_OBJECT_RE.search(cleaned)
        if not match:
            raise LLMResponseError("no JSON object in response") from None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise LLMResponseError(f"expected a JSON object, got {type(data).__name__}")
    return data


def sanitize_tags(raw: Any, fallback: list[str]) -> list[str]:
    """At most MAX_TAGS trimmed, non-empty, unique strings; fallback tags if none survive."""
    if not isinstance(raw, list):
        return fallback
    cleaned: list[str] = []
    for tag in raw:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned[:MAX_TAGS] or fallback


def _enum_or_none(enum_cls: type[E], raw: Any) -> E | None:
    if not isinstance(raw, str):
        return None
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        return None


def _text_or(raw: Any, fallback: str | None) -> str | None:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return fallback


def _form_url_or(raw: Any, fallback: str | None) -> str | None:
    if isinstance(raw, str):
        url = raw.strip()
        if url and url.lower() != "null" and url.lower().startswith(("http://", "https://")):
            return url
    return fallback


def merge_classification(data: dict[str, Any], fallback: ClassificationResult) -> ClassificationResult:
    """
    Validate each field of a parsed reply on its own and merge it over the fallback.

    Invalid enum values become None; invalid text fields keep the fallback value.
    """
    category = CardCategory.CLUB if data.get("type") == "club" else CardCategory.EVENT

    event_type = _enum_or_none(EventType, data.get("eventType"))
    club_type = _enum_or_none(ClubType, data.get("clubType"))
    if category != CardCategory.EVENT:
        event_type = None
    if category != CardCategory.CLUB:
        club_type = None

    return ClassificationResult(
        type=category,
        tags=sanitize_tags(data.get("tags"), fallback.tags),
        event_type=event_type,
        club_type=club_type,
        atmosphere=_enum_or_none(Atmosphere, data.get("atmosphere")),
        event_date=_text_or(data.get("eventDate"), fallback.event_date),
        location=_text_or(data.get("location"), fallback.location),
        summary=_text_or(data.get("summary"), fallback.summary),
        google_form_url=_form_url_or(data.get("googleFormUrl"), fallback.google_form_url),
        skip=data.get("skip") is True,
    )


class ClassificationEnricher:
    """
    Layers an optional LLM classification over the heuristic fallback.

    Owns its response cache; the clock is injectable so expiry is testable.
    """

    def __init__(
        self,
        backend: ClassificationBackend | None,
        cache_ttl_seconds: float = LLM_CACHE_TTL_SECONDS,
        clock: Clock | None = None,
        prompt_version: str = PROMPT_VERSION,
    ):
        self.backend = backend
        self.prompt_version = prompt_version
        cache_kwargs = {"clock": clock} if clock is not None else {}
        self.cache: TTLCache[ClassificationResult] = TTLCache(
            "llm_response", ttl_seconds=cache_ttl_seconds, **cache_kwargs
        )

    @classmethod
    def from_settings(cls, clock: Clock | None = None) -> ClassificationEnricher:
        return cls(backend=GeminiBackend.from_settings(), clock=clock)

    @property
    def enabled(self) -> bool:
        return self.backend is not None

    @property
    def model_name(self) -> str:
        return getattr(self.backend, "model_name", "none")

    def cache_key(self, email: NormalizedEmail) -> str:
        """Content hash of model, prompt version and the email's id, subject and body."""
        material = "|".join(
            (self.model_name, self.prompt_version, email.id, email.subject, email.body)
        )
        return sha1(material.encode("utf-8")).hexdigest()

    async def classify(self, email: NormalizedEmail, fallback_fn: FallbackFn) -> ClassificationResult:
        """
        Classify one email, never raising past this boundary for LLM problems.

        Side Effects:
            - Calls the classification backend on a cache miss
            - Writes successful merges to the response cache
            - Logs events and increments telemetry counters
        """
        if self.backend is None:
            counter("classification.llm.disabled")
            return fallback_fn(email)

        key = self.cache_key(email)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        fallback = fallback_fn(email)
        prompt = build_classification_prompt(email)

        try:
            with time_block("classification.llm.latency"):
                response_text = await self.backend.generate(prompt)
            result = merge_classification(extract_json_object(response_text), fallback)
        except Exception as e:
            counter("classification.llm.fallback")
            logger.warning(
                "LLM classification failed for subject='%s', using heuristics: %s",
                redact_subject(email.subject),
                e,
            )
            log_event(
                "classification.llm.fallback",
                email_id=redact(email.id),
                error=type(e).__name__,
                model=self.model_name,
            )
            return fallback

        self.cache.put(key, result)
        counter("classification.llm.success")
        log_event(
            "classification.llm.result",
            email_id=redact(email.id),
            type=result.type.value,
            skip=result.skip,
            model=self.model_name,
            prompt_version=self.prompt_version,
        )
        return result
