"""Classification backend seam.

The enrichment layer only needs "prompt in, text out". GeminiBackend is the
production implementation; tests pass any object with an async generate().

One attempt per call: retries and timeouts beyond the SDK defaults are the
caller's problem, and the caller (the enricher) degrades to heuristics.
"""

from __future__ import annotations

from typing import Protocol

from google.api_core.exceptions import (
    DeadlineExceeded,
    GoogleAPIError,
    InternalServerError,
    ResourceExhausted,
    ServiceUnavailable,
)

from tigerswipe.config import GEMINI_MAX_TOKENS, GEMINI_MODEL, GEMINI_TEMPERATURE, GOOGLE_API_KEY
from tigerswipe.llm.gemini import GeminiInitializationError, get_gemini_model
from tigerswipe.observability.logging import get_logger
from tigerswipe.observability.telemetry import counter

logger = get_logger(__name__)


class LLMUnavailableError(RuntimeError):
    """The classification service could not produce a reply."""


class ClassificationBackend(Protocol):
    model_name: str

    async def generate(self, prompt: str) -> str: ...


class GeminiBackend:
    """Calls Gemini once per prompt and returns the raw reply text."""

    def __init__(
        self,
        api_key: str,
        model_name: str = GEMINI_MODEL,
        max_output_tokens: int = GEMINI_MAX_TOKENS,
        temperature: float = GEMINI_TEMPERATURE,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.generation_config = {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
            "response_mime_type": "application/json",
        }

    @classmethod
    def from_settings(cls) -> GeminiBackend | None:
        """Backend for the configured key, or None for heuristic-only mode."""
        if not GOOGLE_API_KEY:
            return None
        return cls(api_key=GOOGLE_API_KEY)

    async def generate(self, prompt: str) -> str:
        """
        Send the prompt and return the reply text.

        Raises:
            LLMUnavailableError: On any SDK, transport or quota failure
        """
        try:
            model = get_gemini_model(self.api_key, self.model_name)
            response = await model.generate_content_async(
                prompt, generation_config=self.generation_config
            )
            return response.text
        except GeminiInitializationError as e:
            counter("llm.init_error")
            raise LLMUnavailableError(str(e)) from e
        except DeadlineExceeded as e:
            counter("llm.timeout")
            logger.warning("LLM call timed out: %s", e)
            raise LLMUnavailableError(f"LLM call timed out: {e}") from e
        except ResourceExhausted as e:
            counter("llm.rate_limited")
            logger.warning("LLM rate limited (429): %s", e)
            raise LLMUnavailableError(f"LLM rate limited: {e}") from e
        except (ServiceUnavailable, InternalServerError) as e:
            counter("llm.service_unavailable")
            logger.warning("LLM service unavailable: %s", e)
            raise LLMUnavailableError(f"LLM service unavailable: {e}") from e
        except GoogleAPIError as e:
            counter("llm.api_error")
            raise LLMUnavailableError(f"LLM API error: {e}") from e
        except ValueError as e:
            # response.text raises ValueError when the reply was blocked or empty
            counter("llm.empty_response")
            raise LLMUnavailableError(f"LLM returned no text: {e}") from e
