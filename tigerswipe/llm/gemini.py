"""
Gemini Model Manager - shared model instance per (api key, model name).

Uses google-generativeai with GOOGLE_API_KEY. The model object is created once
and reused by every enrichment call.
"""

from __future__ import annotations

from functools import lru_cache

import google.generativeai as genai

from tigerswipe.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


@lru_cache(maxsize=4)
def get_gemini_model(api_key: str, model_name: str) -> genai.GenerativeModel:
    """
    Get or create the shared Gemini model for an API key and model name.

    Raises:
        GeminiInitializationError: If the key is empty or the SDK rejects the config
    """
    if not api_key:
        raise GeminiInitializationError("GOOGLE_API_KEY not set")

    try:
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(model_name)
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    logger.info("Initialized Gemini model (google-generativeai): model=%s", model_name)
    return model
