"""
Gemini Client

One genai.Client per process, built explicitly at startup and handed to
every collaborator. Also translates SDK errors into Lumina errors.
"""

import logging
from typing import Optional

from google import genai
from google.genai import errors

from lumina.config import Settings
from lumina.core.exceptions import CollaboratorError, QuotaExceededError


logger = logging.getLogger(__name__)

QUOTA_STATUS = "RESOURCE_EXHAUSTED"


def build_genai_client(settings: Settings) -> genai.Client:
    """Create the Gemini client. Fails fast when no API key is configured."""
    if not settings.google_api_key:
        raise ValueError(
            "GOOGLE_API_KEY not set. Add it to your .env file:\n"
            "GOOGLE_API_KEY=your_api_key_here"
        )
    return genai.Client(api_key=settings.google_api_key)


def is_quota_error(exc: BaseException) -> bool:
    if not isinstance(exc, errors.APIError):
        return False
    return exc.code == 429 or (exc.status or "").upper() == QUOTA_STATUS


def translate_genai_error(
    exc: Exception, operation: str, retry_after: Optional[float] = None
) -> CollaboratorError:
    """
    Map an SDK exception to CollaboratorError or QuotaExceededError.

    Already-translated Lumina errors pass through unchanged.
    """
    if isinstance(exc, CollaboratorError):
        return exc
    if is_quota_error(exc):
        logger.warning("%s hit quota exhaustion: %s", operation, exc)
        return QuotaExceededError(
            "The design service is at capacity. Please try again shortly.",
            retry_after=retry_after,
        )
    logger.error("%s failed: %s", operation, exc)
    return CollaboratorError(f"{operation} failed: {exc}")
