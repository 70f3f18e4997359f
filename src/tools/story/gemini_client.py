"""
Gemini Story Client
===================

Issues the single vision generation call behind a story request.

The call is raced against a wall-clock timeout: whichever settles first
decides the outcome. A call that loses the race is abandoned, not cancelled
at the transport, and whatever it eventually produces is dropped.

The SDK client is an explicit dependency: pass a ready google-genai Client,
or a StoryConfig carrying the API key to build one from.
"""

import asyncio
import logging
from typing import Any, Awaitable

from google import genai
from google.genai import types

from src.tools.story.config import StoryConfig
from src.tools.story.errors import ErrorKind, PipelineError
from src.tools.story.image_payload import ImagePayload

logger = logging.getLogger(__name__)


def _discard_late_result(task: asyncio.Future) -> None:
    """Done-callback for calls that already lost the timeout race."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.info(f"[GEMINI] Abandoned call failed after timeout: {type(error).__name__}")
    else:
        logger.info("[GEMINI] Abandoned call settled after timeout, result discarded")


async def race_with_timeout(awaitable: Awaitable[Any], timeout: float) -> Any:
    """
    Await a call or a timer, whichever settles first.

    Raises:
        PipelineError: TIMEOUT if the timer wins
        asyncio.CancelledError: If the caller is cancelled; the call is cancelled too
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        task.add_done_callback(_discard_late_result)
        task.cancel()
        raise
    if task in done:
        return task.result()

    task.add_done_callback(_discard_late_result)
    logger.warning(f"[GEMINI] Generation call exceeded {timeout}s, abandoning it")
    raise PipelineError(ErrorKind.TIMEOUT)


def _is_safety_block(response: Any) -> bool:
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None and getattr(feedback, "block_reason", None):
        return True
    for candidate in getattr(response, "candidates", None) or []:
        if "SAFETY" in str(getattr(candidate, "finish_reason", "") or ""):
            return True
    return False


def extract_response_text(response: Any) -> str:
    """
    Pull the text out of a generate_content response.

    Raises:
        PipelineError: CONTENT_REJECTED for safety blocks, EMPTY_RESPONSE when
            there is no response or no text
    """
    if response is None:
        raise PipelineError(ErrorKind.EMPTY_RESPONSE)

    try:
        text = response.text
    except ValueError:
        text = None

    if not text or not text.strip():
        if _is_safety_block(response):
            raise PipelineError(ErrorKind.CONTENT_REJECTED)
        raise PipelineError(ErrorKind.EMPTY_RESPONSE)
    return text


class GeminiStoryClient:
    """
    Gemini vision client for story generation.

    Example:
        client = GeminiStoryClient(StoryConfig(api_key="..."))
        raw_text = await client.generate_text(prompt, image_payload)
    """

    def __init__(self, config: StoryConfig | None = None, client: Any | None = None):
        """
        Initialize the story client.

        Args:
            config: Optional StoryConfig (uses env vars if not provided)
            client: Optional pre-built google-genai Client

        Raises:
            ValueError: If no client is given and no API key is configured
        """
        self.config = config or StoryConfig()
        if client is None:
            if not self.config.api_key:
                raise ValueError("GEMINI_API_KEY environment variable not set")
            client = genai.Client(api_key=self.config.api_key)
            logger.info("[GEMINI] Client initialized successfully")
        self._client = client

    async def generate_text(self, prompt: str, image: ImagePayload) -> str:
        """
        Run one generation call and return the raw reply text.

        Args:
            prompt: Composed story prompt
            image: Normalized image payload

        Returns:
            Model reply, unaltered

        Raises:
            PipelineError: TIMEOUT, EMPTY_RESPONSE or CONTENT_REJECTED
            Exception: Any SDK error, left for the error classifier
        """
        image_part = types.Part.from_bytes(data=image.data, mime_type=image.mime_type)

        logger.info(f"[GEMINI] Calling {self.config.model} (prompt={len(prompt)} chars, image={image.size} bytes)")
        response = await race_with_timeout(
            self._client.aio.models.generate_content(
                model=self.config.model,
                contents=[prompt, image_part],
            ),
            timeout=self.config.timeout_seconds,
        )
        text = extract_response_text(response)
        logger.info(f"[GEMINI] Response received ({len(text)} chars)")
        return text

    async def health_check(self) -> dict[str, Any]:
        """
        Check if the Gemini client is properly configured.

        Returns:
            Health status dictionary
        """
        return {
            "status": "healthy",
            "model": self.config.model,
            "api_key_configured": bool(self.config.api_key),
        }
