"""
Story Pipeline
==============

Image + parameters in, StoryRecord out:

1. VALIDATE  - request shape and image payload (fail before any model call)
2. COMPOSE   - deterministic prompt from genres/length/language
3. GENERATE  - one timeout-bounded Gemini vision call
4. PARSE     - tiered recovery of a story candidate (never fails on format)
5. NORMALIZE - defaults, quote/escape cleanup, word count

Every exception leaving the pipeline is a classified PipelineError.
"""

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Sequence

from src.tools.story.catalog import Genre, StoryLength, resolve_language
from src.tools.story.config import StoryConfig
from src.tools.story.errors import PipelineError, classify_error
from src.tools.story.gemini_client import GeminiStoryClient
from src.tools.story.image_payload import adapt_image_payload
from src.tools.story.models import GenerationRequest, StoryRecord
from src.tools.story.normalizer import normalize_story
from src.tools.story.prompts import compose_story_prompt
from src.tools.story.response_parser import ParseTier, parse_story_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    """A generated story plus how it was obtained."""

    story: StoryRecord
    request: GenerationRequest
    tier: ParseTier
    execution_time_ms: int

    @property
    def degraded(self) -> bool:
        return self.tier is ParseTier.SALVAGED


class StoryPipeline:
    """
    Stateless image-to-story pipeline.

    Example:
        pipeline = StoryPipeline(GeminiStoryClient(StoryConfig(api_key="...")))
        story = await pipeline.generate(
            image=data_url,
            genres=["horror", "comedy"],
            length="short",
            language="en",
        )
    """

    def __init__(self, model_client: GeminiStoryClient, config: StoryConfig | None = None):
        """
        Initialize the pipeline.

        Args:
            model_client: Client exposing `async generate_text(prompt, image)`
            config: Optional StoryConfig (defaults to the client's config)
        """
        self.model_client = model_client
        self.config = config or getattr(model_client, "config", None) or StoryConfig()

    async def generate(
        self,
        image: bytes | str,
        genres: Sequence[Genre | str],
        length: StoryLength | str,
        language: str | None = None,
    ) -> StoryRecord:
        """
        Generate a story from an image.

        Args:
            image: Image bytes, base64 string, or data URL
            genres: 1-3 distinct genre ids
            length: short | medium | long
            language: Output language id (unknown ids use the default)

        Returns:
            StoryRecord

        Raises:
            PipelineError: On any failure, already classified
        """
        result = await self.generate_detailed(image, genres, length, language)
        return result.story

    async def generate_detailed(
        self,
        image: bytes | str,
        genres: Sequence[Genre | str],
        length: StoryLength | str,
        language: str | None = None,
    ) -> GenerationResult:
        """Same as generate(), also reporting the parse tier and timing."""
        start_time = perf_counter()
        try:
            return await self._run(image, genres, length, language, start_time)
        except PipelineError as e:
            logger.error(f"[STORY] Generation failed: {e.kind.value} ({e.message})")
            raise
        except Exception as e:
            error = classify_error(e)
            logger.error(f"[STORY] Generation failed: {error.kind.value} ({error.message})")
            raise error from e

    async def _run(
        self,
        image: bytes | str,
        genres: Sequence[Genre | str],
        length: StoryLength | str,
        language: str | None,
        start_time: float,
    ) -> GenerationResult:
        request = GenerationRequest(
            genres=list(genres) if isinstance(genres, (list, tuple)) else genres,
            length=length,
            language=resolve_language(language, self.config.default_language),
        )
        payload = adapt_image_payload(image, max_bytes=self.config.max_image_bytes)
        prompt = compose_story_prompt(request.genre_ids, request.length, request.language)

        logger.info(
            f"[STORY] Generating story: genres={','.join(request.genre_ids)}, "
            f"length={request.length.value}, language={request.language}"
        )
        raw_text = await self.model_client.generate_text(prompt, payload)

        outcome = parse_story_response(
            raw_text,
            genres=request.genre_ids,
            salvage_max_chars=self.config.salvage_max_chars,
        )
        story = normalize_story(
            outcome.data,
            genres=request.genre_ids,
            raw_text=raw_text,
            policy=self.config.word_count_policy,
            salvage_max_chars=self.config.salvage_max_chars,
        )

        execution_time_ms = int((perf_counter() - start_time) * 1000)
        logger.info(
            f"[STORY] Story generated in {execution_time_ms}ms "
            f"({outcome.tier.value}, {story.word_count} words)"
        )
        return GenerationResult(
            story=story,
            request=request,
            tier=outcome.tier,
            execution_time_ms=execution_time_ms,
        )
