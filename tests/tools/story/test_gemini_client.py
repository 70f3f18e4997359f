"""Tests for the Gemini story client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.tools.story.config import StoryConfig
from src.tools.story.errors import ErrorKind, PipelineError
from src.tools.story.gemini_client import (
    GeminiStoryClient,
    extract_response_text,
    race_with_timeout,
)
from src.tools.story.image_payload import ImagePayload


def _mock_genai_client(response=None, side_effect=None):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=side_effect)
    return client


class TestRaceWithTimeout:
    """Tests for race_with_timeout."""

    @pytest.mark.asyncio
    async def test_fast_call_wins(self):
        async def fast():
            return "done"

        assert await race_with_timeout(fast(), timeout=1.0) == "done"

    @pytest.mark.asyncio
    async def test_call_error_propagates(self):
        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await race_with_timeout(failing(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_timer_wins(self):
        async def slow():
            await asyncio.sleep(0.2)
            return "too late"

        with pytest.raises(PipelineError) as exc_info:
            await race_with_timeout(slow(), timeout=0.01)
        assert exc_info.value.kind is ErrorKind.TIMEOUT
        assert exc_info.value.http_status_hint == 408

        # The abandoned call settles later without surfacing anything.
        await asyncio.sleep(0.3)

    @pytest.mark.asyncio
    async def test_late_failure_is_discarded(self):
        async def slow_failure():
            await asyncio.sleep(0.05)
            raise RuntimeError("late failure")

        with pytest.raises(PipelineError) as exc_info:
            await race_with_timeout(slow_failure(), timeout=0.01)
        assert exc_info.value.kind is ErrorKind.TIMEOUT

        await asyncio.sleep(0.1)

    @pytest.mark.asyncio
    async def test_caller_cancellation_cancels_call(self):
        started = asyncio.Event()
        call_cancelled = asyncio.Event()

        async def slow():
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                call_cancelled.set()
                raise

        caller = asyncio.ensure_future(race_with_timeout(slow(), timeout=5.0))
        await started.wait()
        caller.cancel()

        with pytest.raises(asyncio.CancelledError):
            await caller
        await asyncio.wait_for(call_cancelled.wait(), timeout=1.0)


class TestExtractResponseText:
    """Tests for extract_response_text."""

    def test_text_returned_unaltered(self):
        assert extract_response_text(SimpleNamespace(text='  {"title": "T"}\n')) == '  {"title": "T"}\n'

    def test_none_response(self):
        with pytest.raises(PipelineError) as exc_info:
            extract_response_text(None)
        assert exc_info.value.kind is ErrorKind.EMPTY_RESPONSE
        assert exc_info.value.http_status_hint == 502

    @pytest.mark.parametrize("text", [None, "", "   \n"])
    def test_blank_text(self, text):
        with pytest.raises(PipelineError) as exc_info:
            extract_response_text(SimpleNamespace(text=text))
        assert exc_info.value.kind is ErrorKind.EMPTY_RESPONSE

    def test_prompt_blocked(self):
        response = SimpleNamespace(text=None, prompt_feedback=SimpleNamespace(block_reason="SAFETY"))
        with pytest.raises(PipelineError) as exc_info:
            extract_response_text(response)
        assert exc_info.value.kind is ErrorKind.CONTENT_REJECTED

    def test_candidate_stopped_for_safety(self):
        response = SimpleNamespace(
            text="",
            candidates=[SimpleNamespace(finish_reason="FinishReason.SAFETY")],
        )
        with pytest.raises(PipelineError) as exc_info:
            extract_response_text(response)
        assert exc_info.value.kind is ErrorKind.CONTENT_REJECTED
        assert exc_info.value.code == "GEMINI_SAFETY_ERROR"

    def test_text_accessor_raising(self):
        class NoTextResponse:
            candidates = []

            @property
            def text(self):
                raise ValueError("no text parts")

        with pytest.raises(PipelineError) as exc_info:
            extract_response_text(NoTextResponse())
        assert exc_info.value.kind is ErrorKind.EMPTY_RESPONSE


class TestGeminiStoryClient:
    """Tests for GeminiStoryClient."""

    def test_missing_api_key(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="GEMINI_API_KEY"):
                GeminiStoryClient()

    def test_builds_sdk_client_from_key(self):
        with patch("src.tools.story.gemini_client.genai.Client") as mock_client:
            client = GeminiStoryClient(StoryConfig(api_key="test-key"))
            mock_client.assert_called_once_with(api_key="test-key")
            assert client._client is mock_client.return_value

    def test_injected_client_needs_no_key(self):
        with patch.dict("os.environ", {}, clear=True):
            sdk = _mock_genai_client()
            assert GeminiStoryClient(client=sdk)._client is sdk

    @pytest.mark.asyncio
    async def test_generate_text(self):
        sdk = _mock_genai_client(response=SimpleNamespace(text='{"title": "T", "story": "S"}'))
        client = GeminiStoryClient(StoryConfig(api_key="k", model="gemini-test"), client=sdk)

        text = await client.generate_text("Write a story", ImagePayload(data=b"image-bytes"))

        assert text == '{"title": "T", "story": "S"}'
        call = sdk.aio.models.generate_content.call_args
        assert call.kwargs["model"] == "gemini-test"
        prompt, image_part = call.kwargs["contents"]
        assert prompt == "Write a story"
        assert image_part.inline_data.data == b"image-bytes"
        assert image_part.inline_data.mime_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_generate_text_timeout(self):
        async def slow_generate(**kwargs):
            await asyncio.sleep(0.2)
            return SimpleNamespace(text="late")

        sdk = MagicMock()
        sdk.aio.models.generate_content = slow_generate
        client = GeminiStoryClient(StoryConfig(api_key="k", timeout_seconds=0.01), client=sdk)

        with pytest.raises(PipelineError) as exc_info:
            await client.generate_text("prompt", ImagePayload(data=b"img"))
        assert exc_info.value.kind is ErrorKind.TIMEOUT

        await asyncio.sleep(0.3)

    @pytest.mark.asyncio
    async def test_sdk_error_left_for_classifier(self):
        sdk = _mock_genai_client(side_effect=RuntimeError("503 UNAVAILABLE"))
        client = GeminiStoryClient(StoryConfig(api_key="k"), client=sdk)

        with pytest.raises(RuntimeError, match="503"):
            await client.generate_text("prompt", ImagePayload(data=b"img"))

    @pytest.mark.asyncio
    async def test_empty_response(self):
        sdk = _mock_genai_client(response=SimpleNamespace(text=""))
        client = GeminiStoryClient(StoryConfig(api_key="k"), client=sdk)

        with pytest.raises(PipelineError) as exc_info:
            await client.generate_text("prompt", ImagePayload(data=b"img"))
        assert exc_info.value.kind is ErrorKind.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_health_check(self):
        client = GeminiStoryClient(StoryConfig(api_key="k", model="gemini-test"), client=_mock_genai_client())
        health = await client.health_check()
        assert health == {"status": "healthy", "model": "gemini-test", "api_key_configured": True}
