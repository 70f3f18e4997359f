"""Tests for image payload adaptation."""

import base64

import pytest

from src.tools.story.errors import ErrorKind, PipelineError
from src.tools.story.image_payload import (
    CANONICAL_MIME_TYPE,
    ImagePayload,
    adapt_image_payload,
    strip_data_uri,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")


class TestStripDataUri:
    """Tests for data URL prefix removal."""

    def test_strips_prefix(self):
        assert strip_data_uri(f"data:image/png;base64,{PNG_B64}") == PNG_B64

    def test_plain_base64_unchanged(self):
        assert strip_data_uri(PNG_B64) == PNG_B64

    def test_svg_subtype(self):
        assert strip_data_uri("data:image/svg+xml;base64,AAAA") == "AAAA"


class TestAdaptImagePayload:
    """Tests for adapt_image_payload."""

    def test_data_url(self):
        payload = adapt_image_payload(f"data:image/png;base64,{PNG_B64}")
        assert payload.data == PNG_BYTES
        assert payload.mime_type == CANONICAL_MIME_TYPE
        assert payload.size == len(PNG_BYTES)

    def test_bare_base64(self):
        assert adapt_image_payload(PNG_B64).data == PNG_BYTES

    def test_base64_with_line_breaks(self):
        wrapped = "\n".join(PNG_B64[i:i + 16] for i in range(0, len(PNG_B64), 16))
        assert adapt_image_payload(wrapped).data == PNG_BYTES

    def test_raw_bytes(self):
        assert adapt_image_payload(PNG_BYTES) == ImagePayload(data=PNG_BYTES)

    def test_bytearray(self):
        assert adapt_image_payload(bytearray(PNG_BYTES)).data == PNG_BYTES

    @pytest.mark.parametrize("image", ["", "   ", b"", "data:image/png;base64,"])
    def test_empty_rejected(self, image):
        with pytest.raises(PipelineError) as exc_info:
            adapt_image_payload(image)
        assert exc_info.value.kind is ErrorKind.INVALID_IMAGE_DATA

    def test_invalid_base64_rejected(self):
        with pytest.raises(PipelineError) as exc_info:
            adapt_image_payload("not*base64!")
        assert exc_info.value.kind is ErrorKind.INVALID_IMAGE_DATA
        assert exc_info.value.http_status_hint == 400

    def test_unsupported_type_rejected(self):
        with pytest.raises(PipelineError) as exc_info:
            adapt_image_payload(12345)
        assert "int" in exc_info.value.message

    def test_size_ceiling(self):
        with pytest.raises(PipelineError) as exc_info:
            adapt_image_payload(PNG_BYTES, max_bytes=10)
        assert exc_info.value.kind is ErrorKind.INVALID_IMAGE_DATA
        assert "too large" in exc_info.value.message

    def test_at_size_ceiling_accepted(self):
        assert adapt_image_payload(PNG_BYTES, max_bytes=len(PNG_BYTES)).size == len(PNG_BYTES)
