"""Tests for image data URL validation (type, size, magic numbers)."""

import base64

import pytest

from quickpaste.core.errors import ValidationAppError
from quickpaste.utils.image_validators import (
    decode_image_data_url,
    estimate_decoded_size,
    get_image_type_from_subtype,
    validate_image_signature,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 8
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 8
GIF = b"GIF89a" + b"\x00" * 6
WEBP = b"RIFF\x00\x00\x00\x00WEBPVP8 "


def _data_url(subtype: str, data: bytes) -> str:
    return f"data:image/{subtype};base64,{base64.b64encode(data).decode('ascii')}"


class TestImageSignature:
    """Test magic number validation for supported image types."""

    @pytest.mark.parametrize(
        "data, image_type",
        [(PNG, "png"), (JPEG, "jpeg"), (GIF, "gif"), (b"GIF87a" + b"\x00" * 4, "gif"), (WEBP, "webp")],
    )
    def test_valid_signatures(self, data, image_type):
        assert validate_image_signature(data, image_type) is True

    def test_png_claiming_jpeg_fails(self):
        assert validate_image_signature(PNG, "jpeg") is False

    def test_riff_without_webp_marker_fails(self):
        assert validate_image_signature(b"RIFF\x00\x00\x00\x00WAVE", "webp") is False

    def test_empty_data_fails(self):
        assert validate_image_signature(b"", "png") is False


def test_jpg_subtype_maps_to_jpeg():
    assert get_image_type_from_subtype("JPG") == "jpeg"
    assert get_image_type_from_subtype("png") == "png"


@pytest.mark.parametrize("size", [1, 2, 3, 16, 100])
def test_estimate_decoded_size_is_exact_for_padded_payloads(size):
    payload = base64.b64encode(b"\x00" * size).decode("ascii")

    assert estimate_decoded_size(payload) == size


class TestDecodeImageDataUrl:
    def test_returns_type_and_bytes(self):
        image_type, data = decode_image_data_url(_data_url("jpg", JPEG), max_bytes=1024)

        assert image_type == "jpeg"
        assert data == JPEG

    def test_uppercase_mime_is_accepted(self):
        image_type, _ = decode_image_data_url(_data_url("PNG", PNG), max_bytes=1024)

        assert image_type == "png"

    @pytest.mark.parametrize(
        "data_url",
        [
            "not a data url",
            "data:image/bmp;base64,Qk0=",
            "data:text/plain;base64,aGVsbG8=",
            "data:image/png;base64,",
            "data:image/png;base64,!!!not-base64!!!",
        ],
    )
    def test_malformed_urls_are_rejected(self, data_url):
        with pytest.raises(ValidationAppError) as exc_info:
            decode_image_data_url(data_url, max_bytes=1024)

        assert exc_info.value.code == "invalid_image"

    def test_content_must_match_declared_type(self):
        with pytest.raises(ValidationAppError) as exc_info:
            decode_image_data_url(_data_url("gif", PNG), max_bytes=1024)

        assert exc_info.value.code == "invalid_image"

    def test_oversized_image_is_rejected_before_decoding(self):
        with pytest.raises(ValidationAppError) as exc_info:
            decode_image_data_url(_data_url("png", PNG + b"\x00" * 100), max_bytes=64)

        error = exc_info.value
        assert error.code == "image_too_large"
        assert error.details["max_value"] == 64
        assert error.details["actual_value"] == 116
