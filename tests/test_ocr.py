"""Tests for the OCR.space client and the Tesseract engine."""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from pytesseract import TesseractError, TesseractNotFoundError

from textextract.errors import OCRProviderError
from textextract.ocr.ocrspace_client import (
    OCRSpaceClient,
    build_form,
    check_payload,
    overlay_regions,
    parsed_text,
)
from textextract.ocr.tesseract_engine import TesseractEngine
from textextract.utils.config import OCRConfig

OVERLAY_PAYLOAD = {
    "ParsedResults": [
        {
            "ParsedText": "Hello World",
            "TextOverlay": {
                "Lines": [
                    {
                        "LineText": "Hello World",
                        "Words": [
                            {
                                "WordText": "Hello",
                                "Left": 10,
                                "Top": 20,
                                "Width": 50,
                                "Height": 15,
                            },
                            {
                                "WordText": "World",
                                "Left": 70,
                                "Top": 22,
                                "Width": 55,
                                "Height": 14,
                            },
                        ],
                    }
                ]
            },
        }
    ],
    "IsErroredOnProcessing": False,
}


def _mock_tesseract_data() -> dict:
    """Create mock pytesseract output data."""
    return {
        "text": ["", "Hello", "World", "", "Test"],
        "conf": [-1, 95, 88, -1, 72],
        "left": [0, 10, 70, 0, 10],
        "top": [0, 10, 10, 0, 50],
        "width": [0, 50, 50, 0, 40],
        "height": [0, 20, 20, 0, 20],
        "block_num": [0, 1, 1, 0, 2],
        "par_num": [0, 1, 1, 0, 1],
        "line_num": [0, 1, 1, 0, 1],
        "word_num": [0, 1, 2, 0, 1],
    }


def _client(handler, api_key: str = "test-key") -> OCRSpaceClient:
    return OCRSpaceClient(
        OCRConfig(api_key=api_key), transport=httpx.MockTransport(handler)
    )


class TestPayloadHelpers:
    """Tests for form building and response parsing."""

    def test_build_form_defaults(self) -> None:
        form = build_form(OCRConfig())
        assert form["language"] == "eng"
        assert form["OCREngine"] == "2"
        assert form["isTable"] == "false"
        assert form["isOverlayRequired"] == "true"

    def test_build_form_overrides(self) -> None:
        form = build_form(OCRConfig(), language="ger", is_table=True, overlay=False)
        assert form["language"] == "ger"
        assert form["isTable"] == "true"
        assert form["isOverlayRequired"] == "false"

    def test_parsed_text_joins_pages(self) -> None:
        payload = {"ParsedResults": [{"ParsedText": "one"}, {"ParsedText": "two"}]}
        assert parsed_text(payload) == "one\ntwo"
        assert parsed_text({}) == ""

    def test_check_payload_error_list(self) -> None:
        payload = {"IsErroredOnProcessing": True, "ErrorMessage": ["bad", "worse"]}
        with pytest.raises(OCRProviderError, match="bad; worse"):
            check_payload(payload)

    def test_check_payload_not_object(self) -> None:
        with pytest.raises(OCRProviderError):
            check_payload(["not", "a", "dict"])

    def test_overlay_regions(self) -> None:
        regions = overlay_regions(OVERLAY_PAYLOAD)
        assert len(regions) == 1
        region = regions[0]
        assert region.text == "Hello World"
        assert region.original_text == "Hello World"
        assert (region.x, region.y, region.width, region.height) == (10, 20, 115, 16)
        assert region.is_visible is True

    def test_overlay_regions_missing(self) -> None:
        assert overlay_regions({"ParsedResults": [{"ParsedText": "x"}]}) == []


class TestOCRSpaceClient:
    """Tests for OCRSpaceClient against a mock transport."""

    def test_success(self, png_bytes: bytes) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=OVERLAY_PAYLOAD)

        result = _client(handler).recognize(png_bytes)
        assert result.provider == "ocr.space"
        assert result.text == "Hello World"
        assert len(result.regions) == 1
        assert seen[0].headers["apikey"] == "test-key"
        assert b"OCREngine=2" in seen[0].content
        assert b"base64Image=data%3Aimage%2Fpng%3Bbase64" in seen[0].content

    def test_missing_key(self, png_bytes: bytes) -> None:
        client = _client(lambda request: httpx.Response(200, json={}), api_key="")
        with pytest.raises(OCRProviderError, match="not configured"):
            client.recognize(png_bytes)

    def test_provider_error(self, png_bytes: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"IsErroredOnProcessing": True, "ErrorMessage": "E301 bad image"},
            )

        with pytest.raises(OCRProviderError, match="E301 bad image"):
            _client(handler).recognize(png_bytes)

    def test_http_error_status(self, png_bytes: bytes) -> None:
        client = _client(lambda request: httpx.Response(500, text="oops"))
        with pytest.raises(OCRProviderError, match="500"):
            client.recognize(png_bytes)

    def test_invalid_json(self, png_bytes: bytes) -> None:
        client = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(OCRProviderError, match="invalid JSON"):
            client.recognize(png_bytes)

    def test_timeout(self, png_bytes: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(OCRProviderError, match="timed out after 20s"):
            _client(handler).recognize(png_bytes)

    def test_connection_error(self, png_bytes: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(OCRProviderError) as exc_info:
            _client(handler).recognize(png_bytes)
        assert exc_info.value.provider == "ocr.space"

    @pytest.mark.parametrize(
        "body",
        [
            {"ParsedResults": [{"ParsedText": 5}]},
            {"ParsedResults": "oops"},
            {
                "ParsedResults": [
                    {"TextOverlay": {"Lines": [{"Words": [{"Left": None}]}]}}
                ]
            },
        ],
    )
    def test_malformed_results(self, png_bytes: bytes, body: dict) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        with pytest.raises(OCRProviderError) as exc_info:
            _client(handler).recognize(png_bytes)
        assert exc_info.value.provider == "ocr.space"
        assert "Malformed response" in str(exc_info.value)


class TestTesseractEngine:
    """Tests for TesseractEngine with mocked pytesseract."""

    @patch("textextract.ocr.tesseract_engine.pytesseract")
    def test_recognize(self, mock_tess: MagicMock, png_bytes: bytes) -> None:
        mock_tess.image_to_string.return_value = "Hello World\nTest\n"
        mock_tess.image_to_data.return_value = _mock_tesseract_data()

        result = TesseractEngine().recognize(png_bytes, language="eng")

        assert result.provider == "tesseract"
        assert result.text == "Hello World\nTest"
        assert [r.text for r in result.regions] == ["Hello World", "Test"]
        first = result.regions[0]
        assert (first.x, first.y, first.width, first.height) == (10, 10, 110, 20)
        assert first.confidence == pytest.approx(91.5)

    @patch("textextract.ocr.tesseract_engine.pytesseract")
    def test_table_mode_uses_single_block(
        self, mock_tess: MagicMock, png_bytes: bytes
    ) -> None:
        mock_tess.image_to_string.return_value = ""
        mock_tess.image_to_data.return_value = _mock_tesseract_data()

        TesseractEngine(psm=3).recognize(png_bytes, is_table=True)
        assert mock_tess.image_to_string.call_args.kwargs["config"] == "--psm 6"

    @patch("textextract.ocr.tesseract_engine.pytesseract")
    def test_not_installed(self, mock_tess: MagicMock, png_bytes: bytes) -> None:
        mock_tess.image_to_string.side_effect = TesseractNotFoundError()
        with pytest.raises(OCRProviderError, match="not installed"):
            TesseractEngine().recognize(png_bytes)

    @patch("textextract.ocr.tesseract_engine.pytesseract")
    def test_tesseract_failure(self, mock_tess: MagicMock, png_bytes: bytes) -> None:
        mock_tess.image_to_string.side_effect = TesseractError(1, "bad language")
        with pytest.raises(OCRProviderError, match="Tesseract failed"):
            TesseractEngine().recognize(png_bytes, language="xxx")

    def test_invalid_image(self) -> None:
        with pytest.raises(OCRProviderError):
            TesseractEngine().recognize(b"definitely not an image")

    def test_line_regions_skips_low_confidence(self) -> None:
        data = _mock_tesseract_data()
        data["conf"] = [-1, 0, 0, -1, 0]
        assert TesseractEngine()._line_regions(data) == []
