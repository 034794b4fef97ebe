"""
Tests for the recognition provider client.

The provider is replaced with httpx.MockTransport; progress ticks use a
zero-delay sleep so the tracker climbs while the request is pending.
"""

import asyncio

import httpx
import pytest

from ocr_template_builder.errors import RecognitionError
from ocr_template_builder.models import FlatResult, PagedResult
from ocr_template_builder.recognition import ProgressTracker, RecognitionClient, RecognitionOptions


async def _no_wait(_seconds):
    await asyncio.sleep(0)


# --- Fixtures ---

@pytest.fixture
def progress():
    return ProgressTracker(sleep=_no_wait)


def _client(profile, handler, progress):
    return RecognitionClient(profile, transport=httpx.MockTransport(handler), progress=progress)


class TestRecognize:
    """Successful calls"""

    async def test_returns_parsed_result(self, profile, progress, form_payload):
        requests = []

        async def handler(request: httpx.Request):
            requests.append(request)
            await asyncio.sleep(0.01)
            return httpx.Response(200, json=form_payload)

        result = await _client(profile, handler, progress).recognize(b"%PDF-1.4", "intake.pdf")

        assert isinstance(result, FlatResult)
        assert len(result.elements) == 4
        assert str(requests[0].url) == profile.provider_url
        body = requests[0].content
        assert b'name="document"; filename="intake.pdf"' in body
        assert b'name="detectForms"' in body

    async def test_paged_result(self, profile, progress, paged_payload):
        def handler(request):
            return httpx.Response(200, json=paged_payload)

        result = await _client(profile, handler, progress).recognize(b"img", "scan.png")
        assert isinstance(result, PagedResult)
        assert len(result.pages) == 3

    async def test_progress_climbs_then_resets(self, profile, progress, form_payload):
        async def handler(request):
            await asyncio.sleep(0.05)
            return httpx.Response(200, json=form_payload)

        await _client(profile, handler, progress).recognize(b"img", "scan.png")
        assert progress.history == [10, 20, 30, 40, 50, 60, 70, 80, 90]
        assert progress.value == 0

    async def test_per_call_tracker(self, profile, progress, form_payload):
        own = ProgressTracker(sleep=_no_wait)

        async def handler(request):
            await asyncio.sleep(0.02)
            return httpx.Response(200, json=form_payload)

        await _client(profile, handler, progress).recognize(b"img", "scan.png", progress=own)
        assert own.history and own.value == 0
        assert progress.history == []


class TestRecognizeFailures:
    """Every failure surfaces as RecognitionError with progress reset"""

    async def test_http_error_status(self, profile, progress):
        def handler(request):
            return httpx.Response(500, json={"error": "boom"})

        with pytest.raises(RecognitionError, match="returned 500"):
            await _client(profile, handler, progress).recognize(b"img", "scan.png")
        assert progress.value == 0

    async def test_timeout(self, profile, progress):
        profile.timeout_s = 0.05

        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={})

        with pytest.raises(RecognitionError, match="timed out"):
            await _client(profile, handler, progress).recognize(b"img", "scan.png")
        assert progress.value == 0

    async def test_transport_error(self, profile, progress):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RecognitionError, match="request failed"):
            await _client(profile, handler, progress).recognize(b"img", "scan.png")

    async def test_invalid_json(self, profile, progress):
        def handler(request):
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(RecognitionError):
            await _client(profile, handler, progress).recognize(b"img", "scan.png")

    @pytest.mark.parametrize("payload", [
        {"success": True, "data": {"elements": []}},
        {"pages": [{"elements": []}, {"elements": []}]},
    ])
    async def test_empty_result(self, profile, progress, payload):
        def handler(request):
            return httpx.Response(200, json=payload)

        with pytest.raises(RecognitionError, match="No text detected"):
            await _client(profile, handler, progress).recognize(b"img", "scan.png")
        assert progress.value == 0


class TestOptions:
    """Provider form options"""

    def test_from_profile(self, profile):
        profile.detect_tables = False
        options = RecognitionOptions.from_profile(profile)
        assert options.to_form() == {
            "enhanceImage": "true",
            "detectTables": "false",
            "detectForms": "true",
            "languages": '["en"]',
        }
