"""
Unit tests for the URL image fetcher.

Tests cover:
- Successful downloads and request headers
- Retries for transient statuses and transport errors
- Immediate failures for client errors, empty and oversized bodies
"""
import httpx
import pytest

from skin_season.clients.image_fetch import ImageFetcher
from skin_season.config import FetchConfig
from skin_season.errors import ImageFetchError

URL = "https://images.example.com/face.jpg"


def make_fetcher(handler, **config):
    return ImageFetcher(
        FetchConfig(**config),
        transport=httpx.MockTransport(handler),
        backoff_multiplier=0,
    )


class TestImageFetcher:
    """Test ImageFetcher against a mocked transport."""

    def test_returns_body(self):
        """Test a 200 response returns its bytes and sends the configured headers."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"image-bytes")

        with make_fetcher(handler, user_agent="tests/1.0") as fetcher:
            assert fetcher(URL) == b"image-bytes"

        assert seen[0].headers["User-Agent"] == "tests/1.0"
        assert seen[0].headers["Accept"] == "image/*"

    def test_retries_transient_status(self):
        """Test a 503 is retried and a later success is returned."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, content=b"ok")

        with make_fetcher(handler) as fetcher:
            assert fetcher.fetch(URL) == b"ok"
        assert len(calls) == 2

    def test_gives_up_after_max_attempts(self):
        """Test persistent 5xx responses stop at the attempt limit."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(502)

        with make_fetcher(handler, max_attempts=3) as fetcher:
            with pytest.raises(ImageFetchError) as exc_info:
                fetcher.fetch(URL)

        assert len(calls) == 3
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 502

    def test_client_error_is_not_retried(self):
        """Test a 404 fails on the first attempt."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with make_fetcher(handler) as fetcher:
            with pytest.raises(ImageFetchError, match="HTTP 404") as exc_info:
                fetcher.fetch(URL)

        assert len(calls) == 1
        assert exc_info.value.as_dict() == {
            "code": "IMAGE_FETCH_FAILED",
            "message": f"Image fetch failed with HTTP 404: {URL}",
            "retryable": False,
            "status_code": 404,
        }

    def test_transport_error_is_retried(self):
        """Test connection failures are retried."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, content=b"finally")

        with make_fetcher(handler, max_attempts=3) as fetcher:
            assert fetcher.fetch(URL) == b"finally"
        assert len(calls) == 3

    def test_empty_body(self):
        """Test an empty response is a permanent failure."""
        with make_fetcher(lambda request: httpx.Response(200, content=b"")) as fetcher:
            with pytest.raises(ImageFetchError, match="empty") as exc_info:
                fetcher.fetch(URL)
        assert exc_info.value.retryable is False

    def test_oversized_body(self):
        """Test bodies over the byte limit are rejected."""
        with make_fetcher(lambda request: httpx.Response(200, content=b"x" * 2048), max_bytes=1024) as fetcher:
            with pytest.raises(ImageFetchError, match="larger than 1024 bytes"):
                fetcher.fetch(URL)
