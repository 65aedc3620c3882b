from __future__ import annotations

import logging

import httpx
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config import FetchConfig
from ..errors import ImageFetchError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ImageFetchError) and exc.retryable


class ImageFetcher:
    """Download images referenced by URL with a bounded timeout and backoff."""

    def __init__(
        self,
        config: FetchConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        backoff_multiplier: float = 0.5,
        backoff_max: float = 8.0,
    ) -> None:
        self._config = config or FetchConfig()
        self._session = httpx.Client(
            headers={
                "User-Agent": self._config.user_agent,
                "Accept": "image/*",
            },
            timeout=httpx.Timeout(self._config.timeout_seconds),
            follow_redirects=True,
            transport=transport,
        )
        self._backoff_multiplier = backoff_multiplier
        self._backoff_max = backoff_max

    def close(self) -> None:
        self._session.close()

    def __call__(self, url: str) -> bytes:
        return self.fetch(url)

    def fetch(self, url: str) -> bytes:
        """
        Download ``url`` and return the body.

        Transport errors, timeouts and 408/429/5xx responses are retried with
        exponential backoff. Everything else fails immediately.

        Raises
        ------
        ImageFetchError
            When the download fails; ``retryable`` tells callers whether a later
            attempt may succeed.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential(multiplier=self._backoff_multiplier, max=self._backoff_max),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        return retrying(self._fetch_once, url)

    def _fetch_once(self, url: str) -> bytes:
        try:
            response = self._session.get(url)
        except httpx.TimeoutException as exc:
            logger.warning("Timed out fetching %s", url)
            raise ImageFetchError(f"Timed out fetching image: {url}", retryable=True) from exc
        except httpx.TransportError as exc:
            logger.warning("Transport error fetching %s: %s", url, exc)
            raise ImageFetchError(f"Network error fetching image: {url}", retryable=True) from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ImageFetchError(
                f"Image fetch failed with HTTP {status}: {url}",
                retryable=status in _RETRYABLE_STATUS,
                status_code=status,
            ) from exc

        body = response.content
        if not body:
            raise ImageFetchError(f"Image response was empty: {url}", retryable=False)
        if len(body) > self._config.max_bytes:
            raise ImageFetchError(
                f"Image is larger than {self._config.max_bytes} bytes: {url}",
                retryable=False,
            )
        logger.debug("Fetched %d bytes from %s", len(body), url)
        return body

    def __enter__(self) -> "ImageFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()
