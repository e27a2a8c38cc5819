"""Direct HTTP fetching with retailer headers, bounded retries and timeouts."""

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from dresscheck.errors import ExtractionCancelled, ProviderUnavailable

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


@dataclass
class FetchResult:
    """Result from a direct fetch."""

    url: str
    status_code: int
    text: str = ""
    headers: dict = field(default_factory=dict)
    content: bytes = b""

    def json(self) -> Any:
        return json.loads(self.text)


def wait_or_cancel(delay: float, cancel_event: Optional[threading.Event]) -> None:
    """Sleep for ``delay`` seconds, returning early if the caller cancels."""
    if cancel_event is None:
        time.sleep(delay)
        return
    if cancel_event.wait(delay):
        raise ExtractionCancelled("Extraction cancelled by caller")


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ExtractionCancelled("Extraction cancelled by caller")


class HttpFetcher:
    """httpx-based fetcher used for direct page, API and image requests."""

    def __init__(
        self,
        timeout: float = 15.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = httpx.Client(
            follow_redirects=True,
            max_redirects=5,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def fetch(
        self,
        url: str,
        headers: Optional[dict] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> FetchResult:
        """GET a URL, retrying network errors and 5xx/429 with linear backoff.

        Attempt ``n`` waits ``n * retry_delay`` before the next one; with the
        default three retries the total wait stays a few seconds.

        Raises:
            ProviderUnavailable: when every attempt failed or a non-retryable
                status came back
            ExtractionCancelled: when ``cancel_event`` is set
        """
        last_error = "no attempts made"
        last_status = None

        for attempt in range(self.max_retries + 1):
            check_cancelled(cancel_event)
            try:
                logger.debug(f"[Fetch] Attempt {attempt + 1} for {url}")
                response = self._client.get(url, headers=headers, timeout=timeout or self.timeout)

                if response.status_code == 200:
                    return FetchResult(
                        url=str(response.url),
                        status_code=200,
                        text=response.text,
                        headers=dict(response.headers),
                        content=response.content,
                    )

                last_status = response.status_code
                last_error = f"HTTP {response.status_code}"
                if response.status_code not in RETRYABLE_STATUS:
                    if response.status_code == 403:
                        last_error = "Access denied by the website"
                    elif response.status_code == 404:
                        last_error = "Product not found"
                    logger.warning(f"[Fetch] {url} returned {response.status_code}, not retrying")
                    break

            except httpx.TimeoutException as e:
                last_error = f"Request timed out: {e}"
            except httpx.HTTPError as e:
                last_error = f"Request failed: {e}"

            logger.warning(f"[Fetch] Attempt {attempt + 1} for {url} failed: {last_error}")
            if attempt < self.max_retries:
                wait_or_cancel((attempt + 1) * self.retry_delay, cancel_event)

        raise ProviderUnavailable("direct", last_error, status_code=last_status)

    def fetch_json(
        self,
        url: str,
        headers: Optional[dict] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        """GET a URL and decode its JSON body."""
        result = self.fetch(url, headers=headers, cancel_event=cancel_event)
        try:
            return result.json()
        except ValueError as e:
            raise ProviderUnavailable("direct", f"Invalid JSON from {url}: {e}", status_code=result.status_code) from e

    def fetch_bytes(self, url: str, headers: Optional[dict] = None, timeout: Optional[float] = None) -> tuple[bytes, str]:
        """Download binary content (images); returns (bytes, content type)."""
        result = self.fetch(url, headers=headers, timeout=timeout)
        content_type = result.headers.get("content-type", "image/jpeg").split(";")[0].strip()
        return result.content, content_type
