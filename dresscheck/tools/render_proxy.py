"""Rendering proxy client for JavaScript-heavy retailer pages.

Uses ScrapingBee (headless Chrome behind residential proxies) as the
primary renderer, with Firecrawl (self-hosted first, then cloud) as the
fallback. Each provider gets bounded retries with an increasing timeout,
and the whole render is capped by an overall time budget.
"""

import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from firecrawl import FirecrawlApp

from dresscheck.errors import ProviderUnavailable
from dresscheck.tools.http_fetcher import check_cancelled, wait_or_cancel

logger = logging.getLogger(__name__)

SCRAPINGBEE_ENDPOINT = "https://app.scrapingbee.com/api/v1/"


@dataclass
class UsageStats:
    """Track render usage per provider."""

    scrapingbee_calls: int = 0
    scrapingbee_failures: int = 0
    scrapingbee_credits: int = 0
    firecrawl_self_hosted_calls: int = 0
    firecrawl_cloud_calls: int = 0
    firecrawl_failures: int = 0

    @property
    def estimated_cost(self) -> float:
        """Estimated cost in USD (~$0.0002 per ScrapingBee credit, ~$0.005 per Firecrawl cloud page)."""
        return self.scrapingbee_credits * 0.0002 + self.firecrawl_cloud_calls * 0.005

    def to_dict(self) -> dict:
        return {
            "total_calls": self.scrapingbee_calls + self.firecrawl_self_hosted_calls + self.firecrawl_cloud_calls,
            "scrapingbee_calls": self.scrapingbee_calls,
            "scrapingbee_failures": self.scrapingbee_failures,
            "scrapingbee_credits": self.scrapingbee_credits,
            "firecrawl_self_hosted_calls": self.firecrawl_self_hosted_calls,
            "firecrawl_cloud_calls": self.firecrawl_cloud_calls,
            "firecrawl_failures": self.firecrawl_failures,
            "estimated_cost_usd": round(self.estimated_cost, 4),
        }


@dataclass
class RenderConfig:
    """Configuration for RenderProxyClient."""

    scrapingbee_api_key: str = ""
    country_code: str = "es"
    premium_proxy: bool = True
    timeout: float = 15.0
    max_retries: int = 3
    budget: float = 90.0
    retry_delay: float = 1.0
    firecrawl_self_hosted_url: str = ""
    firecrawl_self_hosted_key: str = "local-dev-key"
    firecrawl_api_key: str = ""

    @classmethod
    def from_settings(cls, settings) -> "RenderConfig":
        return cls(
            scrapingbee_api_key=settings.scrapingbee_api_key,
            country_code=settings.render_country,
            timeout=settings.render_timeout,
            max_retries=settings.render_retries,
            budget=settings.render_budget,
            retry_delay=settings.retry_delay,
            firecrawl_self_hosted_url=settings.firecrawl_self_hosted_url,
            firecrawl_self_hosted_key=settings.firecrawl_self_hosted_key,
            firecrawl_api_key=settings.firecrawl_api_key,
        )


@dataclass
class RenderResult:
    """Result from a render operation."""

    success: bool
    html: str = ""
    status_code: int = 0
    metadata: dict = field(default_factory=dict)
    source: str = ""  # "scrapingbee", "firecrawl-self-hosted" or "firecrawl-cloud"
    error: str = ""


class RenderProxyClient:
    """Renders pages through ScrapingBee with Firecrawl fallback."""

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config or RenderConfig()
        self.stats = UsageStats()
        self._http = httpx.Client(transport=transport)
        self._self_hosted_client: Optional[FirecrawlApp] = None
        self._cloud_client: Optional[FirecrawlApp] = None
        self._init_firecrawl()

    def _init_firecrawl(self):
        """Initialize Firecrawl client instances."""
        if self.config.firecrawl_self_hosted_url:
            try:
                self._self_hosted_client = FirecrawlApp(
                    api_key=self.config.firecrawl_self_hosted_key,
                    api_url=self.config.firecrawl_self_hosted_url,
                )
                logger.info(f"Self-hosted Firecrawl configured: {self.config.firecrawl_self_hosted_url}")
            except Exception as e:
                logger.warning(f"Failed to init self-hosted Firecrawl client: {e}")

        if self.config.firecrawl_api_key:
            try:
                self._cloud_client = FirecrawlApp(api_key=self.config.firecrawl_api_key)
                logger.info("Cloud Firecrawl configured")
            except Exception as e:
                logger.warning(f"Failed to init cloud Firecrawl client: {e}")

    @property
    def available(self) -> bool:
        return bool(self.config.scrapingbee_api_key or self._self_hosted_client or self._cloud_client)

    def _attempt_timeout(self, attempt: int, deadline: float) -> float:
        """Per-attempt timeout grows with the attempt number, capped by the budget."""
        remaining = deadline - time.monotonic()
        return max(0.0, min(self.config.timeout * (attempt + 1), remaining))

    def _scrapingbee_params(self, url: str, wait_ms: int, forward_headers: bool) -> dict:
        return {
            "api_key": self.config.scrapingbee_api_key,
            "url": url,
            "render_js": "true",
            "premium_proxy": "true" if self.config.premium_proxy else "false",
            "country_code": self.config.country_code,
            "block_ads": "true",
            "wait": str(wait_ms),
            "forward_headers": "true" if forward_headers else "false",
        }

    def _render_scrapingbee(
        self,
        url: str,
        headers: Optional[dict],
        wait_ms: int,
        deadline: float,
        cancel_event: Optional[threading.Event],
    ) -> RenderResult:
        # ScrapingBee forwards headers prefixed with "Spb-"
        forwarded = {f"Spb-{key}": value for key, value in (headers or {}).items()}
        params = self._scrapingbee_params(url, wait_ms, bool(forwarded))
        last_error = ""

        for attempt in range(self.config.max_retries):
            check_cancelled(cancel_event)
            timeout = self._attempt_timeout(attempt, deadline)
            if timeout <= 0:
                last_error = "render budget exhausted"
                break
            try:
                logger.info(f"[Render] ScrapingBee attempt {attempt + 1} ({timeout:.0f}s): {url}")
                response = self._http.get(SCRAPINGBEE_ENDPOINT, params=params, headers=forwarded, timeout=timeout)
                self.stats.scrapingbee_calls += 1

                if response.status_code == 200:
                    self.stats.scrapingbee_credits += int(response.headers.get("Spb-cost", "25"))
                    target_status = int(response.headers.get("Spb-initial-status-code", "200"))
                    if target_status == 200:
                        return RenderResult(success=True, html=response.text, status_code=200, source="scrapingbee")
                    # The retailer answered with an error page
                    last_error = f"target returned HTTP {target_status}"
                else:
                    last_error = f"HTTP {response.status_code}"

                if response.status_code in (401, 403):
                    # Bad key or exhausted credits, retrying will not help
                    logger.error(f"[Render] ScrapingBee rejected request: {response.status_code}")
                    self.stats.scrapingbee_failures += 1
                    break

            except httpx.TimeoutException:
                last_error = f"timed out after {timeout:.0f}s"
            except httpx.HTTPError as e:
                last_error = str(e)

            self.stats.scrapingbee_failures += 1
            logger.warning(f"[Render] ScrapingBee attempt {attempt + 1} failed: {last_error}")
            if attempt < self.config.max_retries - 1:
                wait_or_cancel((attempt + 1) * self.config.retry_delay, cancel_event)

        return RenderResult(success=False, source="scrapingbee", error=last_error)

    def _scrape_with_timeout(self, client: FirecrawlApp, url: str, hard_timeout: float, **kwargs) -> Any:
        """Execute a Firecrawl scrape with a hard timeout.

        The SDK call cannot be interrupted. On timeout the worker thread is
        left to finish on its own; callers pass Firecrawl's own ``timeout`` so
        the server ends that request shortly after the hard timeout.
        """
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        future = executor.submit(client.scrape, url, **kwargs)
        try:
            return future.result(timeout=hard_timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise TimeoutError(f"Firecrawl scrape timed out after {hard_timeout:.0f}s")
        finally:
            executor.shutdown(wait=False)

    def _render_firecrawl(
        self,
        url: str,
        headers: Optional[dict],
        wait_ms: int,
        deadline: float,
        cancel_event: Optional[threading.Event],
    ) -> RenderResult:
        clients = [
            ("firecrawl-self-hosted", self._self_hosted_client),
            ("firecrawl-cloud", self._cloud_client),
        ]
        last_error = "No Firecrawl client available"

        for source, client in clients:
            if client is None:
                continue
            check_cancelled(cancel_event)
            timeout = self._attempt_timeout(0, deadline)
            if timeout <= 0:
                return RenderResult(success=False, source=source, error="render budget exhausted")
            try:
                logger.info(f"[Render] {source} scrape: {url}")
                result = self._scrape_with_timeout(
                    client,
                    url,
                    timeout,
                    formats=["html"],
                    headers=headers or {},
                    wait_for=wait_ms,
                    timeout=int(timeout * 1000),
                )
                if source == "firecrawl-cloud":
                    self.stats.firecrawl_cloud_calls += 1
                else:
                    self.stats.firecrawl_self_hosted_calls += 1
                parsed = self._parse_firecrawl(result, source)
                if parsed.success:
                    return parsed
                self.stats.firecrawl_failures += 1
                last_error = parsed.error
                logger.warning(f"[Render] {source} failed: {parsed.error}")
            except Exception as e:
                self.stats.firecrawl_failures += 1
                last_error = str(e)
                logger.warning(f"[Render] {source} failed: {e}")

        return RenderResult(success=False, source="firecrawl", error=last_error)

    def _parse_firecrawl(self, result: Any, source: str) -> RenderResult:
        """Parse a Firecrawl document into a RenderResult."""
        html = ""
        metadata: dict = {}
        if isinstance(result, dict):
            html = result.get("html") or result.get("rawHtml") or ""
            metadata = result.get("metadata") or {}
        else:
            html = getattr(result, "html", None) or getattr(result, "raw_html", None) or ""
            raw_metadata = getattr(result, "metadata", None)
            if isinstance(raw_metadata, dict):
                metadata = raw_metadata
            elif raw_metadata is not None and hasattr(raw_metadata, "model_dump"):
                metadata = raw_metadata.model_dump()
        status = metadata.get("statusCode") or metadata.get("status_code") or 200
        if int(status) != 200:
            return RenderResult(success=False, status_code=int(status), source=source, error=f"target returned HTTP {status}")
        if not html:
            return RenderResult(success=False, source=source, error="Empty HTML from Firecrawl")
        return RenderResult(success=True, html=html, status_code=int(status), metadata=metadata, source=source)

    def render(
        self,
        url: str,
        headers: Optional[dict] = None,
        wait_ms: int = 3000,
        cancel_event: Optional[threading.Event] = None,
    ) -> RenderResult:
        """Render a page, trying ScrapingBee then Firecrawl.

        Raises:
            ProviderUnavailable: if no provider is configured or all failed
        """
        if not self.available:
            raise ProviderUnavailable("render", "No rendering provider configured")

        deadline = time.monotonic() + self.config.budget
        errors = []

        if self.config.scrapingbee_api_key:
            result = self._render_scrapingbee(url, headers, wait_ms, deadline, cancel_event)
            if result.success:
                return result
            errors.append(f"scrapingbee: {result.error}")

        if self._self_hosted_client or self._cloud_client:
            result = self._render_firecrawl(url, headers, wait_ms, deadline, cancel_event)
            if result.success:
                return result
            errors.append(f"firecrawl: {result.error}")

        raise ProviderUnavailable("render", "; ".join(errors))

    def get_usage_stats(self) -> dict:
        """Get usage statistics."""
        return self.stats.to_dict()

    def reset_stats(self):
        """Reset usage statistics."""
        self.stats = UsageStats()

    def close(self) -> None:
        self._http.close()
