"""Construction of provider clients and the pipeline context.

Clients are built once at process start by ``ProviderClientFactory`` and
carried around in a ``PipelineContext``. Tests build a context directly
with fakes.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from dresscheck.cache import FileTTLCache, MemoryTTLCache, ResultCache
from dresscheck.config import Settings
from dresscheck.retailers.registry import RetailerRegistry
from dresscheck.tools.ai_client import AIClient
from dresscheck.tools.http_fetcher import HttpFetcher
from dresscheck.tools.render_proxy import RenderConfig, RenderProxyClient

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Everything an extraction or duplicate check needs."""

    settings: Settings
    fetcher: HttpFetcher
    ai: AIClient
    cache: Optional[ResultCache] = None
    renderer: Optional[RenderProxyClient] = None
    registry: RetailerRegistry = field(default_factory=RetailerRegistry)

    def close(self) -> None:
        self.fetcher.close()
        if self.renderer is not None:
            self.renderer.close()


class ProviderClientFactory:
    """Builds provider clients from settings."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()

    def create_fetcher(self) -> HttpFetcher:
        return HttpFetcher(
            timeout=self.settings.fetch_timeout,
            max_retries=self.settings.fetch_retries,
            retry_delay=self.settings.retry_delay,
        )

    def create_renderer(self) -> Optional[RenderProxyClient]:
        renderer = RenderProxyClient(RenderConfig.from_settings(self.settings))
        if not renderer.available:
            logger.warning("No rendering proxy configured; JS-heavy pages will rely on AI fallback")
            renderer.close()
            return None
        return renderer

    def create_ai_client(self) -> AIClient:
        client = AIClient.from_settings(self.settings)
        if not client.available:
            logger.warning("ANTHROPIC_API_KEY not set; AI interpretation and duplicate checks are disabled")
        return client

    def create_cache(self) -> ResultCache:
        ttl = self.settings.cache_ttl_seconds
        if self.settings.cache_dir:
            return FileTTLCache(self.settings.cache_dir, ttl_seconds=ttl)
        return MemoryTTLCache(ttl_seconds=ttl)

    def create_context(self) -> PipelineContext:
        return PipelineContext(
            settings=self.settings,
            fetcher=self.create_fetcher(),
            ai=self.create_ai_client(),
            cache=self.create_cache(),
            renderer=self.create_renderer(),
        )
