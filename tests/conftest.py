"""Pytest configuration and fixtures for DressCheck tests."""

import sys
from pathlib import Path
from unittest.mock import Mock

import httpx
import pytest
from dotenv import load_dotenv

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
load_dotenv(project_root / ".env")

from dresscheck.cache import MemoryTTLCache
from dresscheck.config import Settings
from dresscheck.context import PipelineContext
from dresscheck.tools.ai_client import AIClient
from dresscheck.tools.http_fetcher import HttpFetcher


def ai_message(text: str) -> Mock:
    """A fake Anthropic Messages API response carrying ``text``."""
    return Mock(content=[Mock(type="text", text=text)])


def make_ai(*replies) -> AIClient:
    """AIClient backed by a mocked Anthropic client.

    Each reply is either the text of one message or an exception to raise.
    """
    client = Mock()
    client.with_options.return_value = client
    client.messages.create.side_effect = [
        reply if isinstance(reply, Exception) else ai_message(reply) for reply in replies
    ]
    return AIClient(client=client)


def make_fetcher(routes: dict, max_retries: int = 0) -> HttpFetcher:
    """HttpFetcher served from a dict of url -> Response (or callable, or exception)."""

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        return route

    return HttpFetcher(timeout=1.0, max_retries=max_retries, retry_delay=0.0, transport=httpx.MockTransport(handler))


@pytest.fixture
def settings():
    """Settings with no provider keys and no delays."""
    return Settings(retry_delay=0.0, fetch_retries=0, max_workers=2)


@pytest.fixture
def offline_ai():
    """AIClient without an API key."""
    return AIClient()


@pytest.fixture
def make_context(settings, offline_ai):
    """Factory for a PipelineContext over fake routes."""
    contexts = []

    def _make(routes=None, ai=None, renderer=None, cache=None):
        context = PipelineContext(
            settings=settings,
            fetcher=make_fetcher(routes or {}),
            ai=ai or offline_ai,
            cache=cache if cache is not None else MemoryTTLCache(),
            renderer=renderer,
        )
        contexts.append(context)
        return context

    yield _make

    for context in contexts:
        context.fetcher.close()


@pytest.fixture
def product_page_html():
    """Product page with Open Graph tags only."""
    return """
    <html>
      <head>
        <title>Vestido Negro | Tienda Moda</title>
        <meta property="og:title" content="Vestido Negro">
        <meta property="og:image" content="https://x/y.jpg">
        <meta property="product:price:amount" content="45,95">
      </head>
      <body><h1>Vestido Negro</h1></body>
    </html>
    """


@pytest.fixture
def ai_factory():
    """Build an AIClient whose replies are scripted."""
    return make_ai


@pytest.fixture
def fetcher_factory():
    """Build an HttpFetcher over scripted routes."""
    fetchers = []

    def _make(routes, max_retries=0):
        fetcher = make_fetcher(routes, max_retries=max_retries)
        fetchers.append(fetcher)
        return fetcher

    yield _make

    for fetcher in fetchers:
        fetcher.close()
