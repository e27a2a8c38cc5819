"""Provider clients and HTML/JSON helpers used by the extraction chain."""

from dresscheck.tools.ai_client import AIClient
from dresscheck.tools.http_fetcher import FetchResult, HttpFetcher
from dresscheck.tools.json_extract import extract_json
from dresscheck.tools.render_proxy import RenderConfig, RenderProxyClient, RenderResult

__all__ = [
    "AIClient",
    "FetchResult",
    "HttpFetcher",
    "extract_json",
    "RenderConfig",
    "RenderProxyClient",
    "RenderResult",
]
