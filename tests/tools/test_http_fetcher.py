"""Unit tests for the direct HTTP fetcher."""

import threading
from unittest.mock import patch

import httpx
import pytest

from dresscheck.errors import ExtractionCancelled, ProviderUnavailable
from dresscheck.tools.http_fetcher import HttpFetcher, wait_or_cancel

PAGE_URL = "https://www.tiendamoda.es/vestido"


def test_fetch_success_sends_headers(fetcher_factory):
    seen = {}

    def handler(request):
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, text="<html>ok</html>")

    fetcher = fetcher_factory({PAGE_URL: handler})
    result = fetcher.fetch(PAGE_URL, headers={"User-Agent": "DressCheckTest"})

    assert result.status_code == 200
    assert result.text == "<html>ok</html>"
    assert seen["ua"] == "DressCheckTest"


def test_fetch_retries_server_errors(fetcher_factory):
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] < 3:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, text="finally")

    fetcher = fetcher_factory({PAGE_URL: handler}, max_retries=2)
    assert fetcher.fetch(PAGE_URL).text == "finally"
    assert calls["count"] == 3


def test_fetch_gives_up_after_bounded_retries(fetcher_factory):
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        return httpx.Response(502)

    fetcher = fetcher_factory({PAGE_URL: handler}, max_retries=2)
    with pytest.raises(ProviderUnavailable) as excinfo:
        fetcher.fetch(PAGE_URL)

    assert calls["count"] == 3
    assert excinfo.value.provider == "direct"
    assert excinfo.value.status_code == 502


def test_fetch_does_not_retry_not_found(fetcher_factory):
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        return httpx.Response(404)

    fetcher = fetcher_factory({PAGE_URL: handler}, max_retries=3)
    with pytest.raises(ProviderUnavailable) as excinfo:
        fetcher.fetch(PAGE_URL)

    assert calls["count"] == 1
    assert excinfo.value.reason == "Product not found"


def test_fetch_timeout_is_provider_unavailable(fetcher_factory):
    fetcher = fetcher_factory({PAGE_URL: httpx.ConnectTimeout("timed out")}, max_retries=1)
    with pytest.raises(ProviderUnavailable) as excinfo:
        fetcher.fetch(PAGE_URL)
    assert "timed out" in excinfo.value.reason


def test_fetch_json(fetcher_factory):
    fetcher = fetcher_factory(
        {
            "https://api.shop.es/p/1": httpx.Response(200, json={"name": "Vestido"}),
            "https://api.shop.es/p/2": httpx.Response(200, text="<html>"),
        }
    )
    assert fetcher.fetch_json("https://api.shop.es/p/1") == {"name": "Vestido"}
    with pytest.raises(ProviderUnavailable):
        fetcher.fetch_json("https://api.shop.es/p/2")


def test_fetch_bytes_returns_content_type(fetcher_factory):
    fetcher = fetcher_factory(
        {"https://cdn.shop.es/a.png": httpx.Response(200, content=b"\x89PNG", headers={"Content-Type": "image/png; q=1"})}
    )
    data, content_type = fetcher.fetch_bytes("https://cdn.shop.es/a.png")
    assert data == b"\x89PNG"
    assert content_type == "image/png"


def test_fetch_cancelled_before_request(fetcher_factory):
    cancel = threading.Event()
    cancel.set()
    fetcher = fetcher_factory({PAGE_URL: httpx.Response(200, text="ok")})
    with pytest.raises(ExtractionCancelled):
        fetcher.fetch(PAGE_URL, cancel_event=cancel)


def test_wait_or_cancel():
    cancel = threading.Event()
    wait_or_cancel(0, cancel)

    cancel.set()
    with pytest.raises(ExtractionCancelled):
        wait_or_cancel(5, cancel)


@patch("dresscheck.tools.http_fetcher.wait_or_cancel")
def test_backoff_grows_linearly(mock_wait):
    def handler(request):
        return httpx.Response(503)

    fetcher = HttpFetcher(max_retries=3, retry_delay=0.5, transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderUnavailable):
        fetcher.fetch("https://shop.es/p/1")

    assert [c.args[0] for c in mock_wait.call_args_list] == [0.5, 1.0, 1.5]
