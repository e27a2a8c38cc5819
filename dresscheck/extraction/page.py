"""Per-extraction page session.

Holds the direct and rendered HTML for one URL so that the structured,
retailer and generic strategies parse the same download instead of each
fetching the page again. A session lives for a single ``extract_product``
call and is never shared between requests.
"""

import logging
import threading
from typing import Optional

from bs4 import BeautifulSoup

from dresscheck.errors import DressCheckError, ProviderUnavailable
from dresscheck.retailers.profiles import RetailerProfile
from dresscheck.retailers.registry import RetailerRegistry
from dresscheck.tools.html_fields import BasicInfo, make_soup

logger = logging.getLogger(__name__)


class PageSession:
    """Lazily fetched direct and rendered HTML for one product URL."""

    def __init__(self, url: str, profile: RetailerProfile, context, cancel_event: Optional[threading.Event] = None):
        self.url = url
        self.profile = profile
        self.context = context
        self.cancel_event = cancel_event
        self.headers = RetailerRegistry.headers_for(profile)
        self.partial = BasicInfo()

        self._html: Optional[str] = None
        self._html_error: Optional[DressCheckError] = None
        self._soup: Optional[BeautifulSoup] = None
        self._rendered: Optional[str] = None
        self._rendered_error: Optional[DressCheckError] = None
        self._rendered_soup: Optional[BeautifulSoup] = None

    def html(self) -> str:
        """Directly fetched HTML; a failed fetch is remembered and re-raised."""
        if self._html_error is not None:
            raise self._html_error
        if self._html is None:
            try:
                result = self.context.fetcher.fetch(self.url, headers=self.headers, cancel_event=self.cancel_event)
            except ProviderUnavailable as e:
                self._html_error = e
                raise
            self._html = result.text
            logger.debug(f"Fetched {len(self._html)} chars from {self.url}")
        return self._html

    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = make_soup(self.html())
        return self._soup

    def rendered_html(self) -> str:
        """HTML rendered through the proxy; a failed render is remembered."""
        if self._rendered_error is not None:
            raise self._rendered_error
        if self._rendered is None:
            renderer = self.context.renderer
            if renderer is None:
                raise ProviderUnavailable("render", "No rendering provider configured")
            try:
                result = renderer.render(
                    self.url,
                    headers=self.headers,
                    wait_ms=self.profile.render_wait_ms,
                    cancel_event=self.cancel_event,
                )
            except ProviderUnavailable as e:
                self._rendered_error = e
                raise
            self._rendered = result.html
            logger.debug(f"Rendered {len(self._rendered)} chars from {self.url} via {result.source}")
        return self._rendered

    def rendered_soup(self) -> BeautifulSoup:
        if self._rendered_soup is None:
            self._rendered_soup = make_soup(self.rendered_html())
        return self._rendered_soup

    def best_available_html(self) -> str:
        """Rendered HTML if we have it, else direct HTML, else an empty string."""
        if self._rendered:
            return self._rendered
        if self._html:
            return self._html
        return ""
