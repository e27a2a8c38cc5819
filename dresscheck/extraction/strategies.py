"""Extraction strategies.

Each strategy reads a page (or API) and returns the raw product fields it
could find as a ``BasicInfo``. Strategies raise on failure; the chain
driver logs the error and moves on to the next strategy. Normalization
and validation happen in the driver, not here.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from dresscheck.errors import StrategyError
from dresscheck.extraction.page import PageSession
from dresscheck.retailers.platforms import detect_platform
from dresscheck.retailers.profiles import GENERIC_SELECTORS, FieldSelectors, host_overrides
from dresscheck.retailers.url import hostname
from dresscheck.tools.html_fields import (
    PRIORITY_SELECTOR,
    BasicInfo,
    find_price_text,
    json_ld_info,
    largest_images,
    meta_info,
    page_title,
    select_color,
    select_images,
    select_text,
)

logger = logging.getLogger(__name__)


def selector_info(soup: BeautifulSoup, selectors: FieldSelectors, base_url: str) -> BasicInfo:
    """Apply a selector set to a parsed page."""
    images = select_images(soup, selectors.image, base_url, PRIORITY_SELECTOR)
    return BasicInfo(
        name=select_text(soup, selectors.name),
        image_url=images[0][0] if images else None,
        price=select_text(soup, selectors.price),
        color=select_color(soup, selectors.color),
        brand=select_text(soup, selectors.brand),
        description=select_text(soup, selectors.description),
        images=images,
    )


def structured_info(soup: BeautifulSoup, base_url: str) -> BasicInfo:
    """JSON-LD Product data, completed by og/twitter/product meta tags."""
    return json_ld_info(soup, base_url).merge(meta_info(soup, base_url))


def fallback_selectors(html: str, url: str) -> FieldSelectors:
    """Generic selectors led by the storefront platform's and the host's own."""
    selectors = GENERIC_SELECTORS
    platform = detect_platform(html)
    if platform is not None:
        logger.debug(f"{url} looks like a {platform.name} storefront")
        selectors = selectors.prepend(**asdict(platform.selectors))
    return selectors.prepend(**host_overrides(hostname(url)))


def generic_info(soup: BeautifulSoup, base_url: str, selectors: FieldSelectors = GENERIC_SELECTORS) -> BasicInfo:
    """Broad selectors plus heuristics for pages nobody configured."""
    info = selector_info(soup, selectors, base_url)
    heuristics = BasicInfo(
        name=page_title(soup),
        price=find_price_text(soup),
        images=largest_images(soup, base_url),
    )
    merged = info.merge(heuristics)
    if not merged.image_url and merged.images:
        merged.image_url = merged.images[0][0]
    return merged


class ExtractionStrategy(ABC):
    """One way of producing a product candidate for a URL."""

    name = "strategy"

    def applies(self, page: PageSession) -> bool:
        """Whether the strategy is worth running for this page at all."""
        return True

    @abstractmethod
    def attempt(self, url: str, page: PageSession) -> BasicInfo:
        """Return raw fields for ``url`` or raise."""


class ApiStrategy(ExtractionStrategy):
    """Read structured JSON from retailers that expose a product API."""

    name = "api"

    def applies(self, page: PageSession) -> bool:
        return page.profile.uses_api and page.profile.api_mapper is not None

    def attempt(self, url: str, page: PageSession) -> BasicInfo:
        api_url = page.profile.url_transform(url)
        if not api_url:
            raise StrategyError(f"No API endpoint for {url}")

        logger.info(f"[API] Fetching {page.profile.name} product API: {api_url}")
        payload = page.context.fetcher.fetch_json(api_url, headers=page.headers, cancel_event=page.cancel_event)
        if not isinstance(payload, dict):
            raise StrategyError(f"Unexpected API payload type: {type(payload).__name__}")

        fields = page.profile.api_mapper(payload)
        return BasicInfo(
            name=fields.get("name"),
            image_url=fields.get("image_url"),
            price=fields.get("price"),
            currency=fields.get("currency"),
            color=fields.get("color"),
            brand=fields.get("brand"),
            description=fields.get("description"),
        )


class StructuredDataStrategy(ExtractionStrategy):
    """og:/twitter:/product: meta tags and JSON-LD Product blocks."""

    name = "structured_data"

    def attempt(self, url: str, page: PageSession) -> BasicInfo:
        return structured_info(page.soup(), url)


class RetailerSelectorStrategy(ExtractionStrategy):
    """The retailer profile's own CSS selectors."""

    name = "retailer_selectors"

    def applies(self, page: PageSession) -> bool:
        return not page.profile.is_generic

    def attempt(self, url: str, page: PageSession) -> BasicInfo:
        return selector_info(page.soup(), page.profile.selectors, url)


class GenericSelectorStrategy(ExtractionStrategy):
    """Retailer-agnostic selectors and heuristics."""

    name = "generic_selectors"

    def attempt(self, url: str, page: PageSession) -> BasicInfo:
        return generic_info(page.soup(), url, fallback_selectors(page.html(), url))


class ProxyRenderStrategy(ExtractionStrategy):
    """Render the page through the proxy and re-run the HTML strategies."""

    name = "proxy_render"

    def applies(self, page: PageSession) -> bool:
        return page.context.renderer is not None

    def attempt(self, url: str, page: PageSession) -> BasicInfo:
        soup = page.rendered_soup()
        info = structured_info(soup, url)
        if not page.profile.is_generic:
            info = info.merge(selector_info(soup, page.profile.selectors, url))
        return info.merge(generic_info(soup, url, fallback_selectors(page.rendered_html(), url)))


class AIInterpretationStrategy(ExtractionStrategy):
    """Ask the language model to read the page; last resort."""

    name = "ai_interpretation"

    def applies(self, page: PageSession) -> bool:
        return page.context.ai.available

    def attempt(self, url: str, page: PageSession) -> BasicInfo:
        html = page.best_available_html()
        basic = page.partial.to_dict()
        if not html and not any(basic.values()):
            raise StrategyError("Nothing to interpret: no HTML and no partial fields")

        reply = page.context.ai.interpret_product(html, basic, url)
        return BasicInfo(
            name=reply.name,
            image_url=reply.image_url,
            price=reply.price,
            color=reply.color,
            brand=reply.brand,
            description=reply.description,
            product_type=reply.type,
        )


def default_strategies() -> list[ExtractionStrategy]:
    """Strategies in the order the chain tries them."""
    return [
        ApiStrategy(),
        StructuredDataStrategy(),
        RetailerSelectorStrategy(),
        GenericSelectorStrategy(),
        ProxyRenderStrategy(),
        AIInterpretationStrategy(),
    ]


def url_slug_text(url: str) -> str:
    """Words from the last path segment, e.g. ``vestido-negro-p123`` -> ``vestido negro p123``."""
    path = urlsplit(url).path.rstrip("/")
    slug = path.rsplit("/", 1)[-1]
    slug = slug.rsplit(".", 1)[0]
    return slug.replace("-", " ").replace("_", " ")
