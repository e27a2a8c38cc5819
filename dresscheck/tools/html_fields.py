"""BeautifulSoup helpers for locating product fields in retailer HTML."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

JUNK_IMAGE_MARKERS = ("logo", "sprite", "icon", "placeholder", "blank.gif", "pixel", "spinner", "loading")

COLOR_ATTRIBUTES = ("data-color", "data-selected-color", "data-value", "data-colour")

_PRICE_TEXT_RE = re.compile(
    r"(?:[€$£]\s?\d[\d.,\s]*\d|\d[\d.,\s]*\d\s?(?:€|EUR|\$|£))", re.IGNORECASE
)
_SRCSET_ENTRY_RE = re.compile(r"\s*(\S+)(?:\s+(\d+(?:\.\d+)?)([wx]))?\s*")

# Image source priorities
PRIORITY_JSON_LD = 20
PRIORITY_OG = 15
PRIORITY_SELECTOR = 10
PRIORITY_HEURISTIC = 5


@dataclass
class BasicInfo:
    """Raw product fields as found on the page, before normalization."""

    name: Optional[str] = None
    image_url: Optional[str] = None
    price: Any = None
    currency: Optional[str] = None
    color: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    product_type: Any = None
    images: list[tuple[str, int]] = field(default_factory=list)

    def merge(self, other: "BasicInfo") -> "BasicInfo":
        """Fill missing fields from ``other``."""
        return BasicInfo(
            name=self.name or other.name,
            image_url=self.image_url or other.image_url,
            price=self.price if self.price not in (None, "") else other.price,
            currency=self.currency or other.currency,
            color=self.color or other.color,
            brand=self.brand or other.brand,
            description=self.description or other.description,
            product_type=self.product_type or other.product_type,
            images=self.images + other.images,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "imageUrl": self.image_url,
            "price": self.price,
            "currency": self.currency,
            "color": self.color,
            "brand": self.brand,
            "description": self.description,
        }


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = re.sub(r"\s+", " ", str(value)).strip()
    return text or None


def absolute_url(src: Optional[str], base_url: str) -> Optional[str]:
    """Resolve an image or link against the page URL and force https."""
    if not src:
        return None
    src = src.strip()
    if src.startswith("data:"):
        return src
    if src.startswith("//"):
        return "https:" + src
    if not src.startswith(("http://", "https://")):
        src = urljoin(base_url, src)
    if src.startswith("http://"):
        src = "https://" + src[len("http://"):]
    return src


def is_junk_image(url: str) -> bool:
    if url.startswith("data:"):
        return False
    lowered = url.lower()
    return any(marker in lowered for marker in JUNK_IMAGE_MARKERS) or lowered.split("?")[0].endswith(".svg")


def largest_from_srcset(srcset: str) -> Optional[str]:
    """Pick the widest (or highest density) candidate of a srcset."""
    best_url, best_size = None, -1.0
    for entry in srcset.split(","):
        match = _SRCSET_ENTRY_RE.fullmatch(entry)
        if not match or not match.group(1):
            continue
        size = float(match.group(2)) if match.group(2) else 0.0
        if size > best_size:
            best_url, best_size = match.group(1), size
    return best_url


def _element_value(element: Tag) -> Optional[str]:
    if element.name == "meta" or element.get("content"):
        return clean_text(element.get("content"))
    if element.name == "input":
        return clean_text(element.get("value"))
    return clean_text(element.get_text(" ", strip=True))


def _image_value(element: Tag) -> Optional[str]:
    if element.name == "meta":
        return element.get("content")
    if element.name == "link":
        return element.get("href")
    srcset = element.get("srcset") or element.get("data-srcset")
    if srcset:
        largest = largest_from_srcset(srcset)
        if largest:
            return largest
    for attr in ("data-zoom-image", "data-large", "data-src", "data-original", "src", "content"):
        if element.get(attr):
            return element.get(attr)
    return None


def select_text(soup: BeautifulSoup, selectors: Iterable[str]) -> Optional[str]:
    """First non-empty text (or meta content) matched by any selector."""
    for selector in selectors:
        try:
            element = soup.select_one(selector)
        except Exception as e:
            logger.debug(f"Bad selector {selector!r}: {e}")
            continue
        if element is None:
            continue
        value = _element_value(element)
        if value:
            return value
    return None


def select_color(soup: BeautifulSoup, selectors: Iterable[str]) -> Optional[str]:
    """Selected color from text or ``data-color``-style attributes."""
    for selector in selectors:
        try:
            element = soup.select_one(selector)
        except Exception as e:
            logger.debug(f"Bad selector {selector!r}: {e}")
            continue
        if element is None:
            continue
        for attr in COLOR_ATTRIBUTES:
            if element.get(attr):
                return clean_text(element.get(attr))
        value = _element_value(element)
        if value:
            return value
    return None


def select_images(soup: BeautifulSoup, selectors: Iterable[str], base_url: str, priority: int) -> list[tuple[str, int]]:
    """Image candidates for the given selectors, as (absolute url, priority)."""
    candidates = []
    for selector in selectors:
        try:
            elements = soup.select(selector)
        except Exception as e:
            logger.debug(f"Bad selector {selector!r}: {e}")
            continue
        for element in elements[:5]:
            src = absolute_url(_image_value(element), base_url)
            if src and not is_junk_image(src):
                # og:image meta tags outrank plain selector hits
                weight = PRIORITY_OG if element.name == "meta" else priority
                candidates.append((src, weight))
    return candidates


def best_image(candidates: Iterable[tuple[str, int]]) -> Optional[str]:
    """Highest-priority non-junk candidate; earlier wins on ties."""
    best_url, best_priority = None, -1
    for url, priority in candidates:
        if url and not is_junk_image(url) and priority > best_priority:
            best_url, best_priority = url, priority
    return best_url


def parse_meta(soup: BeautifulSoup) -> dict[str, str]:
    """``og:*``, ``twitter:*`` and ``product:*`` meta tags keyed by property."""
    meta = {}
    for tag in soup.find_all("meta"):
        key = tag.get("property") or tag.get("name") or tag.get("itemprop")
        content = tag.get("content")
        if not key or content is None:
            continue
        key = key.strip().lower()
        if key.startswith(("og:", "twitter:", "product:")) or key in ("description", "price", "pricecurrency"):
            meta.setdefault(key, content.strip())
    return meta


def _is_product_node(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    node_type = node.get("@type")
    if isinstance(node_type, list):
        return "Product" in node_type or "ProductGroup" in node_type
    return node_type in ("Product", "ProductGroup")


def _walk_json_ld(data: Any) -> Iterable[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _walk_json_ld(item)
    elif isinstance(data, dict):
        if _is_product_node(data):
            yield data
        if "@graph" in data:
            yield from _walk_json_ld(data["@graph"])


def parse_json_ld(soup: BeautifulSoup) -> list[dict]:
    """All schema.org Product nodes found in JSON-LD scripts."""
    products = []
    for script in soup.find_all("script", type=lambda t: t and "ld+json" in t):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.debug(f"Skipping malformed JSON-LD block: {e}")
            continue
        products.extend(_walk_json_ld(data))
    return products


def _ld_text(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return clean_text(value.get("name") or value.get("@value"))
    if isinstance(value, list) and value:
        return _ld_text(value[0])
    if isinstance(value, (str, int, float)):
        return clean_text(str(value))
    return None


def _ld_image(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("url") or value.get("contentUrl")
    if isinstance(value, list) and value:
        return _ld_image(value[0])
    return None


def _ld_offer(product: dict) -> tuple[Any, Optional[str]]:
    offers = product.get("offers")
    if isinstance(offers, list) and offers:
        offers = offers[0]
    if isinstance(offers, dict):
        price = offers.get("price", offers.get("lowPrice"))
        if price is None and isinstance(offers.get("priceSpecification"), dict):
            price = offers["priceSpecification"].get("price")
        return price, offers.get("priceCurrency")
    variants = product.get("hasVariant")
    if isinstance(variants, list) and variants:
        return _ld_offer(variants[0])
    return None, None


def json_ld_info(soup: BeautifulSoup, base_url: str) -> BasicInfo:
    """Product fields from the first JSON-LD Product node."""
    for product in parse_json_ld(soup):
        price, currency = _ld_offer(product)
        image = absolute_url(_ld_image(product.get("image")), base_url)
        info = BasicInfo(
            name=_ld_text(product.get("name")),
            image_url=image,
            price=price,
            currency=currency,
            color=_ld_text(product.get("color")),
            brand=_ld_text(product.get("brand")),
            description=_ld_text(product.get("description")),
            images=[(image, PRIORITY_JSON_LD)] if image else [],
        )
        if info.name or info.image_url:
            return info
    return BasicInfo()


def meta_info(soup: BeautifulSoup, base_url: str) -> BasicInfo:
    """Product fields from Open Graph, Twitter card and product meta tags."""
    meta = parse_meta(soup)
    image = absolute_url(
        meta.get("og:image:secure_url") or meta.get("og:image") or meta.get("twitter:image"),
        base_url,
    )
    return BasicInfo(
        name=clean_text(meta.get("og:title") or meta.get("twitter:title") or meta.get("product:title")),
        image_url=image,
        price=meta.get("product:price:amount") or meta.get("og:price:amount") or meta.get("price"),
        currency=meta.get("product:price:currency") or meta.get("og:price:currency") or meta.get("pricecurrency"),
        color=clean_text(meta.get("product:color")),
        brand=clean_text(meta.get("product:brand") or meta.get("og:brand")),
        description=clean_text(meta.get("og:description") or meta.get("twitter:description") or meta.get("description")),
        images=[(image, PRIORITY_OG)] if image and not is_junk_image(image) else [],
    )


def find_price_text(soup: BeautifulSoup) -> Optional[str]:
    """First price-looking text on the page (currency symbol next to a number)."""
    for element in soup.find_all(string=_PRICE_TEXT_RE, limit=20):
        parent = element.parent
        if parent is not None and parent.name in ("script", "style", "noscript"):
            continue
        match = _PRICE_TEXT_RE.search(str(element))
        if match:
            return match.group(0)
    return None


def largest_images(soup: BeautifulSoup, base_url: str, limit: int = 10) -> list[tuple[str, int]]:
    """Heuristic image candidates ordered by declared size, logos skipped."""
    scored = []
    for img in soup.find_all("img", limit=100):
        src = absolute_url(_image_value(img), base_url)
        if not src or is_junk_image(src):
            continue
        try:
            area = int(img.get("width", 0)) * int(img.get("height", 0))
        except (TypeError, ValueError):
            area = 0
        scored.append((area, src))
    scored.sort(key=lambda item: item[0], reverse=True)
    return [(src, PRIORITY_HEURISTIC) for _, src in scored[:limit]]


def page_title(soup: BeautifulSoup) -> Optional[str]:
    heading = soup.find("h1")
    if heading:
        return clean_text(heading.get_text(" ", strip=True))
    if soup.title and soup.title.string:
        return clean_text(soup.title.string.split("|")[0])
    return None
