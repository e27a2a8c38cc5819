"""Static retailer profiles.

A profile tells the extraction chain where each product field lives in a
retailer's markup, which headers the retailer expects, and whether the
product should be read from an API instead of HTML.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from dresscheck.retailers.api_mappers import (
    carolina_herrera_api_url,
    map_carolina_herrera,
    map_shopify_product,
    shopify_product_json_url,
)


class ExtractionMode(str, Enum):
    """How a retailer's product data is read."""

    HTML = "html"
    API = "api"


@dataclass(frozen=True)
class FieldSelectors:
    """CSS selector lists per product field, tried in order."""

    name: tuple[str, ...] = ()
    price: tuple[str, ...] = ()
    color: tuple[str, ...] = ()
    image: tuple[str, ...] = ()
    brand: tuple[str, ...] = ()
    description: tuple[str, ...] = ()

    def prepend(self, **extra: tuple[str, ...]) -> "FieldSelectors":
        """Return a copy with retailer-specific selectors tried first."""
        values = {
            name: tuple(extra.get(name, ())) + getattr(self, name)
            for name in ("name", "price", "color", "image", "brand", "description")
        }
        return FieldSelectors(**values)


@dataclass(frozen=True)
class RetailerProfile:
    """Per-domain configuration used by the extraction chain."""

    name: str
    domains: tuple[str, ...]
    selectors: FieldSelectors
    headers: dict = field(default_factory=dict)
    default_brand: Optional[str] = None
    default_currency: str = "EUR"
    mode: ExtractionMode = ExtractionMode.HTML
    url_transform: Optional[Callable[[str], Optional[str]]] = None
    api_mapper: Optional[Callable[[dict], dict]] = None
    render_wait_ms: int = 3000
    is_generic: bool = False

    @property
    def uses_api(self) -> bool:
        return self.mode == ExtractionMode.API and self.url_transform is not None


DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
    "Referer": "https://www.google.com/",
}

JSON_HEADERS = {
    "Accept": "application/json",
    "X-Requested-With": "XMLHttpRequest",
}

# Retailer-agnostic selectors: meta tags first, then common class names
GENERIC_SELECTORS = FieldSelectors(
    name=(
        'meta[property="og:title"]',
        'meta[name="twitter:title"]',
        'meta[property="product:title"]',
        'h1[itemprop="name"]',
        "[data-testid=product-name]",
        "[data-testid=product-title]",
        ".product-title h1",
        ".product-name h1",
        ".pdp-title h1",
        ".product-detail-name",
        ".product-info__name",
        ".product-item-headline",
        ".product-title",
        ".product-name",
        ".pdp-title",
        "h1",
    ),
    price=(
        'meta[property="product:price:amount"]',
        'meta[property="og:price:amount"]',
        '[itemprop="price"]',
        "[data-testid=product-price]",
        ".price__amount",
        ".product-price-value",
        ".price-value",
        ".current-price",
        ".price-current",
        ".price-amount",
        ".money-amount",
        ".product-price",
        ".price",
    ),
    color=(
        'meta[property="product:color"]',
        '[itemprop="color"]',
        "[data-testid=selected-color]",
        ".selected-color",
        ".color-selector .active",
        ".color-picker__selected",
        ".product-color",
        ".variant-color",
        ".color-name",
        ".color-attribute span",
    ),
    image=(
        'meta[property="og:image:secure_url"]',
        'meta[property="og:image"]',
        'meta[name="twitter:image"]',
        '[itemprop="image"]',
        "[data-testid=product-image]",
        ".product-image img",
        ".product__media img",
        ".gallery-image img",
        ".pdp-image img",
        ".media-image img",
        "picture source[srcset]",
    ),
    brand=(
        'meta[property="product:brand"]',
        'meta[property="og:brand"]',
        '[itemprop="brand"]',
        "[data-testid=product-brand]",
        ".product-brand",
        ".brand-name",
        ".designer",
    ),
    description=(
        'meta[property="og:description"]',
        'meta[name="description"]',
        '[itemprop="description"]',
        "[data-testid=product-description]",
        ".product-description",
        ".pdp-description",
        ".product-detail-description",
    ),
)

# Domains whose brand is known even without a dedicated profile
BRAND_MAPPINGS = {
    "bimbaylola.com": "Bimba y Lola",
    "zara.com": "Zara",
    "hm.com": "H&M",
    "mango.com": "Mango",
    "massimodutti.com": "Massimo Dutti",
    "cos.com": "COS",
    "asos.com": "ASOS",
    "pullandbear.com": "Pull & Bear",
    "bershka.com": "Bershka",
    "stradivarius.com": "Stradivarius",
    "oysho.com": "Oysho",
    "uterque.com": "Uterque",
    "bimani.com": "BIMANI",
    "miphai.com": "Miphai",
    "mariquitatrasquila.com": "Mariquita Trasquila",
    "matildecano.es": "Matilde Cano",
    "ladypipa.com": "Lady Pipa",
    "carolinaherrera.com": "Carolina Herrera",
    "elcorteingles.es": "El Corte Inglés",
    "rosaclara.es": "Rosa Clará",
    "louisvuitton.com": "Louis Vuitton",
}

# Extra selectors for small retailers served by the generic profile
GENERIC_OVERRIDES = {
    "bimani.com": {"price": (".price-value", ".product-price .price"), "color": (".color-selector .selected",)},
    "miphai.com": {"color": (".color-option.selected", ".variant-color")},
    "mariquitatrasquila.com": {
        "image": (".product-image-main img", ".featured-image img"),
        "color": (".color-variant.active",),
    },
    "matildecano.es": {"image": (".product-image img", ".main-image img"), "color": (".color-selection .active",)},
}


PROFILES = (
    RetailerProfile(
        name="Zara",
        domains=("zara.com",),
        default_brand="Zara",
        render_wait_ms=5000,
        selectors=FieldSelectors(
            name=(".product-detail-info__header-name", ".product-detail-info h1", "[data-qa-id=product-name]", 'meta[property="og:title"]'),
            price=(".price__amount", ".product-detail-info__price", "[data-qa-id=product-price]", 'meta[property="product:price:amount"]'),
            color=(".product-detail-color-selector__selected", ".product-detail-selected-color", "[data-qa-id=selected-color]"),
            image=(".media-image img", ".product-detail-image img", "[data-qa-id=product-image]", 'meta[property="og:image"]'),
        ),
    ),
    RetailerProfile(
        name="H&M",
        domains=("hm.com",),
        default_brand="H&M",
        selectors=FieldSelectors(
            name=(".product-detail-name", ".pdp-heading", 'meta[property="og:title"]'),
            price=(".product-price-value", ".price-value", 'meta[property="product:price:amount"]'),
            color=(".product-input-label", ".product-detail-colour-picker__selected", ".selected-color"),
            image=(".product-detail-main-image-container img", ".product-images img", 'meta[property="og:image"]'),
        ),
    ),
    RetailerProfile(
        name="Mango",
        domains=("mango.com", "shop.mango.com"),
        default_brand="Mango",
        selectors=FieldSelectors(
            name=(".product-name.text-title", ".name-title", 'meta[property="og:title"]'),
            price=(".product-prices__price", ".price-sale", 'meta[property="product:price:amount"]'),
            color=(".color-selector__selected-color", ".selected-color", ".product-colors .active"),
            image=(".product-images__image img", ".image-container img", 'meta[property="og:image"]'),
        ),
    ),
    RetailerProfile(
        name="COS",
        domains=("cos.com", "cosstores.com"),
        default_brand="COS",
        selectors=FieldSelectors(
            name=(".product-item-headline", ".primary.product-item-headline", 'meta[property="og:title"]'),
            price=(".ProductPrice-module--priceValue", ".price-value", 'meta[property="product:price:amount"]'),
            color=(".product-colors-module--name", ".color-attribute span", ".selected-color"),
            image=(".product-detail-main-image-container img", ".product-image img", 'meta[property="og:image"]'),
        ),
    ),
    RetailerProfile(
        name="Massimo Dutti",
        domains=("massimodutti.com",),
        default_brand="Massimo Dutti",
        render_wait_ms=5000,
        selectors=FieldSelectors(
            name=(".product-info__name", ".product-detail-name", 'meta[property="og:title"]'),
            price=(".product-price span", ".current-price", 'meta[property="product:price:amount"]'),
            color=(".product-colors__selected", ".selected-color"),
            image=(".product-media-wrapper img", ".pdp-image", 'meta[property="og:image"]'),
        ),
    ),
    RetailerProfile(
        name="El Corte Inglés",
        domains=("elcorteingles.es",),
        selectors=FieldSelectors(
            name=(".product_detail-title", "h1.title", 'meta[property="og:title"]'),
            price=(".price._big", ".product_detail-price .price", 'meta[property="product:price:amount"]'),
            color=(".color-selector__selected", ".product_detail-color .selected"),
            image=(".product_detail-image img", ".js-zoom-image img", 'meta[property="og:image"]'),
            brand=(".product_detail-brand", ".brand a", 'meta[property="product:brand"]'),
        ),
    ),
    RetailerProfile(
        name="Rosa Clará",
        domains=("rosaclara.es", "rosaclara.com"),
        default_brand="Rosa Clará",
        selectors=FieldSelectors(
            name=(".product-name h1", ".product-title", 'meta[property="og:title"]'),
            price=(".price-box .price", ".product-price", 'meta[property="product:price:amount"]'),
            color=(".swatch-attribute-selected-option", ".selected-color"),
            image=(".gallery-placeholder img", ".product-image-photo", 'meta[property="og:image"]'),
        ),
    ),
    RetailerProfile(
        name="Louis Vuitton",
        domains=("louisvuitton.com",),
        default_brand="Louis Vuitton",
        render_wait_ms=5000,
        selectors=FieldSelectors(
            name=(".lv-product__name", "h1.lv-product__title", 'meta[property="og:title"]'),
            price=(".lv-product__price", ".lv-price", 'meta[property="product:price:amount"]'),
            color=(".lv-product-variation-selector__selected", ".lv-product__color"),
            image=(".lv-product-page-header__primary img", ".lv-smart-picture img", 'meta[property="og:image"]'),
        ),
    ),
    RetailerProfile(
        name="Carolina Herrera",
        domains=("carolinaherrera.com", "chcarolinaherrera.com"),
        default_brand="Carolina Herrera",
        mode=ExtractionMode.API,
        url_transform=carolina_herrera_api_url,
        api_mapper=map_carolina_herrera,
        headers=JSON_HEADERS,
        selectors=FieldSelectors(
            name=(".product-name h1", "[data-testid=product-name]", ".pdp-title", 'meta[property="og:title"]'),
            price=(".product-price", "[data-testid=product-price]", ".price-value", 'meta[property="product:price:amount"]'),
            color=(".selected-color", "[data-testid=selected-color]", ".color-selector .active", 'meta[property="product:color"]'),
            image=(".product-image img", "[data-testid=product-image]", 'meta[property="og:image"]', 'meta[property="product:image"]'),
            description=(".product-description", "[data-testid=product-description]", 'meta[name="description"]'),
        ),
    ),
    RetailerProfile(
        name="Lady Pipa",
        domains=("ladypipa.com",),
        default_brand="Lady Pipa",
        mode=ExtractionMode.API,
        url_transform=shopify_product_json_url,
        api_mapper=map_shopify_product,
        headers={"Accept": "application/json"},
        selectors=FieldSelectors(
            name=(".product__title h1", ".product-single__title", 'meta[property="og:title"]'),
            price=(".price-item--regular", ".product__price", 'meta[property="product:price:amount"]'),
            color=(".product-form__input input:checked + label",),
            image=(".product__media img", 'meta[property="og:image"]'),
        ),
    ),
)


def brand_for_host(host: str) -> Optional[str]:
    """Known brand for a host, else the capitalised first label."""
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    for domain, brand in BRAND_MAPPINGS.items():
        if host == domain or host.endswith("." + domain):
            return brand
    first_label = host.split(".")[0] if host else ""
    return first_label.capitalize() or None


def host_overrides(host: str) -> dict:
    """Extra selectors for a small retailer served by the generic profile."""
    host = host.lower()
    for domain, extra in GENERIC_OVERRIDES.items():
        if host == domain or host.endswith("." + domain):
            return extra
    return {}


def generic_profile(host: str) -> RetailerProfile:
    """Build the fallback profile for a host without a dedicated entry."""
    return RetailerProfile(
        name=brand_for_host(host) or "Generic Retailer",
        domains=(host,) if host else (),
        selectors=GENERIC_SELECTORS.prepend(**host_overrides(host)),
        default_brand=brand_for_host(host),
        is_generic=True,
    )
