"""URL transforms and JSON mappers for retailers with a product API.

Each mapper turns the retailer's JSON payload into a plain dict with the
keys ``name``, ``image_url``, ``price``, ``currency``, ``color``,
``brand`` and ``description``; the extraction strategy normalizes it.
"""

import re
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup

_CH_SKU_RE = re.compile(r"sku=(\d+)")
_SHOPIFY_PRODUCT_RE = re.compile(r"(/products/[^/?#]+)")


def carolina_herrera_api_url(url: str) -> Optional[str]:
    """Product page with ``sku=`` -> ``/api/products/<sku>`` endpoint."""
    if "/p-ready-to-wear/" not in url:
        return None
    match = _CH_SKU_RE.search(url)
    if not match:
        return None
    return f"https://www.carolinaherrera.com/api/products/{match.group(1)}"


def shopify_product_json_url(url: str) -> Optional[str]:
    """Shopify product page -> ``/products/<handle>.json``."""
    parts = urlsplit(url)
    match = _SHOPIFY_PRODUCT_RE.search(parts.path)
    if not match:
        return None
    handle_path = match.group(1)
    if handle_path.endswith(".json"):
        handle_path = handle_path[: -len(".json")]
    return urlunsplit((parts.scheme or "https", parts.netloc, f"{handle_path}.json", "", ""))


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _image_from(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return _first(value, "src", "url", "href")
    if isinstance(value, list) and value:
        return _image_from(value[0])
    return None


def _strip_html(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    text = BeautifulSoup(value, "lxml").get_text(" ", strip=True)
    return text or None


def map_carolina_herrera(payload: dict) -> dict:
    """Map the Carolina Herrera product API response."""
    product = payload.get("product") if isinstance(payload.get("product"), dict) else payload

    price = _first(product, "price", "salePrice", "finalPrice")
    currency = None
    if isinstance(price, dict):
        currency = _first(price, "currency", "currencyCode")
        price = _first(price, "value", "amount", "formatted")

    color = _first(product, "color", "colour", "colorName")
    if isinstance(color, dict):
        color = _first(color, "name", "label")

    return {
        "name": _first(product, "name", "title", "displayName"),
        "image_url": _image_from(_first(product, "images", "image", "media", "mainImage")),
        "price": price,
        "currency": currency,
        "color": color,
        "brand": _first(product, "brand") or "Carolina Herrera",
        "description": _strip_html(_first(product, "description", "shortDescription")),
    }


def map_shopify_product(payload: dict) -> dict:
    """Map a Shopify ``/products/<handle>.json`` response."""
    product = payload.get("product") or {}

    variants = product.get("variants") or []
    price = variants[0].get("price") if variants else None

    color = None
    for index, option in enumerate(product.get("options") or [], start=1):
        if str(option.get("name", "")).strip().lower() in ("color", "colour", "color/colour"):
            values = option.get("values") or []
            if variants and variants[0].get(f"option{index}"):
                color = variants[0][f"option{index}"]
            elif values:
                color = values[0]
            break

    return {
        "name": product.get("title"),
        "image_url": _image_from(product.get("image")) or _image_from(product.get("images")),
        "price": price,
        "currency": None,
        "color": color,
        "brand": product.get("vendor"),
        "description": _strip_html(product.get("body_html")),
    }
