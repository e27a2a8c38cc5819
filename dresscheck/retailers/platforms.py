"""Storefront platform detection for shops without a retailer profile.

Small retailers mostly run on a handful of e-commerce platforms whose
themes share class names. Recognizing the platform from markers in the
raw HTML lets the generic strategies try that platform's selectors before
the retailer-agnostic ones.
"""

from dataclasses import dataclass
from typing import Optional

from dresscheck.retailers.profiles import FieldSelectors


@dataclass(frozen=True)
class Platform:
    name: str
    markers: tuple[str, ...]
    selectors: FieldSelectors


# Checked in order, first match wins
PLATFORMS = (
    Platform(
        name="shopify",
        markers=("Shopify.theme", "shopify-section", "/cdn.shopify.com/", "shopify-payment-button"),
        selectors=FieldSelectors(
            name=(".product__title", ".product-single__title", "h1.title"),
            price=(".product__price", "[data-product-price]", ".price"),
            color=('.variant-input-wrap[data-option="Color"] .active', ".swatch-element.active", ".color-swatch.selected"),
            image=(".product__media-item img", ".featured-image", 'meta[property="og:image"]'),
        ),
    ),
    Platform(
        name="woocommerce",
        markers=("woocommerce", "wp-content", "add_to_cart"),
        selectors=FieldSelectors(
            name=(".product_title", ".entry-title", "h1.title"),
            price=(".summary .price", ".price .amount", ".price", ".product-price"),
            color=(".color-variable-item.selected", ".selected-color", ".color-swatch.active"),
            image=(".woocommerce-product-gallery__image img", ".wp-post-image", 'meta[property="og:image"]'),
        ),
    ),
    Platform(
        name="prestashop",
        markers=("prestashop", "presta-shop", "ps_shoppingcart"),
        selectors=FieldSelectors(
            name=('h1[itemprop="name"]', ".product-name", ".page-heading"),
            price=(".current-price", '[itemprop="price"]', ".product-price"),
            color=(".color-pick.selected", ".color-option.selected", ".input-color:checked"),
            image=("#bigpic", ".product-cover img", 'meta[property="og:image"]'),
        ),
    ),
    Platform(
        name="magento",
        markers=("Magento", "mage-init", "catalog-product-view"),
        selectors=FieldSelectors(
            name=('[data-ui-id="page-title-wrapper"]', ".page-title", ".product-name"),
            price=('[data-price-type="finalPrice"]', ".product-info-price", ".price-box"),
            color=(".swatch-option.selected", ".color-swatch.active", ".selected-option"),
            image=(".gallery-placeholder img", ".product.media img", 'meta[property="og:image"]'),
        ),
    ),
)


def detect_platform(html: Optional[str]) -> Optional[Platform]:
    """The storefront platform whose markers appear in the page, if any."""
    if not html:
        return None
    for platform in PLATFORMS:
        if any(marker in html for marker in platform.markers):
            return platform
    return None
