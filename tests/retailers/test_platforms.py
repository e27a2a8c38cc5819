"""Tests for storefront platform detection."""

import pytest

from dresscheck.extraction.strategies import fallback_selectors
from dresscheck.retailers.platforms import detect_platform
from dresscheck.retailers.profiles import GENERIC_SELECTORS


@pytest.mark.parametrize(
    "html, expected",
    [
        ('<div id="shopify-section-main" class="shopify-section"></div>', "shopify"),
        ('<script src="//cdn.shopify.com/s/files/theme.js"></script>', "shopify"),
        ('<body class="single-product woocommerce"><link href="/wp-content/style.css">', "woocommerce"),
        ('<div id="_desktop_cart" class="ps_shoppingcart"></div>', "prestashop"),
        ('<body class="catalog-product-view"><div data-mage-init="{}"></div>', "magento"),
    ],
)
def test_detects_platform_from_markers(html, expected):
    assert detect_platform(html).name == expected


@pytest.mark.parametrize("html", ["", None, "<html><body><h1>Vestido</h1></body></html>"])
def test_unknown_platform(html):
    assert detect_platform(html) is None


def test_first_matching_platform_wins():
    # A Shopify theme that links a WordPress blog
    html = '<div class="shopify-section"></div><a href="https://blog.example.com/wp-content/x">blog</a>'
    assert detect_platform(html).name == "shopify"


def test_platform_selectors_lead_generic_ones():
    selectors = fallback_selectors('<div class="shopify-section"></div>', "https://www.tiendamoda.es/p/1")

    assert selectors.name[0] == ".product__title"
    assert selectors.color[:2] == ('.variant-input-wrap[data-option="Color"] .active', ".swatch-element.active")
    assert selectors.name[-len(GENERIC_SELECTORS.name):] == GENERIC_SELECTORS.name


def test_host_overrides_lead_platform_selectors():
    selectors = fallback_selectors('<div class="shopify-section"></div>', "https://www.bimani.com/vestido")

    assert selectors.price[:3] == (".price-value", ".product-price .price", ".product__price")


def test_no_platform_keeps_generic_selectors():
    assert fallback_selectors("<html></html>", "https://www.tiendamoda.es/p/1") == GENERIC_SELECTORS
