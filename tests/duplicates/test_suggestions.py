"""Tests for alternative suggestions and the retailer product search."""

import re
from unittest.mock import Mock

import httpx

from dresscheck.errors import ProviderUnavailable
from dresscheck.models import EventContext, PoolItem, ProductType, SuggestedItem, SuggestionReply
from dresscheck.suggestions import (
    product_links,
    retailers_for_budget,
    search_links,
    search_terms,
    suggest_alternatives,
)

ZARA_SEARCH = "https://www.zara.com/es/es/search?searchTerm=Mono"
ZARA_PRODUCT = "https://www.zara.com/es/es/mono-lino-p0456.html"

SEARCH_PAGE = """
<html><body>
  <a href="/es/es/help">Ayuda</a>
  <a href="/es/es/mono-lino-p0456.html">Mono lino</a>
  <a href="/es/es/mono-lino-p0456.html?v1=2">Mono lino</a>
  <a href="https://www.instagram.com/zara/mono-p9999.html">Instagram</a>
  <a href="/es/es/mono-agotado-p0789.html">Mono agotado</a>
</body></html>
"""

ZARA_MONO = """
<html><body>
  <div class="product-detail-info"><h1 class="product-detail-info__header-name">Mono lino palazzo</h1></div>
  <span class="price__amount">49,95 EUR</span>
  <span class="product-detail-color-selector__selected">Crudo</span>
  <div class="media-image"><img src="https://static.zara.net/photos/mono.jpg"></div>
</body></html>
"""

DUPLICATE = PoolItem(
    id="7",
    name="Vestido midi negro",
    brand="Zara",
    color="Black",
    type=ProductType(category="clothes", subcategory="dresses", display_name="Dresses"),
)


def suggestion(name="Mono", priority=5, **item):
    return SuggestionReply(title=f"Prueba un {name.lower()}", item=SuggestedItem(name=name, **item), priority=priority)


def stylist(*replies):
    """An AI that only suggests; extraction never reaches it."""
    ai = Mock(available=False)
    ai.suggest_alternatives.return_value = list(replies)
    return ai


def test_search_terms_are_unique_and_specific_first():
    reply = SuggestionReply(
        item=SuggestedItem(name="Mono palazzo", color="Black", subcategory="jumpsuits", style="  elegante "),
        search_terms=["mono", "palazzo"],
    )
    assert search_terms(reply) == ["Mono palazzo", "Black jumpsuits", "elegante jumpsuits"]


def test_search_links_follow_budget():
    links = search_links(suggestion("Mono palazzo"), budget="budget")

    assert [link.retailer for link in links] == ["H&M", "Pull & Bear", "Bershka", "Stradivarius"]
    assert links[0].url == "https://www2.hm.com/es_es/search-results.html?q=Mono+palazzo"
    assert {link.price_range for link in links} == {"budget"}


def test_unknown_budget_searches_budget_and_mid():
    ranges = {retailer.price_range for retailer in retailers_for_budget("lujo")}
    assert ranges == {"budget", "mid"}


def test_product_links_stay_on_host():
    links = product_links(SEARCH_PAGE, ZARA_SEARCH, re.compile(r"-p\d+\.html"), limit=5)

    assert links[0] == ZARA_PRODUCT
    assert "https://www.zara.com/es/es/mono-agotado-p0789.html" in links
    assert not any("instagram" in link or "help" in link for link in links)


def test_product_links_limit():
    links = product_links(SEARCH_PAGE, ZARA_SEARCH, re.compile(r"-p\d+\.html"), limit=1)
    assert links == [ZARA_PRODUCT]


def test_suggestions_with_real_products(make_context):
    ai = stylist(suggestion("Mono", subcategory="jumpsuits"))
    context = make_context(
        {
            ZARA_SEARCH: httpx.Response(200, text=SEARCH_PAGE),
            ZARA_PRODUCT: httpx.Response(200, text=ZARA_MONO),
        },
        ai=ai,
    )
    event = EventContext(name="Boda")

    suggestions = suggest_alternatives(DUPLICATE, [], event, context)

    assert len(suggestions) == 1
    found = suggestions[0]
    assert found.suggestion.item.name == "Mono"
    assert len(found.search_links) == 8
    assert [product.name for product in found.products] == ["Mono lino palazzo"]
    assert found.products[0].brand == "Zara"
    assert found.products[0].price.amount == 49.95
    ai.suggest_alternatives.assert_called_once_with(DUPLICATE, [], event)


def test_failed_searches_and_products_are_left_out(make_context):
    # Every other retailer answers 404, and so do the product links
    context = make_context({ZARA_SEARCH: httpx.Response(200, text=SEARCH_PAGE)}, ai=stylist(suggestion("Mono")))

    suggestions = suggest_alternatives(DUPLICATE, [], None, context)

    assert len(suggestions) == 1
    assert suggestions[0].products == []
    assert len(suggestions[0].search_links) == 8


def test_search_links_only(make_context):
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        return httpx.Response(200, text=SEARCH_PAGE)

    ai = stylist(suggestion("Falda midi", priority=8), suggestion("Mono"))
    context = make_context({ZARA_SEARCH: handler}, ai=ai)

    suggestions = suggest_alternatives(DUPLICATE, [], None, context, budget="premium", with_products=False)

    assert [s.suggestion.item.name for s in suggestions] == ["Falda midi", "Mono"]
    assert [link.retailer for link in suggestions[0].search_links] == ["Zara", "Mango", "Massimo Dutti", "ASOS"]
    assert suggestions[0].products == []
    assert calls["count"] == 0


def test_ai_unavailable_gives_no_suggestions(make_context):
    assert suggest_alternatives(DUPLICATE, [], None, make_context()) == []


def test_ai_error_gives_no_suggestions(make_context, ai_factory):
    ai = ai_factory(ProviderUnavailable("anthropic", "overloaded"))
    assert suggest_alternatives(DUPLICATE, [], None, make_context(ai=ai)) == []


def test_unusable_reply_gives_no_suggestions(make_context, ai_factory):
    ai = ai_factory("No tengo sugerencias.")
    assert suggest_alternatives(DUPLICATE, [], None, make_context(ai=ai)) == []
