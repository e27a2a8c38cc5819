"""Alternatives for a duplicated garment, backed by real retailer products.

The AI proposes different garments with a similar look. For each one the
retailer search pages are fetched concurrently, product links are picked
out of the results, and those links go through the extraction chain with
``extract_many``. Every step degrades: a failed search page or product is
logged and skipped, and an unusable AI reply yields no suggestions.
"""

import concurrent.futures
import logging
import re
import threading
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus, urljoin

from dresscheck.errors import AIResponseInvalid, DressCheckError, ProviderUnavailable
from dresscheck.extraction.fanout import extract_many
from dresscheck.models import (
    EventContext,
    PoolItem,
    ProductRecord,
    SearchLink,
    Suggestion,
    SuggestionReply,
)
from dresscheck.retailers.registry import RetailerRegistry
from dresscheck.retailers.url import hostname, normalize_url
from dresscheck.tools.html_fields import make_soup

logger = logging.getLogger(__name__)

BUDGET = "budget"
MID = "mid"
PREMIUM = "premium"

# Price ranges searched for each budget preference
BUDGET_RANGES = {
    "all": (BUDGET, MID, PREMIUM),
    BUDGET: (BUDGET,),
    MID: (BUDGET, MID),
    PREMIUM: (MID, PREMIUM),
}


@dataclass(frozen=True)
class RetailerSearch:
    name: str
    search_url: str
    price_range: str
    product_link: re.Pattern


RETAILER_SEARCHES = (
    RetailerSearch("Zara", "https://www.zara.com/es/es/search?searchTerm=", MID, re.compile(r"-p\d+\.html")),
    RetailerSearch("H&M", "https://www2.hm.com/es_es/search-results.html?q=", BUDGET, re.compile(r"productpage\.\d+\.html")),
    RetailerSearch("Mango", "https://shop.mango.com/es/search?q=", MID, re.compile(r"/p/.+_\d+")),
    RetailerSearch("Massimo Dutti", "https://www.massimodutti.com/es/search?q=", PREMIUM, re.compile(r"-l\d+")),
    RetailerSearch("ASOS", "https://www.asos.com/es/search/?q=", MID, re.compile(r"/prd/\d+")),
    RetailerSearch("Pull & Bear", "https://www.pullandbear.com/es/search?q=", BUDGET, re.compile(r"-l\d+")),
    RetailerSearch("Bershka", "https://www.bershka.com/es/search?q=", BUDGET, re.compile(r"-c0p\d+\.html")),
    RetailerSearch("Stradivarius", "https://www.stradivarius.com/es/search?q=", BUDGET, re.compile(r"-l\d+")),
)


def retailers_for_budget(budget: str = "all") -> list[RetailerSearch]:
    ranges = BUDGET_RANGES.get(budget, (BUDGET, MID))
    return [retailer for retailer in RETAILER_SEARCHES if retailer.price_range in ranges]


def search_terms(suggestion: SuggestionReply) -> list[str]:
    """Queries for a suggested item, most specific first, without repeats."""
    item = suggestion.item
    candidates = [
        item.name,
        " ".join(part for part in (item.color, item.subcategory) if part),
        " ".join(part for part in (item.style, item.subcategory) if part),
        " ".join(suggestion.search_terms),
    ]
    terms = []
    for candidate in candidates:
        candidate = " ".join(candidate.split())
        if candidate and candidate.lower() not in (term.lower() for term in terms):
            terms.append(candidate)
    return terms


def search_links(suggestion: SuggestionReply, budget: str = "all") -> list[SearchLink]:
    """One search results page per retailer in the budget."""
    terms = search_terms(suggestion)
    if not terms:
        return []
    return [
        SearchLink(retailer=retailer.name, url=retailer.search_url + quote_plus(terms[0]), price_range=retailer.price_range)
        for retailer in retailers_for_budget(budget)
    ]


def product_links(html: str, base_url: str, pattern: re.Pattern, limit: int) -> list[str]:
    """Product page links on the retailer's own host, in page order."""
    host = hostname(base_url)
    soup = make_soup(html)
    links = []
    for anchor in soup.find_all("a", href=True):
        href = urljoin(base_url, anchor["href"])
        if hostname(href) != host or not pattern.search(href):
            continue
        try:
            url = normalize_url(href)
        except DressCheckError:
            continue
        if url not in links:
            links.append(url)
        if len(links) >= limit:
            break
    return links


def _search_retailer(link: SearchLink, retailer: RetailerSearch, context, limit: int, cancel_event) -> list[str]:
    profile = context.registry.lookup(link.url)
    result = context.fetcher.fetch(link.url, headers=RetailerRegistry.headers_for(profile), cancel_event=cancel_event)
    links = product_links(result.text, result.url or link.url, retailer.product_link, limit)
    logger.debug(f"[Suggest] {retailer.name}: {len(links)} product links")
    return links


def find_real_products(
    suggestion: SuggestionReply,
    context,
    budget: str = "all",
    per_retailer: int = 2,
    cancel_event: Optional[threading.Event] = None,
) -> tuple[list[SearchLink], list[ProductRecord]]:
    """Search retailers for a suggested item and extract the products found.

    Returns the search links and the products that extracted cleanly.
    Retailers whose search page fails, and products whose extraction
    fails, are logged and left out.
    """
    links = search_links(suggestion, budget)
    if not links:
        return [], []
    retailers = {retailer.name: retailer for retailer in RETAILER_SEARCHES}

    candidates: list[list[str]] = [[] for _ in links]
    workers = max(1, min(context.settings.max_workers, len(links)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_search_retailer, link, retailers[link.retailer], context, per_retailer, cancel_event): index
            for index, link in enumerate(links)
        }
        for future in concurrent.futures.as_completed(futures):
            index = futures[future]
            try:
                candidates[index] = future.result()
            except DressCheckError as e:
                logger.warning(f"[Suggest] {links[index].retailer} search failed: {e}")

    urls = [url for found in candidates for url in found]
    products = [result.value for result in extract_many(urls, context, cancel_event=cancel_event) if result.ok]
    logger.info(f"[Suggest] {len(products)} products found for {suggestion.item.name}")
    return links, products


def suggest_alternatives(
    duplicate_item: PoolItem,
    user_items: list[PoolItem],
    event_context: Optional[EventContext],
    context,
    budget: str = "all",
    with_products: bool = True,
    cancel_event: Optional[threading.Event] = None,
) -> list[Suggestion]:
    """Alternatives to a duplicated item, each with retailer links and products.

    An unreachable AI or an unusable reply gives an empty list.
    """
    event_context = event_context or EventContext()
    logger.info(f"[Suggest] Alternatives for {duplicate_item.name} ({len(user_items)} other items)")
    try:
        replies = context.ai.suggest_alternatives(duplicate_item, user_items, event_context)
    except (ProviderUnavailable, AIResponseInvalid) as e:
        logger.warning(f"[Suggest] No AI suggestions for {duplicate_item.name}: {e}")
        return []

    suggestions = []
    for reply in replies:
        if with_products:
            links, products = find_real_products(reply, context, budget=budget, cancel_event=cancel_event)
        else:
            links, products = search_links(reply, budget), []
        suggestions.append(Suggestion(suggestion=reply, search_links=links, products=products))
    return suggestions
