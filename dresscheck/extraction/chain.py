"""Extraction strategy chain driver.

``extract_product`` normalizes the URL, looks up the retailer profile and
then runs the strategies one after another until one produces a valid
record (non-empty name and image). Each strategy's outcome is kept as an
``ExtractionAttempt`` for logging and for ``ExtractionFailed``.
"""

import logging
import re
import threading
import time
from typing import Optional

from dresscheck.cache import cached_call, make_key
from dresscheck.errors import (
    AIResponseInvalid,
    ExtractionCancelled,
    ExtractionFailed,
    ProviderUnavailable,
)
from dresscheck.extraction.page import PageSession
from dresscheck.extraction.strategies import ExtractionStrategy, default_strategies, url_slug_text
from dresscheck.models import ExtractionAttempt, ProductRecord
from dresscheck.normalizers import (
    DEFAULT_TYPE,
    canonicalize_color,
    coerce_product_type,
    detect_product_type,
    find_color_in_text,
    parse_money,
)
from dresscheck.retailers.profiles import RetailerProfile
from dresscheck.retailers.url import normalize_url
from dresscheck.tools.html_fields import BasicInfo, best_image, clean_text
from dresscheck.tools.http_fetcher import check_cancelled

logger = logging.getLogger(__name__)

_TITLE_SUFFIX_RE = re.compile(r"\s+\|\s+.*$")


def clean_name(name: Optional[str]) -> Optional[str]:
    """Drop ``" | Shop name"`` style suffixes page titles carry."""
    name = clean_text(name)
    if not name:
        return None
    stripped = _TITLE_SUFFIX_RE.sub("", name).strip()
    return stripped or name


def resolve_type(info: BasicInfo, name: str):
    """Taxonomy placement from an explicit type, else keyword detection."""
    if isinstance(info.product_type, dict):
        coerced = coerce_product_type(info.product_type, fallback_text=name)
        if coerced is not None:
            return coerced

    detected = detect_product_type(name)
    if detected == DEFAULT_TYPE and info.description:
        detected = detect_product_type(f"{name} {info.description}")
    return detected


def resolve_color(info: BasicInfo, name: str, url: str) -> Optional[str]:
    color = canonicalize_color(info.color)
    if color:
        return color
    for text in (name, info.description, url_slug_text(url)):
        found = find_color_in_text(text)
        if found:
            return found
    return None


def build_record(info: BasicInfo, url: str, profile: RetailerProfile) -> Optional[ProductRecord]:
    """Normalize raw fields into a record; None when name or image is missing."""
    name = clean_name(info.name)
    image_url = best_image(info.images) or info.image_url
    if not name or not image_url:
        return None

    return ProductRecord(
        name=name,
        image_url=image_url,
        price=parse_money(info.price, profile.default_currency, info.currency),
        color=resolve_color(info, name, url),
        brand=clean_text(info.brand) or profile.default_brand,
        type=resolve_type(info, name),
        description=clean_text(info.description),
        source_url=url,
    )


def needs_enrichment(record: ProductRecord) -> bool:
    return not record.brand or not record.color or record.type is None or record.type == DEFAULT_TYPE


def enrich_record(record: ProductRecord, page: PageSession) -> ProductRecord:
    """Ask the AI for brand, color or category the page did not give us.

    Only missing fields are filled; a failed AI call leaves the record as is.
    """
    ai = page.context.ai
    if not ai.available or not needs_enrichment(record):
        return record

    basic = page.partial.to_dict()
    basic.update({"name": record.name, "imageUrl": record.image_url})
    try:
        reply = ai.interpret_product(page.best_available_html(), basic, page.url)
    except (AIResponseInvalid, ProviderUnavailable) as e:
        logger.warning(f"AI enrichment skipped for {page.url}: {e}")
        return record

    updates = {}
    if not record.brand and reply.brand:
        updates["brand"] = clean_text(reply.brand)
    if not record.color and reply.color:
        updates["color"] = canonicalize_color(reply.color)
    if (record.type is None or record.type == DEFAULT_TYPE) and isinstance(reply.type, dict):
        coerced = coerce_product_type(reply.type)
        if coerced is not None:
            updates["type"] = coerced

    if updates:
        logger.info(f"AI enriched {sorted(updates)} for {record.name}")
        return record.model_copy(update=updates)
    return record


def run_chain(
    url: str,
    profile: RetailerProfile,
    context,
    strategies: list[ExtractionStrategy],
    cancel_event: Optional[threading.Event] = None,
) -> ProductRecord:
    """Try each strategy in order and return the first valid record."""
    page = PageSession(url, profile, context, cancel_event)
    attempts: list[ExtractionAttempt] = []

    for strategy in strategies:
        check_cancelled(cancel_event)
        if not strategy.applies(page):
            logger.debug(f"Skipping {strategy.name} for {url}")
            continue

        started = time.monotonic()
        try:
            info = strategy.attempt(url, page)
        except ExtractionCancelled:
            raise
        except Exception as e:
            elapsed = time.monotonic() - started
            attempts.append(ExtractionAttempt(strategy.name, False, str(e), elapsed))
            logger.warning(f"[{strategy.name}] failed for {url} after {elapsed:.1f}s: {e}")
            continue

        page.partial = page.partial.merge(info)
        record = build_record(info, url, profile)
        elapsed = time.monotonic() - started
        if record is None:
            attempts.append(ExtractionAttempt(strategy.name, False, "missing name or image", elapsed))
            logger.info(f"[{strategy.name}] no valid candidate for {url}")
            continue

        attempts.append(ExtractionAttempt(strategy.name, True, None, elapsed))
        logger.info(f"[{strategy.name}] extracted '{record.name}' from {url} in {elapsed:.1f}s")
        if strategy.name != "ai_interpretation":
            check_cancelled(cancel_event)
            record = enrich_record(record, page)
        return record

    logger.error(f"All extraction strategies failed for {url}")
    raise ExtractionFailed(url, attempts)


def extract_product(
    url: str,
    context,
    cancel_event: Optional[threading.Event] = None,
    strategies: Optional[list[ExtractionStrategy]] = None,
) -> ProductRecord:
    """Extract a normalized product record from a retailer URL.

    Args:
        url: Raw product URL as typed or pasted by the user
        context: PipelineContext with fetcher, renderer, AI client and cache
        cancel_event: Set by the caller to abandon the extraction
        strategies: Override the default strategy order (tests)

    Returns:
        A valid ProductRecord

    Raises:
        InvalidUrl: when the URL is malformed, not http(s) or blocked
        ExtractionFailed: when every strategy failed
        ExtractionCancelled: when ``cancel_event`` was set
    """
    normalized = normalize_url(url)
    profile = context.registry.lookup(normalized)
    logger.info(f"Extracting {normalized} with profile '{profile.name}'")

    return cached_call(
        context.cache,
        make_key("product", normalized),
        lambda: run_chain(normalized, profile, context, strategies or default_strategies(), cancel_event),
        decode=ProductRecord.model_validate,
    )
