"""Concurrent extraction across several URLs with partial-failure joins."""

import concurrent.futures
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from dresscheck.extraction.chain import extract_product
from dresscheck.models import ProductRecord

logger = logging.getLogger(__name__)

FULFILLED = "fulfilled"
REJECTED = "rejected"


@dataclass
class SettledResult:
    """Outcome of one branch of a fan-out; one failing branch never aborts the rest."""

    url: str
    status: str
    value: Optional[ProductRecord] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == FULFILLED


def extract_many(
    urls: list[str],
    context,
    max_workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> list[SettledResult]:
    """Extract every URL concurrently; results keep the input order."""
    if not urls:
        return []

    workers = max(1, min(max_workers or context.settings.max_workers, len(urls)))
    results: list[Optional[SettledResult]] = [None] * len(urls)

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(extract_product, url, context, cancel_event): index
            for index, url in enumerate(urls)
        }
        for future in concurrent.futures.as_completed(futures):
            index = futures[future]
            url = urls[index]
            try:
                results[index] = SettledResult(url=url, status=FULFILLED, value=future.result())
            except Exception as e:
                logger.warning(f"[Fanout] {url} failed: {e}")
                results[index] = SettledResult(url=url, status=REJECTED, error=e)

    fulfilled = sum(1 for result in results if result.ok)
    logger.info(f"[Fanout] {fulfilled}/{len(urls)} extractions succeeded")
    return results
