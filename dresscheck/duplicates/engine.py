"""Duplicate and similarity detection for items registered to an event.

Two stages keep AI cost bounded:

1. A rule-based prefilter keeps only pool items that share color with the
   new item and also share either brand or subcategory.
2. The AI adjudicator scores the survivors; verdicts are filtered by the
   configured confidence thresholds.

Detection is advisory. Provider failures are logged and produce an empty
result, never an exception, and such degraded results are not cached.
"""

import logging
from typing import Optional, Union

from rapidfuzz import fuzz

from dresscheck.cache import ResultCache, make_key
from dresscheck.config import Settings
from dresscheck.errors import AIAdjudicationUnavailable, AIResponseInvalid, ProviderUnavailable
from dresscheck.models import (
    DuplicateCandidate,
    DuplicateGroup,
    MatchType,
    PoolItem,
    ProductRecord,
    SimilarCandidate,
)
from dresscheck.tools.ai_client import AIClient

logger = logging.getLogger(__name__)

NEW_ITEM_ID = "new"


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _same(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive equality; two missing values never match."""
    return bool(_norm(a)) and _norm(a) == _norm(b)


def _subcategory(item: PoolItem) -> Optional[str]:
    return item.type.subcategory if item.type else None


def as_pool_item(item: Union[PoolItem, ProductRecord]) -> PoolItem:
    if isinstance(item, PoolItem):
        return item
    return PoolItem.from_record(NEW_ITEM_ID, item)


class DuplicateEngine:
    """Finds duplicates and look-alikes of an item within a pool."""

    def __init__(self, ai: AIClient, cache: Optional[ResultCache] = None, settings: Optional[Settings] = None):
        self.ai = ai
        self.cache = cache
        self.settings = settings or Settings()

    @classmethod
    def from_context(cls, context) -> "DuplicateEngine":
        return cls(ai=context.ai, cache=context.cache, settings=context.settings)

    # Stage 1

    def prefilter(self, item: PoolItem, pool: list[PoolItem]) -> list[PoolItem]:
        """(brand AND color) OR (subcategory AND color), case-insensitive."""
        selected = []
        for candidate in pool:
            if candidate.id == item.id:
                continue
            if not _same(item.color, candidate.color):
                continue
            if _same(item.brand, candidate.brand) or _same(_subcategory(item), _subcategory(candidate)):
                selected.append(candidate)
        return selected

    # Stage 2

    def _adjudicate(self, item: PoolItem, candidates: list[PoolItem]) -> list[DuplicateCandidate]:
        if not self.ai.available:
            raise AIAdjudicationUnavailable("AI provider not configured")
        try:
            verdicts = self.ai.adjudicate_duplicates(item, candidates)
        except (ProviderUnavailable, AIResponseInvalid) as e:
            raise AIAdjudicationUnavailable(str(e)) from e

        best: dict[int, DuplicateCandidate] = {}
        for verdict in verdicts:
            if not verdict.is_duplicate or verdict.confidence < self.settings.duplicate_threshold:
                continue
            match_type = MatchType.EXACT if verdict.confidence >= self.settings.exact_threshold else MatchType.SIMILAR
            duplicate = DuplicateCandidate(
                item_a=item,
                item_b=candidates[verdict.item_index - 1],
                match_type=match_type,
                confidence=verdict.confidence,
                reason=verdict.reason,
            )
            previous = best.get(verdict.item_index)
            if previous is None or previous.confidence < duplicate.confidence:
                best[verdict.item_index] = duplicate

        return sorted(best.values(), key=lambda d: d.confidence, reverse=True)

    def find_duplicates(self, item: Union[PoolItem, ProductRecord], pool: list[PoolItem]) -> list[DuplicateCandidate]:
        """Pool items the AI judges to be the same garment as ``item``.

        Returns an empty list when nothing passes the prefilter or when the
        AI stage is unavailable.
        """
        item = as_pool_item(item)
        candidates = self.prefilter(item, pool)
        logger.info(f"[Duplicates] {len(candidates)}/{len(pool)} candidates for '{item.name}' passed prefilter")
        if not candidates:
            return []

        key = make_key("duplicates", item, candidates)
        if self.cache is not None:
            hit = self.cache.get(key)
            if hit is not None:
                logger.debug(f"[Duplicates] Cache hit for '{item.name}'")
                return [DuplicateCandidate.model_validate(entry) for entry in hit]

        try:
            duplicates = self._adjudicate(item, candidates)
        except AIAdjudicationUnavailable as e:
            logger.warning(f"[Duplicates] Adjudication unavailable for '{item.name}': {e}")
            return []

        if self.cache is not None:
            self.cache.set(key, duplicates)
        logger.info(f"[Duplicates] {len(duplicates)} duplicates found for '{item.name}'")
        return duplicates

    # Similarity

    def similarity_pool(self, item: PoolItem, pool: list[PoolItem]) -> list[PoolItem]:
        """Pool minus exact name matches, capped to the closest names."""
        name = _norm(item.name)
        others = [candidate for candidate in pool if candidate.id != item.id and _norm(candidate.name) != name]
        limit = self.settings.max_similarity_pool
        if len(others) <= limit:
            return others

        ranked = sorted(
            others,
            key=lambda candidate: fuzz.token_set_ratio(name, _norm(candidate.name)),
            reverse=True,
        )
        logger.debug(f"[Similar] Pool of {len(others)} capped to {limit} closest names")
        return ranked[:limit]

    def _score(self, item: PoolItem, others: list[PoolItem]) -> list[SimilarCandidate]:
        if not self.ai.available:
            raise AIAdjudicationUnavailable("AI provider not configured")
        try:
            verdicts = self.ai.score_similarity(item.name, others)
        except (ProviderUnavailable, AIResponseInvalid) as e:
            raise AIAdjudicationUnavailable(str(e)) from e

        similar: dict[int, SimilarCandidate] = {}
        for verdict in verdicts:
            if verdict.similarity < self.settings.similar_threshold:
                continue
            previous = similar.get(verdict.item_index)
            if previous is None or previous.similarity < verdict.similarity:
                similar[verdict.item_index] = SimilarCandidate(
                    item=others[verdict.item_index - 1],
                    similarity=verdict.similarity,
                    reason=verdict.reason,
                )
        return sorted(similar.values(), key=lambda s: s.similarity, reverse=True)

    def find_similar(self, item: Union[PoolItem, ProductRecord], pool: list[PoolItem]) -> list[SimilarCandidate]:
        """Pool items whose names suggest a similar garment. Never raises."""
        item = as_pool_item(item)
        others = self.similarity_pool(item, pool)
        if not others:
            return []

        key = make_key("similar", item.name, others)
        if self.cache is not None:
            hit = self.cache.get(key)
            if hit is not None:
                logger.debug(f"[Similar] Cache hit for '{item.name}'")
                return [SimilarCandidate.model_validate(entry) for entry in hit]

        try:
            similar = self._score(item, others)
        except AIAdjudicationUnavailable as e:
            logger.warning(f"[Similar] Similarity scoring unavailable for '{item.name}': {e}")
            return []

        if self.cache is not None:
            self.cache.set(key, similar)
        return similar

    # Event sweep

    def find_event_duplicates(self, items: list[PoolItem]) -> list[DuplicateGroup]:
        """All clashes within an event.

        Items sharing a name are grouped by color: same color gives an
        ``exact`` group, several colors add one ``partial`` group. Each item
        is also compared against the items after it for ``similar`` pairs.
        """
        groups: list[DuplicateGroup] = []
        grouped_names: set[str] = set()

        for index, current in enumerate(items):
            remaining = items[index + 1:]
            name = _norm(current.name)

            if name not in grouped_names:
                same_name = [other for other in remaining if _norm(other.name) == name]
                if same_name:
                    grouped_names.add(name)
                    groups.extend(self._name_groups(current, same_name))

            for match in self.find_similar(current, remaining):
                groups.append(
                    DuplicateGroup(
                        name=f"{current.name} / {match.item.name}",
                        items=[current, match.item],
                        match_type=MatchType.SIMILAR,
                        similarity=match.similarity,
                        reason=match.reason,
                    )
                )

        logger.info(f"[Duplicates] Event sweep over {len(items)} items found {len(groups)} groups")
        return groups

    def _name_groups(self, current: PoolItem, same_name: list[PoolItem]) -> list[DuplicateGroup]:
        everyone = [current, *same_name]
        by_color: dict[str, list[PoolItem]] = {}
        for item in everyone:
            by_color.setdefault(_norm(item.color) or "unknown", []).append(item)

        groups = [
            DuplicateGroup(name=current.name, items=members, match_type=MatchType.EXACT)
            for members in by_color.values()
            if len(members) > 1
        ]
        if len(by_color) > 1:
            groups.append(DuplicateGroup(name=current.name, items=everyone, match_type=MatchType.PARTIAL))
        return groups
