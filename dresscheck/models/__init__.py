"""Data models for DressCheck."""

from dresscheck.models.product import (
    AIProductReply,
    DuplicateCandidate,
    DuplicateGroup,
    DuplicateVerdict,
    EventContext,
    ExtractionAttempt,
    MatchType,
    PoolItem,
    Price,
    ProductRecord,
    ProductType,
    SearchLink,
    SimilarCandidate,
    SimilarityVerdict,
    SuggestedItem,
    Suggestion,
    SuggestionReply,
)

__all__ = [
    "AIProductReply",
    "DuplicateCandidate",
    "DuplicateGroup",
    "DuplicateVerdict",
    "EventContext",
    "ExtractionAttempt",
    "MatchType",
    "PoolItem",
    "Price",
    "ProductRecord",
    "ProductType",
    "SearchLink",
    "SimilarCandidate",
    "SimilarityVerdict",
    "SuggestedItem",
    "Suggestion",
    "SuggestionReply",
]
