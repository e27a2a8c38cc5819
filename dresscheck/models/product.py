"""Data models for fashion products and duplicate matches."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchType(str, Enum):
    """How closely two items were judged to match."""

    EXACT = "exact"
    SIMILAR = "similar"
    PARTIAL = "partial"


class Price(BaseModel):
    """A parsed price."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., ge=0, description="Amount with '.' as decimal separator")
    currency: str = Field("EUR", description="ISO 4217 currency code")


class ProductType(BaseModel):
    """Category placement of a product in the fashion taxonomy."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(..., description="Top-level category id (clothes, accessories)")
    subcategory: str = Field("other", description="Subcategory id (dresses, shoes, ...)")
    display_name: str = Field("Other", description="Human readable subcategory name")


class ProductRecord(BaseModel):
    """Normalized product extracted from a retailer page or a photo.

    A record is only valid when both ``name`` and ``image_url`` are
    non-empty; every other field is best-effort.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Product name")
    image_url: str = Field(..., description="Main product image URL")
    price: Optional[Price] = Field(None, description="Parsed price")
    color: Optional[str] = Field(None, description="Canonical palette color")
    brand: Optional[str] = Field(None, description="Brand name")
    type: Optional[ProductType] = Field(None, description="Category placement")
    description: Optional[str] = Field(None, description="Product description")
    source_url: str = Field("", description="Normalized URL the record came from")

    @field_validator("name", "image_url")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        return value.strip()

    @property
    def is_valid(self) -> bool:
        return bool(self.name and self.image_url)


class PoolItem(BaseModel):
    """An item already registered for an event, as seen by the duplicate engine."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Identifier owned by the persistence layer")
    name: str = Field(..., description="Item name")
    brand: Optional[str] = Field(None, description="Brand name")
    color: Optional[str] = Field(None, description="Canonical palette color")
    type: Optional[ProductType] = Field(None, description="Category placement")
    owner: Optional[str] = Field(None, description="Display name of the participant")

    @classmethod
    def from_record(cls, item_id: str, record: ProductRecord, owner: Optional[str] = None) -> "PoolItem":
        return cls(
            id=item_id,
            name=record.name,
            brand=record.brand,
            color=record.color,
            type=record.type,
            owner=owner,
        )


class DuplicateCandidate(BaseModel):
    """A pair of items judged to describe the same garment."""

    item_a: PoolItem
    item_b: PoolItem
    match_type: MatchType
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str = ""


class SimilarCandidate(BaseModel):
    """A pool item that might interest the same wardrobe."""

    item: PoolItem
    similarity: float = Field(..., ge=0.0, le=1.0)
    reason: str = ""


class DuplicateGroup(BaseModel):
    """Items across an event that clash with each other."""

    name: str
    items: list[PoolItem]
    match_type: MatchType
    similarity: Optional[float] = None
    reason: str = ""


class AIProductReply(BaseModel):
    """Product fields returned by the AI interpreter; values are loosely typed."""

    name: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    color: Optional[str] = None
    price: Optional[Any] = None
    brand: Optional[str] = None
    type: Optional[Any] = None
    description: Optional[str] = None
    confidence: Optional[float] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DuplicateVerdict(BaseModel):
    """One entry of the AI duplicate adjudication array."""

    item_index: int = Field(..., alias="itemIndex", ge=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    is_duplicate: bool = Field(False, alias="isDuplicate")
    reason: str = ""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SimilarityVerdict(BaseModel):
    """One entry of the AI similarity scoring array."""

    item_index: int = Field(..., alias="itemIndex", ge=1)
    similarity: float = Field(..., ge=0.0, le=1.0)
    reason: str = ""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class EventContext(BaseModel):
    """The event a wardrobe is planned for."""

    name: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


class SuggestedItem(BaseModel):
    """The garment an alternative suggestion proposes."""

    name: str
    category: Optional[str] = None
    subcategory: Optional[str] = None
    color: Optional[str] = None
    style: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SuggestionReply(BaseModel):
    """One entry of the AI alternative-suggestions array."""

    type: str = ""
    title: str = ""
    description: str = ""
    item: SuggestedItem
    reasoning: str = ""
    search_terms: list[str] = Field(default_factory=list, alias="searchTerms")
    priority: float = 0.0

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SearchLink(BaseModel):
    """A retailer search page for a suggested item."""

    retailer: str
    url: str
    price_range: str


class Suggestion(BaseModel):
    """An alternative to a duplicate, with search links and products found for it."""

    suggestion: SuggestionReply
    search_links: list[SearchLink] = Field(default_factory=list)
    products: list[ProductRecord] = Field(default_factory=list)


@dataclass
class ExtractionAttempt:
    """Diagnostic record of one strategy run."""

    strategy_name: str
    succeeded: bool
    error: Optional[str] = None
    elapsed: float = 0.0
