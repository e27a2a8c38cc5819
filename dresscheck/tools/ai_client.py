"""Anthropic adapter for product interpretation and duplicate adjudication.

Every call has an explicit timeout. Replies are asked to be JSON only, but
nothing is trusted: the first balanced JSON block is extracted and then
validated against the pydantic reply models.
"""

import json
import logging
import threading
import time
from typing import Any, Optional

import anthropic
from pydantic import ValidationError

from dresscheck.errors import AIResponseInvalid, ProviderUnavailable
from dresscheck.models.product import (
    AIProductReply,
    DuplicateVerdict,
    EventContext,
    PoolItem,
    SimilarityVerdict,
    SuggestionReply,
)
from dresscheck.normalizers.categories import all_categories
from dresscheck.normalizers.colors import PALETTE
from dresscheck.tools.json_extract import extract_json

logger = logging.getLogger(__name__)

KNOWN_BRANDS = (
    "Bimani", "Bruna", "Coosy", "Lady Pipa", "Redondo Brand", "Miphai",
    "Mariquita Trasquilá", "Vogana", "Matilde Cano", "Violeta Vergara",
    "Cayro Woman", "La Croixé", "Aware Barcelona", "Güendolina", "Mattui",
    "THE-ARE", "Mannit", "Mimoki", "Panambi", "Carolina Herrera", "Zara",
    "Mango", "Massimo Dutti", "Rosa Clará", "Bimba y Lola",
)


def _taxonomy_text() -> str:
    lines = []
    for category in all_categories():
        subs = ", ".join(sub.id for sub in category.subcategories)
        lines.append(f"- {category.id}: {subs}, other")
    return "\n".join(lines)


def _describe(item: PoolItem) -> str:
    type_name = item.type.display_name if item.type else "Unknown"
    category = item.type.category if item.type else "Unknown"
    return (
        f'"{item.name}"\n'
        f'   - Brand: "{item.brand or "Unknown"}"\n'
        f'   - Color: "{item.color or "Unknown"}"\n'
        f'   - Type: "{type_name}" ({category})'
    )


INTERPRET_PROMPT = """You are a fashion product analyzer. Extract and improve product details from the HTML of a retailer page.

RULES:
1. Categories and subcategories:
{taxonomy}
2. "vestido", "dress", "robe", "kleid" = clothes/dresses. "zapato", "shoe", "sandalia", "bota" = accessories/shoes. "bolso", "bag", "cartera" = accessories/bags.
3. Price is a number with "." as decimal separator: "45,95€" -> 45.95 (NOT 4595), "1.234,56€" -> 1234.56.
4. Color must be one of: {colors}

URL: {url}

Basic info already found:
{basic_info}

HTML (first {html_chars} characters):
{html}

Return ONLY a JSON object with these keys:
name, imageUrl (REQUIRED), color, price, brand, type (object with category and subcategory), description"""

DUPLICATE_PROMPT = """You are a fashion duplicate detector. Decide whether these items are the same product described differently.

RULES:
1. Same brand + same color + same type = PROBABLY DUPLICATE
2. Same item named in different languages = DUPLICATE ("Vestido Negro" = "Black Dress")
3. Different descriptions of the same item = DUPLICATE ("Vestido Formal" = "Formal Dress")
4. Different sizes of the same item = DUPLICATE

NEW ITEM:
{item}

EXISTING ITEMS TO COMPARE:
{candidates}

Return ONLY a JSON array, one entry per existing item:
[{{"itemIndex": 1, "confidence": 0.95, "isDuplicate": true, "reason": "Same black Carolina Herrera gown, different language"}}]"""

SIMILARITY_PROMPT = """You are a fashion similarity analyzer. Compare garment names to find items that could clash at the same event.

RULES:
1. Same kind of garment with different descriptions = SIMILAR
2. Same brand or style in different colors or sizes = SIMILAR
3. Different kinds of garment = NOT SIMILAR
4. Accessories vs clothes = NOT SIMILAR
5. Names may be in Spanish, English, French, German or Italian

NEW ITEM: "{name}"

EXISTING ITEMS:
{items}

Return ONLY a JSON array with similarity scores from 0.0 to 1.0:
[{{"itemIndex": 1, "similarity": 0.85, "reason": "Both are long dresses in the same style"}}]"""

IMAGE_PROMPT = """You are a fashion expert. Analyze this garment photo.

1. Product type, using these categories and subcategories:
{taxonomy}
2. Brand, if a logo or label is visible. Known brands: {brands}
3. The real color of the item (not the packaging), closest of: {colors}

Return ONLY a JSON object:
{{"name": "descriptive product name", "color": "palette color", "brand": "brand or null",
  "type": {{"category": "clothes or accessories", "subcategory": "..."}},
  "description": "detailed description", "confidence": 0.9}}"""

SUGGESTION_PROMPT = """You are a fashion stylist helping a guest avoid wearing the same thing as someone else at an event.

RULES:
1. Suggest 3-5 alternatives to the duplicated item
2. Suggest DIFFERENT items with a similar look, never the same item from another shop
3. Coordinate with the guest's other items for this event
4. Consider the event (formal, casual, daytime, evening)
5. Suggestion types: color_alternative, style_variation, complementary, alternative_style
6. Categories and subcategories:
{taxonomy}
7. Colors: {colors}

DUPLICATED ITEM (do NOT suggest this name):
{item}

GUEST'S OTHER ITEMS:
{user_items}

EVENT:
- Name: "{event_name}"
- Date: "{event_date}"
- Location: "{event_location}"
- Description: "{event_description}"

Return ONLY a JSON array:
[{{"type": "style_variation", "title": "Short title", "description": "Why this different item gives the same look",
   "item": {{"name": "Different item name", "category": "clothes", "subcategory": "dresses", "color": "palette color", "style": "style notes"}},
   "reasoning": "Why it works as an alternative", "searchTerms": ["search", "terms"], "priority": 5}}]"""

MAX_SUGGESTIONS = 5


class AIClient:
    """Thin wrapper around the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-20250514",
        timeout: float = 30.0,
        health_check_ttl: float = 300.0,
        health_check_timeout: float = 5.0,
        html_excerpt_chars: int = 1500,
        client: Optional[Any] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.health_check_ttl = health_check_ttl
        self.health_check_timeout = health_check_timeout
        self.html_excerpt_chars = html_excerpt_chars
        self._client = client
        self._last_healthy = 0.0
        self._lock = threading.Lock()
        self.calls = 0

        if self._client is None and api_key:
            self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=1)
            logger.info("Anthropic client initialized")

    @classmethod
    def from_settings(cls, settings) -> "AIClient":
        return cls(
            api_key=settings.anthropic_api_key,
            model=settings.ai_model,
            timeout=settings.ai_timeout,
            health_check_ttl=settings.health_check_ttl,
            health_check_timeout=settings.health_check_timeout,
            html_excerpt_chars=settings.html_excerpt_chars,
        )

    @property
    def available(self) -> bool:
        return self._client is not None

    def complete(self, content: Any, max_tokens: int = 1024, temperature: float = 0.3, timeout: Optional[float] = None) -> str:
        """Send one user message and return the reply text.

        Raises:
            ProviderUnavailable: on missing key, timeouts and API errors
        """
        if self._client is None:
            raise ProviderUnavailable("anthropic", "Missing ANTHROPIC_API_KEY")

        client = self._client
        if timeout is not None:
            client = client.with_options(timeout=timeout)

        with self._lock:
            self.calls += 1

        try:
            message = client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APITimeoutError as e:
            raise ProviderUnavailable("anthropic", f"Request timed out: {e}") from e
        except anthropic.APIStatusError as e:
            raise ProviderUnavailable("anthropic", f"API error: {e.status_code}", status_code=e.status_code) from e
        except anthropic.APIError as e:
            raise ProviderUnavailable("anthropic", str(e)) from e

        for block in message.content or []:
            if getattr(block, "type", None) == "text":
                return block.text
        raise AIResponseInvalid("AI response has no text content")

    def interpret_product(self, html: str, basic_info: dict, url: str) -> AIProductReply:
        """Turn an HTML excerpt plus partial fields into a product reply.

        Raises:
            AIResponseInvalid: when the reply has no JSON, or lacks name or image
            ProviderUnavailable: when the provider cannot be reached
        """
        prompt = INTERPRET_PROMPT.format(
            taxonomy=_taxonomy_text(),
            colors=", ".join(PALETTE),
            url=url,
            basic_info=json.dumps(basic_info, indent=2, ensure_ascii=False, default=str),
            html_chars=self.html_excerpt_chars,
            html=(html or "")[: self.html_excerpt_chars],
        )
        text = self.complete(prompt, max_tokens=1000)
        data = extract_json(text, expect=dict)

        try:
            reply = AIProductReply.model_validate(data)
        except ValidationError as e:
            raise AIResponseInvalid(f"Unexpected product shape: {e}", raw=text[:500]) from e

        if not reply.image_url and basic_info.get("imageUrl"):
            reply = reply.model_copy(update={"image_url": basic_info["imageUrl"]})
        if not reply.name or not reply.image_url:
            raise AIResponseInvalid("AI reply is missing name or imageUrl", raw=text[:500])

        logger.debug(f"AI interpreted product: {reply.name}")
        return reply

    def adjudicate_duplicates(self, item: PoolItem, candidates: list[PoolItem]) -> list[DuplicateVerdict]:
        """Score each candidate as a possible duplicate of ``item``."""
        listing = "\n".join(f"{index}. {_describe(candidate)}" for index, candidate in enumerate(candidates, start=1))
        prompt = DUPLICATE_PROMPT.format(item=_describe(item), candidates=listing)
        text = self.complete(prompt, max_tokens=1500, temperature=0.2)
        return self._parse_verdicts(text, DuplicateVerdict, len(candidates))

    def score_similarity(self, name: str, items: list[PoolItem]) -> list[SimilarityVerdict]:
        """Score how similar each item's name is to ``name``."""
        listing = "\n".join(f'{index}. "{item.name}"' for index, item in enumerate(items, start=1))
        prompt = SIMILARITY_PROMPT.format(name=name, items=listing)
        text = self.complete(prompt, max_tokens=2000, temperature=0.3)
        return self._parse_verdicts(text, SimilarityVerdict, len(items))

    def analyze_garment_image(self, media_type: str, data_b64: str) -> AIProductReply:
        """Describe a garment photo (base64 encoded) as a product reply."""
        prompt = IMAGE_PROMPT.format(
            taxonomy=_taxonomy_text(),
            brands=", ".join(KNOWN_BRANDS),
            colors=", ".join(PALETTE),
        )
        content = [
            {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": data_b64}},
            {"type": "text", "text": prompt},
        ]
        text = self.complete(content, max_tokens=1024)
        data = extract_json(text, expect=dict)
        try:
            reply = AIProductReply.model_validate(data)
        except ValidationError as e:
            raise AIResponseInvalid(f"Unexpected image analysis shape: {e}", raw=text[:500]) from e
        if not reply.name:
            raise AIResponseInvalid("Image analysis returned no name", raw=text[:500])
        return reply

    def suggest_alternatives(
        self,
        duplicate_item: PoolItem,
        user_items: list[PoolItem],
        event_context: EventContext,
    ) -> list[SuggestionReply]:
        """Propose different garments with a similar look, best first.

        Raises:
            AIResponseInvalid: when the reply holds no JSON array
            ProviderUnavailable: when the provider cannot be reached
        """
        listing = "\n".join(f"{index}. {_describe(item)}" for index, item in enumerate(user_items, start=1))
        prompt = SUGGESTION_PROMPT.format(
            taxonomy=_taxonomy_text(),
            colors=", ".join(PALETTE),
            item=_describe(duplicate_item),
            user_items=listing or "No other items",
            event_name=event_context.name or "Unknown",
            event_date=event_context.date or "Unknown",
            event_location=event_context.location or "Unknown",
            event_description=event_context.description or "None",
        )
        text = self.complete(prompt, max_tokens=2500, temperature=0.7)

        suggestions = []
        for entry in extract_json(text, expect=list):
            try:
                suggestions.append(SuggestionReply.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Dropping malformed AI suggestion {entry!r}: {e}")
        suggestions.sort(key=lambda suggestion: suggestion.priority, reverse=True)

        logger.info(f"AI suggested {len(suggestions)} alternatives to {duplicate_item.name}")
        return suggestions[:MAX_SUGGESTIONS]

    def _parse_verdicts(self, text: str, model: type, count: int) -> list:
        raw = extract_json(text, expect=list)
        verdicts = []
        for entry in raw:
            try:
                verdict = model.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Dropping malformed AI verdict {entry!r}: {e}")
                continue
            if verdict.item_index > count:
                logger.warning(f"Dropping AI verdict for unknown item {verdict.item_index}")
                continue
            verdicts.append(verdict)
        return verdicts

    def check_status(self) -> dict:
        """Report whether the provider is reachable; a healthy answer is cached."""
        if not self.api_key and self._client is None:
            return {"initialized": False, "has_api_key": False, "status": "unavailable", "error": "Missing API key"}

        with self._lock:
            if time.monotonic() - self._last_healthy < self.health_check_ttl and self._last_healthy:
                return {"initialized": True, "has_api_key": True, "status": "connected", "error": None}

        try:
            self.complete("Test", max_tokens=10, timeout=self.health_check_timeout)
        except (ProviderUnavailable, AIResponseInvalid) as e:
            logger.warning(f"Anthropic health check failed: {e}")
            return {"initialized": True, "has_api_key": True, "status": "limited", "error": str(e)}

        with self._lock:
            self._last_healthy = time.monotonic()
        return {"initialized": True, "has_api_key": True, "status": "connected", "error": None}
