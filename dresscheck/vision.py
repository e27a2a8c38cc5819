"""Product records from garment photos.

Accepts either a ``data:`` URL (an upload) or a remote image URL, asks the
AI client to describe the garment and normalizes the reply like any
scraped product. Replies are cached by a hash of the image bytes, so the
same photo uploaded twice costs one AI call.
"""

import base64
import binascii
import logging
import re

from dresscheck.cache import cached_call, hash_bytes, make_key
from dresscheck.errors import InvalidUrl
from dresscheck.models import AIProductReply, ProductRecord
from dresscheck.normalizers import canonicalize_color, coerce_product_type, detect_product_type, parse_money
from dresscheck.retailers.profiles import DEFAULT_HEADERS
from dresscheck.retailers.url import normalize_url
from dresscheck.tools.html_fields import clean_text

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.-]+)*;base64,(?P<data>.*)$", re.DOTALL)

SUPPORTED_MEDIA_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


def decode_data_url(image: str) -> tuple[bytes, str]:
    """Split a base64 data URL into (bytes, media type)."""
    match = _DATA_URL_RE.match(image.strip())
    if not match:
        raise InvalidUrl("Image data URL must be base64 encoded")
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise InvalidUrl(f"Invalid base64 image data: {e}") from e
    return data, match.group("mime") or "image/jpeg"


def load_image(image: str, context) -> tuple[bytes, str, str]:
    """Return (bytes, media type, image url to keep on the record)."""
    if image.strip().startswith("data:"):
        data, media_type = decode_data_url(image)
        return data, media_type, image.strip()

    url = normalize_url(image)
    data, media_type = context.fetcher.fetch_bytes(
        url,
        headers=DEFAULT_HEADERS,
        timeout=context.settings.image_timeout,
    )
    return data, media_type, url


def analyze_image(image: str, context) -> ProductRecord:
    """Describe a garment photo as a normalized ProductRecord.

    Raises:
        InvalidUrl: for a malformed data URL or remote URL
        ProviderUnavailable: when the image cannot be downloaded or the AI is unreachable
        AIResponseInvalid: when the AI reply cannot be used
    """
    data, media_type, image_url = load_image(image, context)
    if not data:
        raise InvalidUrl("Image is empty")
    if media_type not in SUPPORTED_MEDIA_TYPES:
        logger.debug(f"Unusual media type {media_type}, sending as image/jpeg")
        media_type = "image/jpeg"

    digest = hash_bytes(data)
    logger.info(f"Analyzing garment image {digest[:12]} ({len(data)} bytes)")
    reply = cached_call(
        context.cache,
        make_key("image", digest),
        lambda: context.ai.analyze_garment_image(media_type, base64.b64encode(data).decode("ascii")),
        decode=AIProductReply.model_validate,
    )

    name = clean_text(reply.name) or "Unnamed garment"
    product_type = coerce_product_type(reply.type, fallback_text=name) if isinstance(reply.type, dict) else None
    return ProductRecord(
        name=name,
        image_url=image_url,
        price=parse_money(reply.price),
        color=canonicalize_color(reply.color),
        brand=clean_text(reply.brand),
        type=product_type or detect_product_type(f"{name} {reply.description or ''}"),
        description=clean_text(reply.description),
        source_url="" if image_url.startswith("data:") else image_url,
    )
