"""URL validation and cleanup for product links pasted by users."""

import logging
import re
import string
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from dresscheck.errors import BlockedDomain, InvalidProtocol, InvalidUrl

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = {"http", "https"}

BLOCKED_DOMAINS = (
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "::1",
    "example.com",
    "facebook.com",
    "instagram.com",
    "tiktok.com",
    "twitter.com",
    "x.com",
    "pinterest.com",
    "youtube.com",
)

TRACKING_PREFIXES = ("utm_", "ga_", "_ga")
TRACKING_PARAMS = {
    "fbclid",
    "gclid",
    "dclid",
    "msclkid",
    "ref",
    "sid",
    "session",
    "sessionid",
    "token",
    "igshid",
    "mc_cid",
    "mc_eid",
    "_hsenc",
    "yclid",
}

_SCHEME_RE = re.compile(r"^([a-z][a-z0-9+.-]*)://", re.IGNORECASE)
_OPAQUE_SCHEME_RE = re.compile(r"^(javascript|mailto|data|file|tel|ftp|blob|about):", re.IGNORECASE)
_HOST_RE = re.compile(r"^[a-z0-9.-]+$|^[0-9a-f:]+$")


def is_tracking_param(key: str) -> bool:
    key = key.lower()
    return key in TRACKING_PARAMS or key.startswith(TRACKING_PREFIXES)


def is_blocked_host(host: str) -> bool:
    host = host.lower().rstrip(".")
    return any(host == domain or host.endswith("." + domain) for domain in BLOCKED_DOMAINS)


def normalize_url(raw: str) -> str:
    """Validate and clean a product URL.

    Adds ``https://`` when no scheme is given, rejects non-http(s) schemes
    and blacklisted hosts, strips tracking parameters, forces https and
    drops fragments and trailing slashes. Idempotent.

    Raises:
        InvalidProtocol: for schemes other than http/https
        BlockedDomain: for social media, loopback and placeholder hosts
        InvalidUrl: for anything else that is not a usable URL
    """
    if raw is None:
        raise InvalidUrl("URL is required")
    text = str(raw).strip()
    if not text:
        raise InvalidUrl("URL is required")

    scheme_match = _SCHEME_RE.match(text)
    if scheme_match:
        if scheme_match.group(1).lower() not in ALLOWED_SCHEMES:
            raise InvalidProtocol(f"Unsupported protocol: {scheme_match.group(1)}")
    elif _OPAQUE_SCHEME_RE.match(text):
        raise InvalidProtocol(f"Unsupported protocol: {text.split(':', 1)[0]}")
    else:
        text = "https://" + text.lstrip("/")

    try:
        parts = urlsplit(text)
        port = parts.port
    except ValueError as e:
        raise InvalidUrl(f"Malformed URL: {e}") from e

    host = (parts.hostname or "").lower().rstrip(".")
    if not host or not _HOST_RE.match(host):
        raise InvalidUrl(f"Invalid host in URL: {raw!r}")
    if is_blocked_host(host):
        raise BlockedDomain(host)

    netloc = f"[{host}]" if ":" in host else host
    if port and port not in (80, 443):
        netloc = f"{netloc}:{port}"

    path = parts.path.rstrip("/" + string.whitespace)

    query_pairs = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not is_tracking_param(key)
    ]
    query = urlencode(query_pairs)

    cleaned = urlunsplit(("https", netloc, path, query, ""))
    if cleaned != text:
        logger.debug(f"Normalized URL {raw!r} -> {cleaned!r}")
    return cleaned


def hostname(url: str) -> str:
    """Lower-cased host of a URL without a leading ``www.``."""
    host = (urlsplit(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host
