"""Exception hierarchy for the DressCheck pipeline."""

from typing import Optional


class DressCheckError(Exception):
    """Base class for all pipeline errors."""


class InvalidUrl(DressCheckError):
    """The input could not be turned into a fetchable product URL."""


class InvalidProtocol(InvalidUrl):
    """The URL uses a scheme other than http/https."""


class BlockedDomain(InvalidUrl):
    """The URL points at a blacklisted host (social media, loopback, ...)."""

    def __init__(self, host: str):
        super().__init__(f"Domain not allowed: {host}")
        self.host = host


class ExtractionError(DressCheckError):
    """Base class for extraction chain failures."""


class StrategyError(ExtractionError):
    """Raised inside a strategy; the chain driver logs it and moves on."""


class ExtractionCancelled(ExtractionError):
    """The caller abandoned the extraction."""


class ExtractionFailed(ExtractionError):
    """Every strategy in the chain was exhausted."""

    def __init__(self, url: str, attempts: list):
        self.url = url
        self.attempts = list(attempts)
        summary = "; ".join(
            f"{a.strategy_name}: {a.error or 'invalid candidate'}" for a in self.attempts
        )
        super().__init__(f"Could not extract product from {url} ({summary or 'no strategies ran'})")


class ProviderUnavailable(DressCheckError):
    """Network, timeout, auth or rate limit failure against an external provider."""

    def __init__(self, provider: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"{provider} unavailable: {reason}")
        self.provider = provider
        self.reason = reason
        self.status_code = status_code


class AIResponseInvalid(DressCheckError):
    """The AI reply held no usable JSON or missed required fields."""

    def __init__(self, reason: str, raw: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.raw = raw


class AIAdjudicationUnavailable(DressCheckError):
    """Duplicate adjudication could not run; callers degrade to an empty result."""
