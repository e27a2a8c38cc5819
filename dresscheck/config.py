"""Runtime settings for the extraction and duplicate-detection pipeline.

All tunables are read once from the environment (optionally via a .env
file) and then treated as read-only for the life of the process.
"""

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class Settings:
    """Configuration for the DressCheck pipeline."""

    # AI provider
    anthropic_api_key: str = ""
    ai_model: str = "claude-sonnet-4-20250514"
    ai_timeout: float = 30.0
    health_check_ttl: float = 300.0
    health_check_timeout: float = 5.0
    html_excerpt_chars: int = 1500

    # Direct fetch
    fetch_timeout: float = 15.0
    fetch_retries: int = 3
    retry_delay: float = 1.0
    image_timeout: float = 10.0

    # Render proxy
    scrapingbee_api_key: str = ""
    render_country: str = "es"
    render_timeout: float = 15.0
    render_retries: int = 3
    render_budget: float = 90.0
    firecrawl_self_hosted_url: str = ""
    firecrawl_self_hosted_key: str = "local-dev-key"
    firecrawl_api_key: str = ""

    # Cache
    cache_dir: str = ""
    cache_ttl_hours: float = 24.0

    # Duplicate engine
    duplicate_threshold: float = 0.7
    exact_threshold: float = 0.9
    similar_threshold: float = 0.6
    max_similarity_pool: int = 25

    # Fan-out
    max_workers: int = 4

    log_level: str = "INFO"

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_hours * 3600

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            ai_model=os.getenv("DRESSCHECK_AI_MODEL", cls.ai_model),
            ai_timeout=_env_float("DRESSCHECK_AI_TIMEOUT", cls.ai_timeout),
            scrapingbee_api_key=os.getenv("SCRAPINGBEE_API_KEY", ""),
            render_country=os.getenv("DRESSCHECK_RENDER_COUNTRY", cls.render_country),
            firecrawl_self_hosted_url=os.getenv("FIRECRAWL_SELF_HOSTED_URL", ""),
            firecrawl_self_hosted_key=os.getenv("FIRECRAWL_SELF_HOSTED_KEY", "local-dev-key"),
            firecrawl_api_key=os.getenv("FIRECRAWL_API_KEY", ""),
            fetch_timeout=_env_float("DRESSCHECK_FETCH_TIMEOUT", cls.fetch_timeout),
            render_timeout=_env_float("DRESSCHECK_RENDER_TIMEOUT", cls.render_timeout),
            render_retries=_env_int("DRESSCHECK_RENDER_RETRIES", cls.render_retries),
            cache_dir=os.getenv("DRESSCHECK_CACHE_DIR", ""),
            cache_ttl_hours=_env_float("DRESSCHECK_CACHE_TTL_HOURS", cls.cache_ttl_hours),
            duplicate_threshold=_env_float("DRESSCHECK_DUPLICATE_THRESHOLD", cls.duplicate_threshold),
            exact_threshold=_env_float("DRESSCHECK_EXACT_THRESHOLD", cls.exact_threshold),
            similar_threshold=_env_float("DRESSCHECK_SIMILAR_THRESHOLD", cls.similar_threshold),
            log_level=os.getenv("DRESSCHECK_LOG_LEVEL", cls.log_level),
        )
