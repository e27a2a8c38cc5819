"""Hostname -> RetailerProfile lookup."""

import logging
from typing import Iterable, Optional

from dresscheck.retailers.profiles import DEFAULT_HEADERS, PROFILES, RetailerProfile, generic_profile
from dresscheck.retailers.url import hostname

logger = logging.getLogger(__name__)


class RetailerRegistry:
    """Read-only registry of retailer profiles, built once at startup."""

    def __init__(self, profiles: Iterable[RetailerProfile] = PROFILES):
        self._by_domain: dict[str, RetailerProfile] = {}
        for profile in profiles:
            for domain in profile.domains:
                self._by_domain[domain.lower().removeprefix("www.")] = profile

    @property
    def domains(self) -> list[str]:
        return sorted(self._by_domain)

    def match(self, host: str) -> Optional[RetailerProfile]:
        """Most specific profile whose domain is the host or a parent of it."""
        host = host.lower().removeprefix("www.")
        best: Optional[str] = None
        for domain in self._by_domain:
            if host == domain or host.endswith("." + domain):
                if best is None or len(domain) > len(best):
                    best = domain
        return self._by_domain[best] if best else None

    def lookup(self, url: str) -> RetailerProfile:
        """Profile for a normalized URL, falling back to the generic profile."""
        host = hostname(url)
        profile = self.match(host)
        if profile:
            logger.debug(f"Retailer profile for {host}: {profile.name}")
            return profile
        logger.debug(f"No retailer profile for {host}, using generic selectors")
        return generic_profile(host)

    @staticmethod
    def headers_for(profile: RetailerProfile) -> dict:
        """Default browser headers merged with the profile's own headers."""
        return {**DEFAULT_HEADERS, **profile.headers}
