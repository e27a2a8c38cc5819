"""Retailer profiles, URL normalization and registry."""

from dresscheck.retailers.profiles import ExtractionMode, FieldSelectors, RetailerProfile
from dresscheck.retailers.registry import RetailerRegistry
from dresscheck.retailers.url import normalize_url

__all__ = [
    "ExtractionMode",
    "FieldSelectors",
    "RetailerProfile",
    "RetailerRegistry",
    "normalize_url",
]
