"""Product extraction: strategies, chain driver and fan-out."""

from dresscheck.extraction.chain import build_record, extract_product
from dresscheck.extraction.fanout import SettledResult, extract_many
from dresscheck.extraction.strategies import ExtractionStrategy, default_strategies

__all__ = [
    "ExtractionStrategy",
    "SettledResult",
    "build_record",
    "default_strategies",
    "extract_many",
    "extract_product",
]
