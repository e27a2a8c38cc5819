"""Duplicate and similarity detection."""

from dresscheck.duplicates.engine import DuplicateEngine, as_pool_item

__all__ = ["DuplicateEngine", "as_pool_item"]
