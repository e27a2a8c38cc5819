"""Field normalizers: price, color and product type."""

from dresscheck.normalizers.categories import DEFAULT_TYPE, coerce_product_type, detect_product_type
from dresscheck.normalizers.colors import PALETTE, canonicalize_color, find_color_in_text
from dresscheck.normalizers.price import parse_money, parse_price

__all__ = [
    "DEFAULT_TYPE",
    "PALETTE",
    "canonicalize_color",
    "coerce_product_type",
    "detect_product_type",
    "find_color_in_text",
    "parse_money",
    "parse_price",
]
