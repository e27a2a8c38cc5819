"""Multilingual product type detection.

Detection order (first match wins):

1. ``OVERRIDES`` - bag words, then shoe words. Product names such as
   "bolso de piel con cadena" often also contain clothing words, so these
   two subcategories are checked before anything else.
2. ``TAXONOMY`` subcategories, in declaration order: clothes/tops,
   clothes/bottoms, clothes/dresses, clothes/outerwear,
   accessories/shoes, accessories/bags, accessories/jewelry.
3. ``CATEGORY_KEYWORDS`` - generic category words give
   ``{category, "other"}``.
4. Default ``clothes/other``.

Keywords are matched as whole words on accent-folded text, allowing a
plural "s"/"es" suffix.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dresscheck.models.product import ProductType
from dresscheck.normalizers.colors import fold


@dataclass(frozen=True)
class Subcategory:
    id: str
    name: str
    keywords: tuple[str, ...]


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    subcategories: tuple[Subcategory, ...]


TAXONOMY = (
    Category(
        id="clothes",
        name="Clothes",
        subcategories=(
            Subcategory(
                id="tops",
                name="Tops",
                keywords=(
                    "shirt", "blouse", "top", "t shirt", "tee", "sweater", "hoodie",
                    "sweatshirt", "tank", "polo", "bodysuit", "camisole", "corset",
                    "camiseta", "camisa", "blusa", "jersey", "sudadera", "body",
                    "chemise", "chemisier", "debardeur",
                    "hemd", "bluse", "pullover", "oberteil",
                    "camicia", "camicetta", "maglia", "maglione", "maglietta",
                ),
            ),
            Subcategory(
                id="bottoms",
                name="Bottoms",
                keywords=(
                    "pants", "trousers", "jeans", "shorts", "skirt", "leggings",
                    "joggers", "sweatpants", "slacks", "culottes",
                    "pantalon", "vaquero", "falda", "bermuda", "mallas",
                    "jupe",
                    "hose", "rock", "jeanshose",
                    "pantaloni", "gonna",
                ),
            ),
            Subcategory(
                id="dresses",
                name="Dresses",
                keywords=(
                    "dress", "gown", "frock", "sundress", "jumpsuit", "playsuit",
                    "vestido", "mono", "traje de fiesta",
                    "robe", "combinaison",
                    "kleid", "abendkleid",
                    "abito", "vestito",
                ),
            ),
            Subcategory(
                id="outerwear",
                name="Outerwear",
                keywords=(
                    "jacket", "coat", "blazer", "cardigan", "vest", "windbreaker",
                    "parka", "raincoat", "trench", "poncho", "cape",
                    "chaqueta", "abrigo", "cazadora", "chaleco", "gabardina", "americana",
                    "veste", "manteau", "blouson",
                    "jacke", "mantel", "weste",
                    "giacca", "cappotto", "giubbotto",
                ),
            ),
        ),
    ),
    Category(
        id="accessories",
        name="Accessories",
        subcategories=(
            Subcategory(
                id="shoes",
                name="Shoes",
                keywords=(
                    "shoe", "boot", "sneaker", "sandal", "heel", "flats", "loafer",
                    "oxford", "slipper", "mule", "pump", "espadrille",
                    "zapato", "zapatilla", "bota", "botin", "tacon", "sandalia",
                    "mocasin", "alpargata", "salon",
                    "chaussure", "botte", "escarpin",
                    "schuh", "schuhe", "stiefel", "sandale",
                    "scarpa", "scarpe", "stivale", "sandalo",
                ),
            ),
            Subcategory(
                id="bags",
                name="Bags",
                keywords=(
                    "bag", "purse", "handbag", "backpack", "tote", "clutch", "wallet",
                    "satchel", "crossbody",
                    "bolso", "cartera", "mochila", "bandolera", "bolsa", "capazo",
                    "sac", "pochette",
                    "tasche", "handtasche", "rucksack",
                    "borsa", "borsetta", "zaino",
                ),
            ),
            Subcategory(
                id="jewelry",
                name="Jewelry",
                keywords=(
                    "necklace", "bracelet", "ring", "earring", "pendant", "brooch",
                    "anklet", "choker",
                    "collar", "pulsera", "anillo", "pendiente", "broche", "gargantilla",
                    "collier", "bague", "boucle d oreille",
                    "halskette", "armband", "ohrring",
                    "collana", "bracciale", "anello", "orecchino",
                ),
            ),
        ),
    ),
)

# Checked before the taxonomy
OVERRIDES = ("bags", "shoes")

CATEGORY_KEYWORDS = {
    "clothes": (
        "clothing", "apparel", "garment", "ropa", "prenda", "vetement", "kleidung",
        "abbigliamento",
    ),
    "accessories": (
        "accessory", "accessories", "accesorio", "complemento", "accessoire", "accessorio",
        "belt", "scarf", "hat", "cap", "sunglasses", "gloves",
        "cinturon", "bufanda", "panuelo", "sombrero", "gorra", "gafas", "guantes",
        "ceinture", "echarpe", "chapeau", "gurtel", "schal", "hut", "cintura", "sciarpa",
    ),
}

DEFAULT_TYPE = ProductType(category="clothes", subcategory="other", display_name="Other")


@lru_cache(maxsize=None)
def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternatives})(?:e?s)?(?!\w)")


def _find_subcategory(sub_id: str) -> tuple[Category, Subcategory]:
    for category in TAXONOMY:
        for subcategory in category.subcategories:
            if subcategory.id == sub_id:
                return category, subcategory
    raise KeyError(sub_id)


def _matches(keywords: tuple[str, ...], text: str) -> bool:
    return bool(_keyword_pattern(keywords).search(text))


def detect_product_type(text: Optional[str]) -> ProductType:
    """Detect the category and subcategory of a product from its text."""
    if not text:
        return DEFAULT_TYPE
    folded = fold(text)
    if not folded:
        return DEFAULT_TYPE

    for sub_id in OVERRIDES:
        category, subcategory = _find_subcategory(sub_id)
        if _matches(subcategory.keywords, folded):
            return ProductType(category=category.id, subcategory=subcategory.id, display_name=subcategory.name)

    for category in TAXONOMY:
        for subcategory in category.subcategories:
            if _matches(subcategory.keywords, folded):
                return ProductType(category=category.id, subcategory=subcategory.id, display_name=subcategory.name)

    for category in TAXONOMY:
        if _matches(CATEGORY_KEYWORDS.get(category.id, ()), folded):
            return ProductType(category=category.id, subcategory="other", display_name=f"Other {category.name}")

    return DEFAULT_TYPE


def coerce_product_type(raw: Optional[dict], fallback_text: str = "") -> Optional[ProductType]:
    """Validate a loosely-typed ``{category, subcategory}`` dict against the taxonomy.

    Unknown combinations fall back to keyword detection on ``fallback_text``.
    """
    if isinstance(raw, dict):
        category_id = str(raw.get("category") or "").strip().lower()
        sub_id = str(raw.get("subcategory") or "").strip().lower()
        for category in TAXONOMY:
            if category.id != category_id:
                continue
            for subcategory in category.subcategories:
                if subcategory.id == sub_id:
                    return ProductType(category=category.id, subcategory=sub_id, display_name=subcategory.name)
            return ProductType(category=category.id, subcategory="other", display_name=f"Other {category.name}")
    if fallback_text:
        return detect_product_type(fallback_text)
    return None


def all_categories() -> tuple[Category, ...]:
    return TAXONOMY
