"""Multilingual color canonicalization.

Every color string coming from a retailer page, an AI reply or a user
is mapped onto one name of ``PALETTE``. Color words are recognised in
English, Spanish, French, German and Italian.
"""

import logging
import re
import unicodedata
from typing import Optional

logger = logging.getLogger(__name__)

PALETTE = (
    "Black",
    "White",
    "Gray",
    "Silver",
    "Gold",
    "Bronze",
    "Beige",
    "Cream",
    "Ivory",
    "Nude",
    "Camel",
    "Khaki",
    "Brown",
    "Red",
    "Burgundy",
    "Maroon",
    "Coral",
    "Orange",
    "Mustard",
    "Yellow",
    "Green",
    "Olive",
    "Emerald",
    "Mint",
    "Teal",
    "Turquoise",
    "Blue",
    "Light Blue",
    "Navy Blue",
    "Purple",
    "Lilac",
    "Lavender",
    "Pink",
    "Fuchsia",
    "Multicolor",
    "Animal Print",
    "Leopard Print",
    "Tiger Print",
    "Snake Print",
    "Zebra Print",
)

# Accent-folded, lower-case color words -> palette name
COLOR_WORDS = {
    # English
    "black": "Black",
    "white": "White",
    "off white": "Ivory",
    "gray": "Gray",
    "grey": "Gray",
    "charcoal": "Gray",
    "silver": "Silver",
    "gold": "Gold",
    "golden": "Gold",
    "bronze": "Bronze",
    "copper": "Bronze",
    "beige": "Beige",
    "sand": "Beige",
    "stone": "Beige",
    "taupe": "Beige",
    "cream": "Cream",
    "ecru": "Cream",
    "ivory": "Ivory",
    "nude": "Nude",
    "camel": "Camel",
    "khaki": "Khaki",
    "brown": "Brown",
    "chocolate": "Brown",
    "red": "Red",
    "scarlet": "Red",
    "burgundy": "Burgundy",
    "wine": "Burgundy",
    "maroon": "Maroon",
    "coral": "Coral",
    "orange": "Orange",
    "mustard": "Mustard",
    "yellow": "Yellow",
    "green": "Green",
    "olive": "Olive",
    "emerald": "Emerald",
    "mint": "Mint",
    "teal": "Teal",
    "turquoise": "Turquoise",
    "blue": "Blue",
    "light blue": "Light Blue",
    "sky blue": "Light Blue",
    "baby blue": "Light Blue",
    "navy": "Navy Blue",
    "navy blue": "Navy Blue",
    "dark blue": "Navy Blue",
    "purple": "Purple",
    "violet": "Purple",
    "lilac": "Lilac",
    "lavender": "Lavender",
    "pink": "Pink",
    "hot pink": "Fuchsia",
    "fuchsia": "Fuchsia",
    "magenta": "Fuchsia",
    "multicolor": "Multicolor",
    "multicolour": "Multicolor",
    "animal print": "Animal Print",
    "leopard": "Leopard Print",
    "leopard print": "Leopard Print",
    "tiger": "Tiger Print",
    "tiger print": "Tiger Print",
    "snake": "Snake Print",
    "snake print": "Snake Print",
    "python": "Snake Print",
    "zebra": "Zebra Print",
    "zebra print": "Zebra Print",
    # Spanish
    "negro": "Black",
    "negra": "Black",
    "blanco": "White",
    "blanca": "White",
    "blanco roto": "Ivory",
    "gris": "Gray",
    "plateado": "Silver",
    "plata": "Silver",
    "dorado": "Gold",
    "dorada": "Gold",
    "oro": "Gold",
    "bronce": "Bronze",
    "arena": "Beige",
    "crudo": "Cream",
    "crema": "Cream",
    "marfil": "Ivory",
    "caqui": "Khaki",
    "marron": "Brown",
    "rojo": "Red",
    "roja": "Red",
    "burdeos": "Burgundy",
    "granate": "Maroon",
    "naranja": "Orange",
    "mostaza": "Mustard",
    "amarillo": "Yellow",
    "amarilla": "Yellow",
    "verde": "Green",
    "oliva": "Olive",
    "esmeralda": "Emerald",
    "menta": "Mint",
    "turquesa": "Turquoise",
    "azul": "Blue",
    "azul claro": "Light Blue",
    "celeste": "Light Blue",
    "azul cielo": "Light Blue",
    "marino": "Navy Blue",
    "azul marino": "Navy Blue",
    "azul oscuro": "Navy Blue",
    "morado": "Purple",
    "morada": "Purple",
    "malva": "Lilac",
    "lila": "Lilac",
    "lavanda": "Lavender",
    "rosa": "Pink",
    "rosa palo": "Pink",
    "fucsia": "Fuchsia",
    "estampado animal": "Animal Print",
    "leopardo": "Leopard Print",
    "tigre": "Tiger Print",
    "serpiente": "Snake Print",
    "cebra": "Zebra Print",
    # French
    "noir": "Black",
    "noire": "Black",
    "blanc": "White",
    "blanche": "White",
    "argent": "Silver",
    "argente": "Silver",
    "dore": "Gold",
    "doree": "Gold",
    "creme": "Cream",
    "ivoire": "Ivory",
    "rouge": "Red",
    "bordeaux": "Burgundy",
    "jaune": "Yellow",
    "vert": "Green",
    "verte": "Green",
    "kaki": "Khaki",
    "bleu": "Blue",
    "bleue": "Blue",
    "bleu clair": "Light Blue",
    "bleu marine": "Navy Blue",
    "rose": "Pink",
    # German
    "schwarz": "Black",
    "weiss": "White",
    "grau": "Gray",
    "silber": "Silver",
    "elfenbein": "Ivory",
    "braun": "Brown",
    "rot": "Red",
    "weinrot": "Burgundy",
    "gelb": "Yellow",
    "grun": "Green",
    "oliv": "Olive",
    "blau": "Blue",
    "hellblau": "Light Blue",
    "dunkelblau": "Navy Blue",
    "marineblau": "Navy Blue",
    # Italian
    "nero": "Black",
    "nera": "Black",
    "bianco": "White",
    "bianca": "White",
    "grigio": "Gray",
    "argento": "Silver",
    "avorio": "Ivory",
    "marrone": "Brown",
    "rosso": "Red",
    "rossa": "Red",
    "arancione": "Orange",
    "giallo": "Yellow",
    "verde oliva": "Olive",
    "blu": "Blue",
    "azzurro": "Light Blue",
    "blu navy": "Navy Blue",
    "blu scuro": "Navy Blue",
    "viola": "Purple",
    "rosa chiaro": "Pink",
}

for _name in PALETTE:
    COLOR_WORDS.setdefault(_name.lower(), _name)

# Shade modifiers that do not change the palette entry
MODIFIERS = {
    "dark", "light", "pale", "bright", "deep", "soft", "washed",
    "oscuro", "oscura", "claro", "clara", "intenso", "intensa",
    "fonce", "foncee", "clair", "claire",
    "dunkel", "hell",
    "scuro", "scura", "chiaro", "chiara",
}

# Longest phrases first so "navy blue" wins over "blue"
_PHRASES = sorted(COLOR_WORDS, key=len, reverse=True)
_PHRASE_RE = re.compile(r"(?<!\w)(" + "|".join(re.escape(p) for p in _PHRASES) + r")(?!\w)")


def fold(text: str) -> str:
    """Lower-case, strip accents and collapse punctuation to single spaces."""
    text = text.lower().replace("ß", "ss")
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^\w]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def _lookup(folded: str) -> Optional[str]:
    if folded in COLOR_WORDS:
        return COLOR_WORDS[folded]

    words = folded.split()
    core = [w for w in words if w not in MODIFIERS]
    if core and len(core) < len(words):
        stripped = " ".join(core)
        if stripped in COLOR_WORDS:
            return COLOR_WORDS[stripped]
    return None


def find_color_in_text(text: Optional[str]) -> Optional[str]:
    """Find the first palette color mentioned anywhere in free text."""
    if not text:
        return None
    folded = fold(text)
    if not folded:
        return None

    exact = _lookup(folded)
    if exact:
        return exact

    match = _PHRASE_RE.search(folded)
    if match:
        return COLOR_WORDS[match.group(1)]
    return None


def canonicalize_color(value: Optional[str]) -> Optional[str]:
    """Map a color string in any supported language onto the palette.

    Falls back to substring matching and finally to the lower-cased input,
    so a non-empty input never comes back as None.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None

    found = find_color_in_text(raw)
    if found:
        return found

    folded = fold(raw)
    for phrase in _PHRASES:
        if len(phrase) > 3 and phrase in folded:
            logger.debug(f"Color {raw!r} matched by containment on {phrase!r}")
            return COLOR_WORDS[phrase]

    return raw.lower()


def is_palette_color(value: Optional[str]) -> bool:
    return value in PALETTE
