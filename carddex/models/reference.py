"""
Reference dataset (Scryfall bulk data) shapes and lookup tables.

Records are streamed as plain dicts; ReferenceCard documents the subset
of fields this package reads. The helpers are pure functions over
constant tables.
"""

import math
import re
from typing import Any, TypedDict


class ReferenceFace(TypedDict, total=False):
    """One face of a multi-faced reference card."""

    name: str
    printed_name: str
    mana_cost: str
    type_line: str
    oracle_text: str
    colors: list[str]
    power: str
    toughness: str
    loyalty: str
    defense: str
    cmc: float


class ReferenceCard(TypedDict, total=False):
    """One printing from the reference bulk dataset."""

    object: str
    id: str
    oracle_id: str
    name: str
    printed_name: str
    lang: str
    rarity: str
    released_at: str
    set: str
    set_name: str
    set_type: str
    collector_number: str
    type_line: str
    mana_cost: str
    cmc: float
    colors: list[str]
    color_identity: list[str]
    keywords: list[str]
    oracle_text: str
    border_color: str
    legalities: dict[str, str]
    prices: dict[str, str | None]
    card_faces: list[ReferenceFace]


SUPPORTED_FORMATS = frozenset(
    {
        "standard",
        "future",
        "historic",
        "timeless",
        "gladiator",
        "pioneer",
        "modern",
        "legacy",
        "pauper",
        "vintage",
        "penny",
        "commander",
        "oathbreaker",
        "standardbrawl",
        "brawl",
        "alchemy",
        "paupercommander",
        "duel",
        "oldschool",
        "premodern",
        "predh",
    }
)

VALID_LEGALITIES = frozenset({"legal", "restricted"})

# Set types ignored when tracking printed rarity over time
EXCLUDED_SET_TYPES = frozenset(
    {
        "duel_deck",
        "from_the_vault",
        "memorabilia",
        "premium_deck",
        "promo",
        "sld",
        "spellbook",
        "starter",
    }
)

# Early foreign / collector / summer sets ignored when tracking printed rarity
EXCLUDED_SETS = frozenset({"4bb", "bchr", "ced", "cei", "fbb", "sum"})

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "pt": "Portuguese",
    "ru": "Russian",
    "zhs": "Simplified Chinese",
    "zht": "Traditional Chinese",
    "ph": "Phyrexian",
    "ar": "Arabic",
    "grc": "Ancient Greek",
    "he": "Hebrew",
    "la": "Latin",
    "qya": "Quenya",
    "sa": "Sanskrit",
}

_LANGUAGE_ALIASES = {"chinese": "zhs"}

COLORS = ("W", "U", "B", "R", "G")

# Mana cost symbols: {W}, {2}, {U/B}, {G/P}, {X}
MANA_SYMBOL_PATTERN = re.compile(r"\{([^}]+)\}")


def is_legal(legality: Any) -> bool:
    """Legal or restricted both count as playable in a format."""
    return legality in VALID_LEGALITIES


def is_supported_format(fmt: Any) -> bool:
    return isinstance(fmt, str) and fmt in SUPPORTED_FORMATS


def is_excluded_set_type(set_type: Any) -> bool:
    return set_type in EXCLUDED_SET_TYPES


def is_excluded_set(set_code: Any) -> bool:
    return set_code in EXCLUDED_SETS


def normalize_lang_code(value: str | None) -> str | None:
    """
    Normalize a user supplied language to a reference language code.

    Accepts codes in any case ("EN", "zhs") and English language names
    ("Japanese", "Simplified Chinese"). Unknown values return None.
    """
    if not value:
        return None

    text = value.strip()
    code = text.lower()
    if code in LANGUAGE_NAMES:
        return code

    for lang_code, name in LANGUAGE_NAMES.items():
        if name.lower() == code:
            return lang_code

    return _LANGUAGE_ALIASES.get(code)


def parse_mana_cost_colors(mana_cost: str | None) -> set[str]:
    """
    Colors actually required to cast a spell from its mana cost.

    Hybrid symbols contribute every color they name; generic, colorless,
    snow, X and Phyrexian markers contribute nothing.
    """
    if not mana_cost:
        return set()

    colors: set[str] = set()
    for symbol in MANA_SYMBOL_PATTERN.findall(mana_cost):
        for part in re.split(r"[^A-Z]", symbol.upper()):
            if part in COLORS:
                colors.add(part)

    return colors


def parse_price(value: Any) -> float | None:
    """Parse a price string into a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None
