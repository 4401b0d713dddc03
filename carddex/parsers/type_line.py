"""
Type line classification.

Resolves a free-text type line into a normalized category label:

    Land, Land - Basic, Land - Basic - Snow, Land - Snow, Land - Legendary,
    Land - Artifact, Land - Saga

    Artifact, Artifact - Creature, Artifact - Equipment, Artifact - Vehicle

    Creature, Enchantment, Instant, Sorcery, Planeswalker, Battle

Non-land labels take a " - Legendary" suffix for legendary cards.

Precedence:
    Land > Artifact > Creature > Enchantment > Instant > Sorcery
    > Planeswalker > Battle

Enchantment creatures are filed as creatures. Unrecognized type lines
are returned unchanged.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from carddex.models.failure import TypeLineError

logger = logging.getLogger(__name__)


def _word(word: str) -> re.Pattern[str]:
    return re.compile(rf"\b{word}\b", re.IGNORECASE)


LAND = _word("land")
BASIC = _word("basic")
SNOW = _word("snow")
SAGA = _word("saga")
LEGENDARY = _word("legendary")
ARTIFACT = _word("artifact")
CREATURE = _word("creature")
EQUIPMENT = _word("equipment")
VEHICLE = _word("vehicle")
ENCHANTMENT = _word("enchantment")

# Non-artifact base types in resolution order
BASE_TYPES = (
    ("Creature", CREATURE),
    ("Enchantment", ENCHANTMENT),
    ("Instant", _word("instant")),
    ("Sorcery", _word("sorcery")),
    ("Planeswalker", _word("planeswalker")),
    ("Battle", _word("battle")),
)


def resolve_type_line(card: Mapping[str, Any] | str | None) -> str:
    """
    Get the type line to classify for a card or a raw string.

    Multi-faced cards use the first face, falling back to the card
    level type line.

    Raises:
        TypeLineError: If no type line can be determined
    """
    if isinstance(card, str):
        type_line: Any = card
    elif isinstance(card, Mapping):
        faces = card.get("card_faces")
        type_line = None
        if isinstance(faces, list) and faces and isinstance(faces[0], Mapping):
            type_line = faces[0].get("type_line")
        if not type_line:
            type_line = card.get("type_line")
    else:
        type_line = None

    if not isinstance(type_line, str) or not type_line:
        raise TypeLineError(f"Could not determine type line from card: {card!r}")

    return type_line


def _classify_land(type_line: str) -> str:
    if SAGA.search(type_line):
        return "Land - Saga"
    if ARTIFACT.search(type_line):
        return "Land - Artifact"
    if LEGENDARY.search(type_line):
        return "Land - Legendary"
    if SNOW.search(type_line):
        return "Land - Basic - Snow" if BASIC.search(type_line) else "Land - Snow"
    if BASIC.search(type_line):
        return "Land - Basic"
    return "Land"


def _classify_artifact(type_line: str) -> str:
    if CREATURE.search(type_line):
        return "Artifact - Creature"
    if EQUIPMENT.search(type_line):
        return "Artifact - Equipment"
    if VEHICLE.search(type_line):
        return "Artifact - Vehicle"
    return "Artifact"


def classify_type_line(card: Mapping[str, Any] | str | None) -> str:
    """
    Classify a card or type line into a normalized category label.

    Args:
        card: Reference card mapping or a raw type line

    Returns:
        Normalized label, or the raw type line when no base type matches.

    Raises:
        TypeLineError: If no type line can be determined
    """
    type_line = resolve_type_line(card)

    if LAND.search(type_line):
        return _classify_land(type_line)

    base_type: str | None = None
    if ARTIFACT.search(type_line):
        base_type = _classify_artifact(type_line)
    else:
        for label, pattern in BASE_TYPES:
            if pattern.search(type_line):
                base_type = label
                break

    if base_type is None:
        logger.warning("Unclassified type line: %s", type_line)
        return type_line

    if ENCHANTMENT.search(type_line) and CREATURE.search(type_line):
        base_type = "Creature"

    if LEGENDARY.search(type_line):
        return f"{base_type} - Legendary"

    return base_type
