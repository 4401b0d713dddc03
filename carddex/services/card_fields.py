"""
Field access for single and multi-faced normalized cards.

Multi-faced cards carry per-face values in `card_faces`; these helpers
return every face value, falling back to the card level value when no
face defines one.
"""

from typing import Any

from carddex.models.card import NormalizedCard
from carddex.models.reference import parse_mana_cost_colors


def _parts(card: NormalizedCard, field: str, kind: type | tuple[type, ...]) -> list[Any]:
    results: list[Any] = []

    if card.card_faces:
        for face in card.card_faces:
            value = getattr(face, field, None)
            if isinstance(value, kind) and not isinstance(value, bool):
                results.append(value)

    if not results:
        value = getattr(card, field, None)
        if isinstance(value, kind) and not isinstance(value, bool):
            results.append(value)

    return results


def parts_name(card: NormalizedCard) -> list[str]:
    return _parts(card, "name", str)


def parts_printed_name(card: NormalizedCard) -> list[str]:
    return _parts(card, "printed_name", str)


def parts_oracle_text(card: NormalizedCard) -> list[str]:
    return _parts(card, "oracle_text", str)


def parts_type_line(card: NormalizedCard) -> list[str]:
    return _parts(card, "type_line", str)


def parts_mana_cost(card: NormalizedCard) -> list[str]:
    return _parts(card, "mana_cost", str)


def parts_cmc(card: NormalizedCard) -> list[float]:
    return _parts(card, "cmc", (int, float))


def color_union(card: NormalizedCard) -> list[str]:
    """Union of card colors across all faces, in first-seen order."""
    if card.card_faces:
        colors: list[str] = []
        for face in card.card_faces:
            for color in face.colors or ():
                if color not in colors:
                    colors.append(color)
        if colors:
            return colors

    return list(card.colors or [])


def color_mana_cost(card: NormalizedCard) -> set[str]:
    """
    Colors named by the mana cost(s) of a card.

    Devoid cards have no `colors` but still require colored mana.
    """
    if card.card_faces:
        colors: set[str] = set()
        for face in card.card_faces:
            colors |= parse_mana_cost_colors(face.mana_cost)
        return colors

    return parse_mana_cost_colors(card.mana_cost)


def lang_code(card: NormalizedCard) -> str:
    """
    Language of the holding.

    Collection services rarely link foreign printings, so a user declared
    language that differs from the reference language wins.
    """
    if card.user_lang and card.user_lang != card.lang:
        return card.user_lang
    return card.lang


def unique_card_key(card: NormalizedCard) -> str:
    """
    Composite identity key: <scryfall id>:<finish>:<language>.

    Finish is separate from the reference identity and the language is
    freely set by users, so both are part of what makes a holding distinct.
    """
    return f"{card.scryfall_id}:{card.finish or 'normal'}:{lang_code(card)}"
