"""
Normalized card models.

A NormalizedCard is the join of one owned holding with its reference
printing. Instances are created during correlation; afterwards only the
rarity fields (rarity resolution) and `mark` (merge marking) change.
"""

from typing import Literal

from pydantic import BaseModel, Field

MergeMark = Literal["ok", "warning", "error"]


class CardFace(BaseModel):
    """One face of a multi-faced card."""

    object: Literal["card_face"] = "card_face"
    name: str = ""
    printed_name: str | None = None
    mana_cost: str = ""
    type_line: str | None = None
    norm_type: str | None = None
    oracle_text: str | None = None
    colors: list[str] | None = None
    cmc: float | None = None
    power: str | None = None
    toughness: str | None = None
    loyalty: str | None = None
    defense: str | None = None


class NormalizedCard(BaseModel):
    """Owned card enriched with reference data, normalized type and rarity."""

    object: Literal["card"] = "card"

    # Identity
    name: str
    scryfall_id: str
    oracle_id: str | None = None
    printed_name: str | None = None

    # Owned holding
    quantity: int = Field(default=1, ge=1)
    filename: str = ""
    finish: str = "normal"
    lang: str = "en"
    user_lang: str | None = None
    user_tags: list[str] = Field(default_factory=list)

    # Classification
    norm_type: str = ""
    type_line: str = ""
    rarity: str = "common"
    rarity_orig: str | None = None
    rarity_recent: str | None = None

    # Printing
    set: str = ""
    set_name: str | None = None
    set_type: str | None = None
    collector_number: str | None = None
    released_at: str | None = None
    border_color: str | None = None

    # Gameplay
    cmc: float | None = None
    colors: list[str] | None = None
    color_identity: list[str] = Field(default_factory=list)
    mana_cost: str | None = None
    keywords: list[str] = Field(default_factory=list)
    oracle_text: str | None = None
    power: str | None = None
    toughness: str | None = None
    loyalty: str | None = None
    defense: str | None = None
    produced_mana: list[str] | None = None
    reserved: bool = False
    game_changer: bool | None = None
    legalities: dict[str, str] = Field(default_factory=dict)

    price: str | None = None
    scryfall_uri: str | None = None

    card_faces: list[CardFace] | None = None
    csv_extra: dict[str, str] | None = None

    # Merge conflict classification, assigned while sorting
    mark: MergeMark | None = None

