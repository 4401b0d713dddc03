"""
Collection correlation service.

Joins the owned-card ImportCollection against the reference bulk data:

1. Rarity pass A: stream the reference data once collecting oracle IDs.
2. Correlation: stream it again; every card is fed to the rarity tracker
   and matched against the collection. Each matching owned record yields
   one NormalizedCard and the identity is consumed from the collection.
   Lookups stop once the collection is empty, but the stream is read to
   the end so later reprints still reach the rarity tracker.
3. Rarity resolution over the emitted cards, then the override summary.
4. Whatever is left in the collection was never found and is reported.

The reference data must be re-iterable (ScryfallSource reopens its file
for every pass); it is never held in memory.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from carddex.models.card import CardFace, NormalizedCard
from carddex.models.metadata import CardDBMetadata, DBKind
from carddex.models.owned_card import OwnedCardRecord
from carddex.models.reference import ReferenceCard
from carddex.parsers.type_line import classify_type_line
from carddex.services.card_store import CardStore, sort_by_name
from carddex.services.import_collection import ImportCollection
from carddex.services.rarity_normalizer import RarityChange, RarityNormalizer

logger = logging.getLogger(__name__)

# Owned finish -> reference price field
PRICE_FIELDS = {
    "normal": "usd",
    "foil": "usd_foil",
    "etched": "usd_etched",
}

PROXY_PRICE = "0.00"

# Reference fields copied onto a NormalizedCard as-is
_REFERENCE_FIELDS = (
    "oracle_id",
    "printed_name",
    "set_name",
    "set_type",
    "collector_number",
    "released_at",
    "border_color",
    "cmc",
    "colors",
    "mana_cost",
    "oracle_text",
    "power",
    "toughness",
    "loyalty",
    "defense",
    "produced_mana",
    "game_changer",
    "scryfall_uri",
)


@dataclass
class ConversionResult:
    """Outcome of correlating a collection with the reference data."""

    cards: list[NormalizedCard] = field(default_factory=list)
    total_quantity: int = 0
    unmatched: list[OwnedCardRecord] = field(default_factory=list)
    rarity_changes: list[RarityChange] = field(default_factory=list)
    meta: CardDBMetadata | None = None


def card_price(reference: ReferenceCard, finish: str) -> str | None:
    """Reference USD price for an owned finish."""
    prices = reference.get("prices") or {}
    return prices.get(PRICE_FIELDS.get(finish, "usd"))


def build_card_faces(reference: ReferenceCard) -> list[CardFace] | None:
    faces = reference.get("card_faces")
    if not isinstance(faces, list) or not faces:
        return None

    result: list[CardFace] = []
    for face in faces:
        if not isinstance(face, dict):
            continue
        card_face = CardFace.model_validate(face)
        if card_face.type_line:
            card_face.norm_type = classify_type_line(card_face.type_line)
        result.append(card_face)

    return result or None


def filter_user_tags(tags: Iterable[str], keywords: Iterable[str], norm_type: str) -> list[str]:
    """Drop user tags that repeat a card keyword or the normalized type."""
    redundant = {keyword.lower() for keyword in keywords}
    redundant.add(norm_type.lower())
    return [tag for tag in tags if tag not in redundant]


def build_normalized_card(
    reference: ReferenceCard,
    record: OwnedCardRecord,
    is_proxy: bool = False,
) -> NormalizedCard:
    """
    Join one owned record with its reference printing.

    Rarity fields are provisional until the rarity normalizer resolves them.

    Raises:
        TypeLineError: If the reference card has no type line
    """
    norm_type = classify_type_line(reference)
    keywords = list(reference.get("keywords") or [])
    faces = build_card_faces(reference)

    type_line = reference.get("type_line")
    if not type_line and faces:
        type_line = " // ".join(face.type_line for face in faces if face.type_line)

    rarity = reference.get("rarity") or "common"

    extra = {
        name: reference.get(name) for name in _REFERENCE_FIELDS if reference.get(name) is not None
    }

    return NormalizedCard(
        name=reference.get("name", record.name or ""),
        scryfall_id=reference.get("id", record.scryfall_id),
        quantity=record.quantity,
        filename=record.filename,
        finish=record.finish,
        lang=reference.get("lang", "en"),
        user_lang=record.user_lang,
        user_tags=filter_user_tags(record.user_tags, keywords, norm_type),
        norm_type=norm_type,
        type_line=type_line or "",
        rarity=rarity,
        rarity_orig=rarity,
        rarity_recent=rarity,
        set=reference.get("set", ""),
        color_identity=list(reference.get("color_identity") or []),
        keywords=keywords,
        reserved=bool(reference.get("reserved", False)),
        legalities=dict(reference.get("legalities") or {}),
        price=PROXY_PRICE if is_proxy else card_price(reference, record.finish),
        card_faces=faces,
        csv_extra=dict(record.csv_extra) if record.csv_extra else None,
        **extra,
    )


def convert_collection(
    source: Iterable[ReferenceCard],
    collection: ImportCollection,
    output_path: str | Path | None = None,
    normalizer: RarityNormalizer | None = None,
) -> ConversionResult:
    """
    Correlate an import collection with the reference data.

    The collection is consumed: matched identities are removed from it.

    Args:
        source: Re-iterable reference card source (e.g. ScryfallSource)
        collection: Owned cards to correlate
        output_path: When given, save the cards as an `inventory` CardDB
        normalizer: Rarity normalizer to use; a fresh one by default

    Returns:
        ConversionResult with normalized cards sorted by name, unmatched
        records and rarity overrides

    Raises:
        TypeLineError: If a matched reference card has no type line
        MetadataValidationError: If the collection group metadata is invalid
    """
    normalizer = normalizer or RarityNormalizer()

    normalizer.scan_for_oracle_ids(source, collection)

    logger.info("Correlating %d collection records with reference data...", collection.size)

    cards: list[NormalizedCard] = []
    total_quantity = 0

    for reference in source:
        if reference.get("object") != "card":
            continue

        normalizer.track(reference)

        if collection.size == 0:
            continue

        scryfall_id = reference.get("id")
        if not scryfall_id:
            continue

        records = collection.get(scryfall_id)
        if not records:
            continue

        for record in records:
            is_proxy = collection.is_in_group(record, "proxy")
            card = build_normalized_card(reference, record, is_proxy=is_proxy)
            logger.debug("Matched %s (%s) x%d", card.name, card.set, card.quantity)
            cards.append(card)
            total_quantity += record.quantity

        collection.delete(scryfall_id)

    for card in cards:
        normalizer.resolve(card)

    rarity_changes = normalizer.log_changes_and_cleanup()

    unmatched = list(collection.records())
    for record in unmatched:
        logger.warning(
            "Card not found in reference data - Name: %s | Scryfall ID: %s | Filename: %s",
            record.name or "<unknown>",
            record.scryfall_id,
            record.filename,
        )

    cards = sort_by_name(cards)

    logger.info(
        "Correlation complete: %d unique cards, %d total quantity, %d unmatched",
        len(cards),
        total_quantity,
        len(unmatched),
    )

    meta = CardDBMetadata(type=DBKind.INVENTORY, groups=collection.groups)

    if output_path is not None:
        if cards:
            meta = CardStore.save(output_path, cards, meta)
            logger.info("Saved inventory CardDB: %s", output_path)
        else:
            logger.warning("No cards matched; CardDB not written: %s", output_path)

    return ConversionResult(
        cards=cards,
        total_quantity=total_quantity,
        unmatched=unmatched,
        rarity_changes=rarity_changes,
        meta=meta,
    )
