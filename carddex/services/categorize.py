"""
Card categorization service.

Partitions a flat card list for reporting:

    Format bucket -> Rarity bucket -> Kind bucket -> cards

- Format: basic lands are separated first; every other card goes to the
  first requested format it is legal in, or to "unsorted".
- Rarity: `rarity_orig` for legacy rarity formats (oldschool, premodern),
  `rarity_recent` otherwise, falling back to the printed rarity.
- Kind: W / U / B / R / G / Multicolor / Artifact (Colorless) /
  Non-artifact (Colorless) / Land / Land (Basic) / Unsorted.

Every level uses the same CategoryBucket parameterized by a classification
function, with plain Buckets of cards at the leaves.

Merge marks flag cards from "marked" source files that would be merged
into the rest of the collection:
- ok: no card with the same oracle ID exists unmarked
- error: copies of the same printing would exceed the copy limit
- warning: the same card exists unmarked in another printing
"""

import logging
import math
import re
from collections.abc import Callable, Collection, Iterable, Iterator, Sequence
from pathlib import Path
from typing import Generic, Protocol, TypeVar

from carddex.config import GROUP_KINDS, settings
from carddex.models.card import NormalizedCard
from carddex.models.metadata import CardDBMetadata, DBKind
from carddex.models.reference import is_legal, is_supported_format, parse_price
from carddex.services import card_fields
from carddex.services.card_filter import (
    PriceExpression,
    matches_price_expression,
    parse_price_expression,
)
from carddex.services.card_store import CardStore

logger = logging.getLogger(__name__)

BASIC_LAND = "basic-land"
UNSORTED = "unsorted"
HIGH_VALUE_SUFFIX = "-high-value"

KIND_ORDER = (
    "W",
    "U",
    "B",
    "R",
    "G",
    "Multicolor",
    "Artifact (Colorless)",
    "Non-artifact (Colorless)",
    "Land",
    "Land (Basic)",
    "Unsorted",
)

KIND_NAMES = {
    "W": "White",
    "U": "Blue",
    "B": "Black",
    "R": "Red",
    "G": "Green",
}

RARITY_ORDER = ("mythic", "rare", "uncommon", "common", "special", "bonus")

_ARTIFACT = re.compile(r"\bartifact\b", re.IGNORECASE)
_LAND = re.compile(r"\bland\b", re.IGNORECASE)


# =============================================================================
# CLASSIFICATION
# =============================================================================


def is_basic_land(card: NormalizedCard) -> bool:
    return card.norm_type.startswith("Land - Basic")


def _colorless_category(card: NormalizedCard) -> str:
    if _ARTIFACT.search(card.type_line):
        return "Artifact (Colorless)"
    if is_basic_land(card):
        return "Land (Basic)"
    if _LAND.search(card.type_line):
        return "Land"
    return "Non-artifact (Colorless)"


def kind_category_name(card: NormalizedCard) -> str:
    """Kind bucket name for a card."""
    colors = card_fields.color_union(card)

    # Devoid cards have no colors but are sorted by their mana cost colors
    if not colors and "Devoid" in card.keywords:
        colors = sorted(card_fields.color_mana_cost(card))

    if not colors:
        return _colorless_category(card)
    if len(colors) == 1:
        return colors[0].upper()
    return "Multicolor"


def rarity_for_format(
    card: NormalizedCard,
    fmt: str | None = None,
    legacy_formats: Collection[str] | None = None,
) -> str:
    """
    Rarity a card is filed under for a game format.

    Without a format the printed rarity is returned.
    """
    if fmt is None:
        return card.rarity

    legacy = settings.legacy_rarity_formats if legacy_formats is None else legacy_formats
    rarity = card.rarity_orig if fmt in legacy else card.rarity_recent
    return rarity or card.rarity


def format_bucket_name(card: NormalizedCard, formats: Sequence[str]) -> str:
    """Basic lands first, then the first format the card is legal in."""
    if is_basic_land(card):
        return BASIC_LAND

    for fmt in formats:
        if is_legal(card.legalities.get(fmt)):
            return fmt

    return UNSORTED


# =============================================================================
# SORTING
# =============================================================================


def sort_by_name_then_price(
    cards: list[NormalizedCard], price_descending: bool = True
) -> list[NormalizedCard]:
    """Sort in place by name, then price. Cards without a price sort last."""

    def key(card: NormalizedCard) -> tuple[str, float]:
        price = parse_price(card.price)
        if price is None:
            return card.name.casefold(), math.inf
        return card.name.casefold(), -price if price_descending else price

    cards.sort(key=key)
    return cards


def sort_by_type(cards: list[NormalizedCard]) -> list[NormalizedCard]:
    """Stable in place sort by normalized type."""
    cards.sort(key=lambda card: card.norm_type.casefold())
    return cards


# =============================================================================
# BUCKETS
# =============================================================================


class CardBucket(Protocol):
    name: str

    def add(self, card: NormalizedCard) -> None: ...

    def sort(self, alpha: bool = True, by_type: bool = False) -> None: ...

    def __iter__(self) -> Iterator[NormalizedCard]: ...

    def __len__(self) -> int: ...


ChildT = TypeVar("ChildT", bound=CardBucket)


class Bucket:
    """Named, ordered list of cards."""

    def __init__(self, name: str, label: str | None = None) -> None:
        self.name = name
        self.label = label or name
        self.cards: list[NormalizedCard] = []

    def add(self, card: NormalizedCard) -> None:
        self.cards.append(card)

    def sort(self, alpha: bool = True, by_type: bool = False) -> None:
        if alpha:
            sort_by_name_then_price(self.cards)
        if by_type:
            sort_by_type(self.cards)

    def __iter__(self) -> Iterator[NormalizedCard]:
        return iter(self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __repr__(self) -> str:
        return f"Bucket({self.name!r}, {len(self.cards)} cards)"


class CategoryBucket(Generic[ChildT]):
    """
    Named bucket of child buckets, keyed by a classification function.

    Args:
        name: Bucket name
        classify: Maps a card to the name of its child bucket
        make_child: Creates the child bucket for a name
        order: Iteration order of child names; unknown names follow in
            first-seen order
        prefill: Create every child in `order` up front, even if empty
    """

    def __init__(
        self,
        name: str,
        classify: Callable[[NormalizedCard], str],
        make_child: Callable[[str], ChildT],
        order: Sequence[str] = (),
        prefill: bool = False,
    ) -> None:
        self.name = name
        self._classify = classify
        self._make_child = make_child
        self._order = {key: i for i, key in enumerate(order)}
        self._children: dict[str, ChildT] = {}

        if prefill:
            for key in order:
                self._children[key] = make_child(key)

    def add(self, card: NormalizedCard) -> None:
        key = self._classify(card)
        child = self._children.get(key)
        if child is None:
            child = self._make_child(key)
            self._children[key] = child
        child.add(card)

    def extend(self, cards: Iterable[NormalizedCard]) -> None:
        for card in cards:
            self.add(card)

    def sort(self, alpha: bool = True, by_type: bool = False) -> None:
        for child in self._children.values():
            child.sort(alpha=alpha, by_type=by_type)

    def __getitem__(self, key: str) -> ChildT:
        return self._children[key]

    def items(self) -> list[tuple[str, ChildT]]:
        """Children in bucket order."""
        last = len(self._order)
        return sorted(self._children.items(), key=lambda item: self._order.get(item[0], last))

    def keys(self) -> list[str]:
        return [key for key, _ in self.items()]

    def values(self) -> list[ChildT]:
        return [child for _, child in self.items()]

    def __iter__(self) -> Iterator[NormalizedCard]:
        for child in self.values():
            yield from child

    def __len__(self) -> int:
        return sum(len(child) for child in self._children.values())

    def __repr__(self) -> str:
        return f"CategoryBucket({self.name!r}, {len(self._children)} children)"


def make_kind_bucket(name: str) -> CategoryBucket[Bucket]:
    """Kind level bucket with every kind present, in kind order."""
    return CategoryBucket(
        name,
        classify=kind_category_name,
        make_child=lambda kind: Bucket(kind, KIND_NAMES.get(kind)),
        order=KIND_ORDER,
        prefill=True,
    )


def presort_by_format(
    cards: Iterable[NormalizedCard], formats: Sequence[str]
) -> CategoryBucket[Bucket]:
    """Format level partition: requested formats, then basic-land and unsorted."""
    buckets: CategoryBucket[Bucket] = CategoryBucket(
        "formats",
        classify=lambda card: format_bucket_name(card, formats),
        make_child=Bucket,
        order=(*formats, BASIC_LAND, UNSORTED),
        prefill=True,
    )
    buckets.extend(cards)
    return buckets


# =============================================================================
# SORTED FORMAT
# =============================================================================


class SortedFormat:
    """
    One sorted collection: the cards of a format bucket split by rarity
    then kind.

    A collection named after a supported game format carries
    `sorted_format` metadata; any other (basic-land, unsorted) is `sorted`.
    Group metadata is copied from the source CardDB.
    """

    def __init__(
        self,
        name: str,
        cards: Iterable[NormalizedCard],
        fmt: str | None = None,
        source_meta: CardDBMetadata | None = None,
        dirpath: str | None = None,
        legacy_formats: Collection[str] | None = None,
    ) -> None:
        self.cards = list(cards)
        self.format = fmt if is_supported_format(fmt) else None
        self.dirpath = dirpath or self.format or name

        self.meta = CardDBMetadata(
            type=DBKind.SORTED_FORMAT if self.format else DBKind.SORTED,
            format=self.format,
            name=name,
            groups=dict(source_meta.groups) if source_meta else {},
        )
        self._groups = self.meta.group_sets()

        self.rarities: CategoryBucket[CategoryBucket[Bucket]] = CategoryBucket(
            name,
            classify=lambda card: rarity_for_format(card, self.format, legacy_formats),
            make_child=make_kind_bucket,
            order=RARITY_ORDER,
        )
        self.rarities.extend(self.cards)

    @property
    def name(self) -> str:
        return self.meta.name or self.dirpath

    @property
    def print_name(self) -> str:
        """Display name: "premodern-high-value" -> "Premodern - High Value"."""
        parts = [part for part in re.split(r"[-_\s]+", self.name) if part]
        if not parts:
            return self.name
        head = parts[0].capitalize()
        if len(parts) == 1:
            return head
        return f"{head} - {' '.join(part.capitalize() for part in parts[1:])}"

    @property
    def size(self) -> int:
        return len(self.cards)

    def sort(self, alpha: bool = True, by_type: bool = False) -> None:
        self.rarities.sort(alpha=alpha, by_type=by_type)

    def is_card_group(self, card: NormalizedCard, group: str) -> bool:
        return card.filename in self._groups.get(group, ())

    def get_card_group(self, card: NormalizedCard) -> str | None:
        for group in GROUP_KINDS:
            if self.is_card_group(card, group):
                return group
        return None

    def calculate_marks(
        self, mark: Collection[str], limit: int | None = None
    ) -> list[NormalizedCard]:
        """
        Assign merge marks to cards from the marked source files.

        Proxies and cards from unmarked files are never marked.

        Args:
            mark: Source filenames whose cards are being merged
            limit: Copies of one printing above which a card is an "error"

        Returns:
            The marked cards
        """
        if not mark or not self.cards:
            return []

        limit = settings.merge_copy_limit if limit is None else limit

        oracle_counts: dict[str, int] = {}
        id_counts: dict[str, int] = {}

        for card in self.cards:
            if self.is_card_group(card, "proxy") or card.filename in mark:
                continue
            oracle_key = card.oracle_id or card.name
            oracle_counts[oracle_key] = oracle_counts.get(oracle_key, 0) + card.quantity
            id_counts[card.scryfall_id] = id_counts.get(card.scryfall_id, 0) + card.quantity

        marked: list[NormalizedCard] = []
        for card in self.cards:
            if self.is_card_group(card, "proxy") or card.filename not in mark:
                continue

            if (card.oracle_id or card.name) not in oracle_counts:
                card.mark = "ok"
            elif id_counts.get(card.scryfall_id, 0) + card.quantity > limit:
                card.mark = "error"
            else:
                card.mark = "warning"
            marked.append(card)

        return marked

    def save(self, output_dir: str | Path) -> Path:
        """Save as a CardDB at `<output_dir>/<dirpath>/<name>.json`."""
        directory = Path(output_dir) / self.dirpath
        directory.mkdir(parents=True, exist_ok=True)
        filepath = directory / f"{self.name}.json"
        self.meta = CardStore.save(filepath, self.cards, self.meta)
        return filepath

    def __repr__(self) -> str:
        return f"SortedFormat({self.name!r}, {self.size} cards)"


def split_high_value(
    cards: Iterable[NormalizedCard], high_value: PriceExpression
) -> tuple[list[NormalizedCard], list[NormalizedCard]]:
    """
    Split cards into (low, high) value lists.

    Every printing of a card is high value when any printing of it matches.
    """
    cards = list(cards)

    high_oracles = {
        card.oracle_id or card.name
        for card in cards
        if matches_price_expression(card.price, high_value)
    }

    low: list[NormalizedCard] = []
    high: list[NormalizedCard] = []
    for card in cards:
        (high if (card.oracle_id or card.name) in high_oracles else low).append(card)

    return low, high


def _create_sorted_format(
    name: str,
    cards: list[NormalizedCard],
    fmt: str | None,
    dirpath: str,
    mark: Collection[str] | None,
    sort_by_type: bool,
    source_meta: CardDBMetadata | None,
) -> SortedFormat:
    sort_by_name_then_price(cards)

    sorted_format = SortedFormat(name, cards, fmt=fmt, source_meta=source_meta, dirpath=dirpath)
    sorted_format.sort(alpha=True, by_type=sort_by_type)

    logger.debug("Sorting '%s' - unique card entry count: %d", name, len(cards))

    if mark:
        marked = sorted_format.calculate_marks(mark)
        if marked:
            rarities = sorted({rarity_for_format(card, sorted_format.format) for card in marked})
            logger.info(
                "  - %d card entries marked for merging in: %s", len(marked), ", ".join(rarities)
            )

    return sorted_format


def sort_formats(
    cards: Iterable[NormalizedCard],
    formats: Sequence[str],
    mark: Collection[str] | None = None,
    sort_by_type: bool = False,
    high_value: PriceExpression | str | None = None,
    source_meta: CardDBMetadata | None = None,
) -> list[SortedFormat]:
    """
    Sort cards into one SortedFormat per non-empty format bucket.

    Args:
        cards: Cards to sort
        formats: Game formats in priority order
        mark: Source filenames to compute merge marks for
        sort_by_type: Additionally sort leaf buckets by normalized type
        high_value: Price expression (e.g. ">=10") splitting each format into
            `<format>` and `<format>-high-value` collections
        source_meta: Metadata of the source CardDB (for group data)

    Raises:
        ValueError: On an unsupported format or invalid price expression
    """
    unsupported = [fmt for fmt in formats if not is_supported_format(fmt)]
    if unsupported:
        raise ValueError(f"Unsupported game formats: {', '.join(unsupported)}")

    if isinstance(high_value, str):
        expression = parse_price_expression(high_value)
        if expression is None:
            raise ValueError(f"Invalid high value price expression: {high_value}")
        high_value = expression

    presorted = presort_by_format(cards, formats)

    results: list[SortedFormat] = []
    for name, bucket in presorted.items():
        if not len(bucket):
            continue

        fmt = name if is_supported_format(name) else None

        if fmt is not None and high_value is not None:
            low, high = split_high_value(bucket.cards, high_value)
            if low:
                results.append(
                    _create_sorted_format(name, low, fmt, fmt, mark, sort_by_type, source_meta)
                )
            if high:
                results.append(
                    _create_sorted_format(
                        f"{name}{HIGH_VALUE_SUFFIX}",
                        high,
                        fmt,
                        f"{fmt}/high-value",
                        mark,
                        sort_by_type,
                        source_meta,
                    )
                )
        else:
            results.append(
                _create_sorted_format(
                    name, bucket.cards, fmt, fmt or name, mark, sort_by_type, source_meta
                )
            )

    return results
