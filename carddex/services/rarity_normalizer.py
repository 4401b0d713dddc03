"""
Historical rarity normalization.

Cards change rarity between reprints (Force of Will, Demonic Tutor...).
Sorting older formats needs the rarity a card was first printed at, while
modern formats want the most recent one. The normalizer tracks both per
oracle ID with two streaming passes over the reference dataset:

1. scan_for_oracle_ids: collect oracle IDs of every English printing the
   collection owns.
2. track: fused with correlation, record the earliest and latest printing
   (rarity + set) of each collected oracle ID, ignoring special / promo
   sets and "special" rarity.

After correlation `resolve` assigns `rarity_orig` / `rarity_recent` to each
card and `log_changes_and_cleanup` reports overrides and drops all state.

Only primitive per-oracle data is retained, never reference records.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from carddex.config import settings
from carddex.models.card import NormalizedCard
from carddex.models.reference import ReferenceCard, is_excluded_set, is_excluded_set_type
from carddex.services.import_collection import ImportCollection

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RarityPoint:
    """Rarity of one printing at its release date."""

    rarity: str
    released_at: date
    set_code: str


@dataclass(slots=True)
class RarityTimeline:
    """Earliest and latest tracked printing of one oracle ID."""

    earliest: RarityPoint | None = None
    latest: RarityPoint | None = None


@dataclass(frozen=True, slots=True)
class RarityChange:
    """A card whose original rarity was replaced by its latest pre-cutoff rarity."""

    name: str
    orig_rarity: str
    orig_set: str
    recent_rarity: str
    recent_set: str


def _parse_date(value: object) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class RarityNormalizer:
    """
    Computes normalized rarity keyed by oracle ID for one correlation run.

    Args:
        cutoff: Latest printings released before this date that changed
            rarity keep their latest rarity as the original rarity
    """

    def __init__(self, cutoff: date | None = None) -> None:
        self.cutoff = cutoff or settings.rarity_cutoff
        self._oracle_ids: set[str] = set()
        self._timelines: dict[str, RarityTimeline] = {}
        self._changes: dict[str, RarityChange] = {}
        self._set_names: dict[str, str] = {}

    @property
    def oracle_ids(self) -> frozenset[str]:
        return frozenset(self._oracle_ids)

    def scan_for_oracle_ids(
        self, reference_cards: Iterable[ReferenceCard], collection: ImportCollection
    ) -> int:
        """
        First pass: collect oracle IDs of English printings the collection holds.

        Returns:
            Number of oracle IDs collected
        """
        logger.info(
            "Scanning reference data to identify oracle IDs used by cards in the collection..."
        )

        for card in reference_cards:
            if card.get("object") != "card":
                continue

            oracle_id = card.get("oracle_id")
            if card.get("lang") != "en" or not isinstance(oracle_id, str):
                continue
            if collection.has(card.get("id", "")):
                self._oracle_ids.add(oracle_id)

        logger.info("Oracle ID scan complete: %d oracle IDs", len(self._oracle_ids))
        return len(self._oracle_ids)

    def track(self, card: ReferenceCard) -> None:
        """Second pass: update the rarity timeline of a card's oracle ID."""
        oracle_id = card.get("oracle_id")
        if card.get("lang") != "en" or not isinstance(oracle_id, str):
            return
        if oracle_id not in self._oracle_ids:
            return

        # Special / promo printings do not reflect tournament rarity
        rarity = card.get("rarity")
        if (
            not rarity
            or rarity == "special"
            or is_excluded_set_type(card.get("set_type"))
            or is_excluded_set(card.get("set"))
        ):
            return

        released_at = _parse_date(card.get("released_at"))
        if released_at is None:
            return

        set_code = card.get("set", "")
        if set_code not in self._set_names:
            self._set_names[set_code] = card.get("set_name", set_code)

        point = RarityPoint(rarity=rarity, released_at=released_at, set_code=set_code)
        timeline = self._timelines.setdefault(oracle_id, RarityTimeline())

        if timeline.earliest is None or released_at < timeline.earliest.released_at:
            timeline.earliest = point
        if timeline.latest is None or released_at > timeline.latest.released_at:
            timeline.latest = point

    def timeline(self, oracle_id: str) -> RarityTimeline | None:
        return self._timelines.get(oracle_id)

    def resolve(self, card: NormalizedCard) -> None:
        """Assign `rarity_orig` and `rarity_recent` to a correlated card."""
        timeline = self._timelines.get(card.oracle_id) if card.oracle_id else None

        earliest = timeline.earliest if timeline else None
        latest = timeline.latest if timeline else None

        card.rarity_orig = earliest.rarity if earliest else card.rarity

        if latest is None:
            card.rarity_recent = card.rarity
            return

        card.rarity_recent = latest.rarity

        # A rarity change with no further movement after the cutoff is
        # treated as the card's original rarity.
        if latest.released_at < self.cutoff and card.rarity_recent != card.rarity_orig:
            if card.name not in self._changes:
                self._changes[card.name] = RarityChange(
                    name=card.name,
                    orig_rarity=card.rarity_orig,
                    orig_set=earliest.set_code if earliest else "<Unknown>",
                    recent_rarity=card.rarity_recent,
                    recent_set=latest.set_code,
                )
            card.rarity_orig = card.rarity_recent

    def log_changes_and_cleanup(self) -> list[RarityChange]:
        """
        Log recorded rarity overrides sorted by card name and release all state.

        Returns:
            The recorded overrides, sorted by card name
        """
        changes = [self._changes[name] for name in sorted(self._changes)]

        if changes:
            logger.info("--------------------")
            logger.info(
                "Various cards printed before %s changed rarity between editions "
                "without further movement in future years.",
                self.cutoff.isoformat(),
            )
            logger.info(
                "To preserve historical identity the most recent rarity among those "
                "printings is used as the original rarity."
            )
            logger.info("--------------------")

            for change in changes:
                logger.info(
                    "[Rarity Change]: %s - earlier print (%s) was '%s'; later print (%s) is '%s'.",
                    change.name,
                    self._set_names.get(change.orig_set, change.orig_set),
                    change.orig_rarity,
                    self._set_names.get(change.recent_set, change.recent_set),
                    change.recent_rarity,
                )

        self._oracle_ids.clear()
        self._timelines.clear()
        self._changes.clear()
        self._set_names.clear()

        return changes
