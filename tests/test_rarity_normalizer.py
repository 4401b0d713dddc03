import logging
from collections.abc import Callable
from datetime import date
from typing import Any

import pytest
from conftest import BOLT_LEA, FOW_ALL, SPECTER_LEA

from carddex.models.card import NormalizedCard
from carddex.parsers.collection_import import ImportIndex
from carddex.services.import_collection import ImportCollection
from carddex.services.rarity_normalizer import RarityNormalizer


def collection_of(*scryfall_ids: str) -> ImportCollection:
    rows = [{"Scryfall ID": scryfall_id, "Quantity": "1"} for scryfall_id in scryfall_ids]
    return ImportCollection([ImportIndex.from_rows(rows, filename="collection")])


def tracked(
    normalizer: RarityNormalizer,
    reference_cards: list[dict[str, Any]],
    collection: ImportCollection,
) -> RarityNormalizer:
    normalizer.scan_for_oracle_ids(reference_cards, collection)
    for card in reference_cards:
        if card.get("object") == "card":
            normalizer.track(card)
    return normalizer


class TestScanForOracleIds:
    def test_collects_owned_oracle_ids(self, sample_reference_cards: list[dict[str, Any]]) -> None:
        normalizer = RarityNormalizer()

        count = normalizer.scan_for_oracle_ids(
            sample_reference_cards, collection_of(BOLT_LEA, FOW_ALL)
        )

        assert count == 2
        assert normalizer.oracle_ids == {"oracle-bolt", "oracle-fow"}

    def test_ignores_non_english(self, make_reference: Callable[..., dict[str, Any]]) -> None:
        cards = [make_reference(BOLT_LEA, "Lightning Bolt", "oracle-bolt", lang="ja")]
        normalizer = RarityNormalizer()

        assert normalizer.scan_for_oracle_ids(cards, collection_of(BOLT_LEA)) == 0


class TestTrackAndResolve:
    def test_earliest_and_latest(self, sample_reference_cards: list[dict[str, Any]]) -> None:
        normalizer = tracked(RarityNormalizer(), sample_reference_cards, collection_of(FOW_ALL))

        timeline = normalizer.timeline("oracle-fow")
        assert timeline is not None
        assert timeline.earliest is not None and timeline.earliest.set_code == "all"
        assert timeline.latest is not None and timeline.latest.set_code == "ema"

        card = NormalizedCard(
            name="Force of Will", scryfall_id=FOW_ALL, oracle_id="oracle-fow", rarity="uncommon"
        )
        normalizer.resolve(card)

        assert card.rarity_orig == "uncommon"
        assert card.rarity_recent == "mythic"

    def test_promo_printings_are_ignored(
        self, sample_reference_cards: list[dict[str, Any]]
    ) -> None:
        normalizer = tracked(RarityNormalizer(), sample_reference_cards, collection_of(BOLT_LEA))

        timeline = normalizer.timeline("oracle-bolt")
        assert timeline is not None and timeline.latest is not None
        # The 2020 promo (rare) is excluded; M10 is the latest tracked printing
        assert timeline.latest.set_code == "m10"
        assert timeline.latest.rarity == "common"

    def test_special_rarity_is_ignored(self, make_reference: Callable[..., dict[str, Any]]) -> None:
        cards = [
            make_reference(BOLT_LEA, "Lightning Bolt", "oracle-bolt", released_at="1993-08-05"),
            make_reference(
                FOW_ALL, "Lightning Bolt", "oracle-bolt", rarity="special", released_at="2021-01-01"
            ),
        ]
        normalizer = tracked(RarityNormalizer(), cards, collection_of(BOLT_LEA))

        timeline = normalizer.timeline("oracle-bolt")
        assert timeline is not None and timeline.latest is not None
        assert timeline.latest.released_at == date(1993, 8, 5)

    def test_untracked_card_uses_own_rarity(self) -> None:
        normalizer = RarityNormalizer()
        card = NormalizedCard(
            name="Unknown", scryfall_id=BOLT_LEA, oracle_id="oracle-x", rarity="rare"
        )

        normalizer.resolve(card)

        assert card.rarity_orig == "rare"
        assert card.rarity_recent == "rare"

    def test_rarity_change_before_cutoff(
        self, sample_reference_cards: list[dict[str, Any]]
    ) -> None:
        normalizer = tracked(RarityNormalizer(), sample_reference_cards, collection_of(SPECTER_LEA))
        card = NormalizedCard(
            name="Hypnotic Specter",
            scryfall_id=SPECTER_LEA,
            oracle_id="oracle-specter",
            rarity="rare",
        )

        normalizer.resolve(card)

        # 4ED (1995, uncommon) is the last printing and predates the cutoff
        assert card.rarity_recent == "uncommon"
        assert card.rarity_orig == "uncommon"

    def test_rarity_change_after_cutoff_keeps_original(
        self, sample_reference_cards: list[dict[str, Any]]
    ) -> None:
        normalizer = tracked(
            RarityNormalizer(cutoff=date(1994, 1, 1)),
            sample_reference_cards,
            collection_of(SPECTER_LEA),
        )
        card = NormalizedCard(
            name="Hypnotic Specter",
            scryfall_id=SPECTER_LEA,
            oracle_id="oracle-specter",
            rarity="rare",
        )

        normalizer.resolve(card)

        assert card.rarity_orig == "rare"
        assert card.rarity_recent == "uncommon"


class TestLogChangesAndCleanup:
    def test_logs_changes_and_clears_state(
        self,
        sample_reference_cards: list[dict[str, Any]],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        normalizer = tracked(RarityNormalizer(), sample_reference_cards, collection_of(SPECTER_LEA))
        for _ in range(2):
            normalizer.resolve(
                NormalizedCard(
                    name="Hypnotic Specter",
                    scryfall_id=SPECTER_LEA,
                    oracle_id="oracle-specter",
                    rarity="rare",
                )
            )

        with caplog.at_level(logging.INFO, logger="carddex.services.rarity_normalizer"):
            changes = normalizer.log_changes_and_cleanup()

        assert len(changes) == 1
        assert changes[0].orig_rarity == "rare"
        assert changes[0].recent_rarity == "uncommon"
        assert "[Rarity Change]: Hypnotic Specter" in caplog.text
        assert normalizer.oracle_ids == frozenset()
        assert normalizer.timeline("oracle-specter") is None

    def test_no_changes_logs_nothing(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="carddex.services.rarity_normalizer"):
            assert RarityNormalizer().log_changes_and_cleanup() == []

        assert "Rarity Change" not in caplog.text
