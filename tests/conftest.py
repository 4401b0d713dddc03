import csv
import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from carddex.models.card import NormalizedCard

BOLT_LEA = "00000000-0000-4000-8000-000000000001"
BOLT_M10 = "00000000-0000-4000-8000-000000000002"
BOLT_PROMO = "00000000-0000-4000-8000-000000000003"
FOW_ALL = "00000000-0000-4000-8000-000000000004"
FOW_EMA = "00000000-0000-4000-8000-000000000005"
SPECTER_LEA = "00000000-0000-4000-8000-000000000006"
SPECTER_4ED = "00000000-0000-4000-8000-000000000007"
FOREST_LEA = "00000000-0000-4000-8000-000000000008"
DELVER_ISD = "00000000-0000-4000-8000-000000000009"
MISSING_ID = "00000000-0000-4000-8000-0000000000ff"


def reference_card(
    scryfall_id: str,
    name: str,
    oracle_id: str,
    rarity: str = "common",
    released_at: str = "2000-01-01",
    set_code: str = "tst",
    set_type: str = "expansion",
    type_line: str | None = "Instant",
    lang: str = "en",
    **extra: Any,
) -> dict[str, Any]:
    card: dict[str, Any] = {
        "object": "card",
        "id": scryfall_id,
        "oracle_id": oracle_id,
        "name": name,
        "lang": lang,
        "rarity": rarity,
        "released_at": released_at,
        "set": set_code,
        "set_name": set_code.upper(),
        "set_type": set_type,
        "legalities": {},
        "prices": {"usd": None, "usd_foil": None, "usd_etched": None},
    }
    if type_line is not None:
        card["type_line"] = type_line
    card.update(extra)
    return card


@pytest.fixture
def make_reference() -> Callable[..., dict[str, Any]]:
    """Factory for reference (Scryfall bulk data) card records."""
    return reference_card


@pytest.fixture
def sample_reference_cards() -> list[dict[str, Any]]:
    """Small reference dataset covering reprints, promos and multi-faced cards."""
    return [
        {"object": "related_card", "id": "not-a-card"},
        reference_card(
            BOLT_LEA,
            "Lightning Bolt",
            "oracle-bolt",
            released_at="1993-08-05",
            set_code="lea",
            set_type="core",
            mana_cost="{R}",
            cmc=1.0,
            colors=["R"],
            color_identity=["R"],
            oracle_text="Lightning Bolt deals 3 damage to any target.",
            legalities={"oldschool": "legal", "premodern": "not_legal", "legacy": "legal"},
            prices={"usd": "450.00", "usd_foil": None, "usd_etched": None},
        ),
        reference_card(
            BOLT_M10,
            "Lightning Bolt",
            "oracle-bolt",
            released_at="2009-07-17",
            set_code="m10",
            set_type="core",
            mana_cost="{R}",
            cmc=1.0,
            colors=["R"],
            color_identity=["R"],
            legalities={"modern": "legal", "legacy": "legal"},
            prices={"usd": "2.50", "usd_foil": "12.00", "usd_etched": None},
        ),
        reference_card(
            BOLT_PROMO,
            "Lightning Bolt",
            "oracle-bolt",
            rarity="rare",
            released_at="2020-01-01",
            set_code="pbolt",
            set_type="promo",
            colors=["R"],
        ),
        reference_card(
            FOW_ALL,
            "Force of Will",
            "oracle-fow",
            rarity="uncommon",
            released_at="1996-06-10",
            set_code="all",
            mana_cost="{3}{U}{U}",
            colors=["U"],
            color_identity=["U"],
            legalities={"premodern": "legal", "legacy": "legal"},
        ),
        reference_card(
            FOW_EMA,
            "Force of Will",
            "oracle-fow",
            rarity="mythic",
            released_at="2016-06-10",
            set_code="ema",
            set_type="masters",
            mana_cost="{3}{U}{U}",
            colors=["U"],
            color_identity=["U"],
            legalities={"legacy": "legal"},
        ),
        reference_card(
            SPECTER_LEA,
            "Hypnotic Specter",
            "oracle-specter",
            rarity="rare",
            released_at="1993-08-05",
            set_code="lea",
            type_line="Creature — Specter",
            colors=["B"],
            keywords=["Flying"],
        ),
        reference_card(
            SPECTER_4ED,
            "Hypnotic Specter",
            "oracle-specter",
            rarity="uncommon",
            released_at="1995-04-01",
            set_code="4ed",
            type_line="Creature — Specter",
            colors=["B"],
            keywords=["Flying"],
        ),
        reference_card(
            FOREST_LEA,
            "Forest",
            "oracle-forest",
            released_at="1993-08-05",
            set_code="lea",
            type_line="Basic Land — Forest",
            colors=[],
            legalities={"oldschool": "legal", "premodern": "legal"},
        ),
        reference_card(
            DELVER_ISD,
            "Delver of Secrets // Insectile Aberration",
            "oracle-delver",
            released_at="2011-09-30",
            set_code="isd",
            type_line=None,
            color_identity=["U"],
            keywords=["Transform", "Flying"],
            card_faces=[
                {
                    "object": "card_face",
                    "name": "Delver of Secrets",
                    "mana_cost": "{U}",
                    "type_line": "Creature — Human Wizard",
                    "colors": ["U"],
                    "power": "1",
                    "toughness": "1",
                },
                {
                    "object": "card_face",
                    "name": "Insectile Aberration",
                    "mana_cost": "",
                    "type_line": "Creature — Human Insect",
                    "colors": ["U"],
                    "power": "3",
                    "toughness": "2",
                },
            ],
        ),
    ]


def write_bulk_file(path: Path, cards: Sequence[dict[str, Any]]) -> Path:
    path.write_text(json.dumps(list(cards)), encoding="utf-8")
    return path


@pytest.fixture
def bulk_path(tmp_path: Path, sample_reference_cards: list[dict[str, Any]]) -> Path:
    """Reference dataset written as a bulk data JSON array."""
    return write_bulk_file(tmp_path / "default-cards.json", sample_reference_cards)


def write_csv_file(
    path: Path,
    rows: Sequence[dict[str, str]],
    fieldnames: Sequence[str] | None = None,
) -> Path:
    if fieldnames is None:
        fieldnames = list(rows[0]) if rows else ["Scryfall ID", "Quantity"]
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    return path


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a collection CSV file into tmp_path."""

    def _write(
        name: str,
        rows: Sequence[dict[str, str]],
        fieldnames: Sequence[str] | None = None,
        directory: Path | None = None,
    ) -> Path:
        target = directory or tmp_path
        target.mkdir(parents=True, exist_ok=True)
        return write_csv_file(target / name, rows, fieldnames)

    return _write


@pytest.fixture
def make_card() -> Callable[..., NormalizedCard]:
    """Factory for NormalizedCard instances with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make(name: str = "Test Card", **fields: Any) -> NormalizedCard:
        fields.setdefault("scryfall_id", f"00000000-0000-4000-9000-{next(counter):012d}")
        fields.setdefault("oracle_id", f"oracle-{name.lower().replace(' ', '-')}")
        fields.setdefault("type_line", "Instant")
        fields.setdefault("norm_type", "Instant")
        fields.setdefault("filename", "collection")
        return NormalizedCard(name=name, **fields)

    return _make
