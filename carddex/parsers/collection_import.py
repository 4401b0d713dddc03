"""
Parser for owned-card collection CSV exports.

Supports the ManaBox and Archidekt CSV dialects:
- Identity: "Scryfall ID" / "scryfall ID"
- Quantity: "Quantity" / "quantity"
- Name (optional): "Name" / "card name"
- Finish (optional): "Foil" / "Finish"
- Language (optional): "Language"
- Tags (optional): "Tags" / "Category"

Any other column is kept verbatim in `csv_extra` for export passthrough.
"""

import csv
import re
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path

from carddex.models.failure import MalformedRowError
from carddex.models.owned_card import OwnedCardRecord
from carddex.models.reference import normalize_lang_code

# Basic 8-4-4-4-12 hexadecimal UUID test
UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

ID_COLUMNS = ("Scryfall ID", "scryfall ID")
QUANTITY_COLUMNS = ("Quantity", "quantity")
NAME_COLUMNS = ("Name", "card name")
FINISH_COLUMNS = ("Foil", "Finish")
LANGUAGE_COLUMNS = ("Language",)
TAG_COLUMNS = ("Tags", "Category")

KNOWN_COLUMNS = frozenset(
    ID_COLUMNS + QUANTITY_COLUMNS + NAME_COLUMNS + FINISH_COLUMNS + LANGUAGE_COLUMNS + TAG_COLUMNS
)

FINISHES = frozenset({"normal", "foil", "etched"})


def _first_value(row: Mapping[str, str | None], columns: Iterable[str]) -> str | None:
    for column in columns:
        value = row.get(column)
        if value is not None:
            return value.strip()
    return None


def normalize_finish(value: str | None) -> str:
    """Map export finish values ("Foil", "etched", "") to normal / foil / etched."""
    finish = (value or "").strip().lower()
    return finish if finish in FINISHES else "normal"


def parse_tags(row: Mapping[str, str | None]) -> list[str]:
    """
    Extract user tags from platform tag / category columns.

    Tags are trimmed, lowercased, split on commas and deduplicated in
    first-seen order.
    """
    tags: list[str] = []
    for column in TAG_COLUMNS:
        value = row.get(column)
        if not value:
            continue
        for part in value.split(","):
            tag = part.strip().lower()
            if tag and tag not in tags:
                tags.append(tag)
    return tags


class ImportIndex:
    """
    Owned-card records from a single CSV source, keyed by identity.

    Rows with the same identity and variant (finish, declared language)
    are coalesced by summing quantity; every other field is kept from the
    first occurrence.
    """

    def __init__(self, filename: str = "") -> None:
        self.filename = filename
        self._records: dict[str, list[OwnedCardRecord]] = {}

    @classmethod
    def from_csv(cls, filepath: str | Path) -> "ImportIndex":
        """
        Parse a CSV file into a new index named after the file.

        Raises:
            MalformedRowError: On the first invalid row
        """
        path = Path(filepath)
        index = cls(filename=path.stem)
        index.read_csv(path)
        return index

    @classmethod
    def from_rows(
        cls, rows: Iterable[Mapping[str, str | None]], filename: str = ""
    ) -> "ImportIndex":
        """Build an index from already parsed CSV rows (dicts keyed by header)."""
        index = cls(filename=filename)
        index.add_rows(rows)
        return index

    def read_csv(self, filepath: str | Path) -> None:
        """Parse a CSV file adding its rows to this index."""
        path = Path(filepath)
        with open(path, encoding="utf-8-sig", newline="") as f:
            self.add_rows(csv.DictReader(f), filepath=path)

    def add_rows(
        self,
        rows: Iterable[Mapping[str, str | None]],
        filepath: str | Path | None = None,
    ) -> None:
        """
        Add parsed CSV rows (dicts keyed by header name) to this index.

        Args:
            rows: Data rows; a csv.DictReader exposes its header via `fieldnames`
            filepath: Source path used in error messages

        Raises:
            MalformedRowError: On missing required columns or an invalid row
        """
        source = filepath if filepath is not None else self.filename

        fieldnames = getattr(rows, "fieldnames", None)
        if fieldnames is not None:
            self._check_header(fieldnames, source)

        # Header is row 1
        for row_number, row in enumerate(rows, start=2):
            self.add(self._parse_row(row, row_number, source))

    def add(self, record: OwnedCardRecord) -> OwnedCardRecord:
        """Add a record, coalescing it into an existing identity + variant."""
        existing = self._records.setdefault(record.scryfall_id, [])
        for current in existing:
            if current.variant == record.variant:
                current.quantity += record.quantity
                return current
        existing.append(record)
        return record

    def get(self, scryfall_id: str) -> list[OwnedCardRecord]:
        """All variants held for an identity (empty list when absent)."""
        return list(self._records.get(scryfall_id, ()))

    def has(self, scryfall_id: str) -> bool:
        return scryfall_id in self._records

    def delete(self, scryfall_id: str) -> bool:
        """Remove every variant of an identity. Returns whether any existed."""
        return self._records.pop(scryfall_id, None) is not None

    def keys(self) -> Iterator[str]:
        return iter(self._records)

    def records(self) -> Iterator[OwnedCardRecord]:
        for variants in self._records.values():
            yield from variants

    def total_quantity(self) -> int:
        return sum(record.quantity for record in self.records())

    def __contains__(self, scryfall_id: object) -> bool:
        return scryfall_id in self._records

    def __len__(self) -> int:
        """Number of unique identity + variant records."""
        return sum(len(variants) for variants in self._records.values())

    # ------------------------------------------------------------------
    # Row parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _check_header(fieldnames: Iterable[str], source: str | Path) -> None:
        columns = set(fieldnames)
        if columns.isdisjoint(ID_COLUMNS) or columns.isdisjoint(QUANTITY_COLUMNS):
            raise MalformedRowError(
                source, 1, "is missing required 'Quantity' or 'Scryfall ID' columns"
            )

    def _parse_row(
        self, row: Mapping[str, str | None], row_number: int, source: str | Path
    ) -> OwnedCardRecord:
        scryfall_id = _first_value(row, ID_COLUMNS)
        raw_quantity = _first_value(row, QUANTITY_COLUMNS)

        if scryfall_id is None or raw_quantity is None:
            raise MalformedRowError(
                source, row_number, "is missing required 'Quantity' or 'Scryfall ID' fields"
            )

        try:
            quantity = int(raw_quantity)
        except ValueError:
            quantity = 0
        if quantity < 1:
            raise MalformedRowError(source, row_number, f"has invalid quantity '{raw_quantity}'")

        if not UUID_PATTERN.fullmatch(scryfall_id):
            raise MalformedRowError(source, row_number, f"has invalid UUID '{scryfall_id}'")

        csv_extra = {
            key: value
            for key, value in row.items()
            if key is not None and key not in KNOWN_COLUMNS and value is not None
        }

        return OwnedCardRecord(
            scryfall_id=scryfall_id,
            quantity=quantity,
            filename=self.filename,
            finish=normalize_finish(_first_value(row, FINISH_COLUMNS)),
            user_lang=normalize_lang_code(_first_value(row, LANGUAGE_COLUMNS)),
            name=_first_value(row, NAME_COLUMNS) or None,
            user_tags=parse_tags(row),
            csv_extra=csv_extra,
        )
