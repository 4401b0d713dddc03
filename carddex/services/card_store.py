"""
CardDB store.

Persists normalized cards as a self-describing JSON artifact:

    {
      "meta": {"type": "inventory", "groups": {...}, ...},
      "cards": [
        {...one card per line...}
      ]
    }

Loading reads and validates only the `meta` header before handing out a
CardStream; cards are streamed lazily with ijson and never materialized
unless `get_all()` is called explicitly. `.json.gz` files are read and
written transparently.
"""

import gzip
import json
import logging
import os
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import IO, Any

import ijson
from pydantic import ValidationError

from carddex.config import GENERATOR_VERSION, GROUP_KINDS, SCHEMA_VERSION
from carddex.models.card import NormalizedCard
from carddex.models.failure import InvalidPathError, MetadataValidationError
from carddex.models.metadata import CardDBMetadata, DBKind
from carddex.services.card_fields import unique_card_key
from carddex.services.card_filter import CardFilterConfig, has_filter_checks, matches_filter

logger = logging.getLogger(__name__)

CARD_DB_SUFFIXES = (".json", ".json.gz")


def _is_card_db_path(path: Path) -> bool:
    return path.name.endswith(CARD_DB_SUFFIXES)


def _db_stem(path: Path) -> str:
    name = path.name
    for suffix in CARD_DB_SUFFIXES[::-1]:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _open_text(path: Path, mode: str, gzipped: bool | None = None) -> IO[str]:
    if gzipped is None:
        gzipped = path.name.endswith(".gz")
    if gzipped:
        return gzip.open(path, f"{mode}t", encoding="utf-8")
    return open(path, mode, encoding="utf-8")


def _open_binary(path: Path) -> IO[bytes]:
    if path.name.endswith(".gz"):
        return gzip.open(path, "rb")
    return open(path, "rb")


def sort_by_name(cards: Iterable[NormalizedCard]) -> list[NormalizedCard]:
    """Cards ordered by case-insensitive name (stable)."""
    return sorted(cards, key=lambda card: card.name.casefold())


def _load_meta(path: Path) -> dict[str, Any] | None:
    with _open_binary(path) as f:
        for meta in ijson.items(f, "meta", use_float=True):
            return meta if isinstance(meta, dict) else None
    return None


class CardStore:
    """Save and load CardDB artifacts."""

    @staticmethod
    def save(
        filepath: str | Path,
        cards: Sequence[NormalizedCard],
        meta: CardDBMetadata | Mapping[str, Any],
    ) -> CardDBMetadata:
        """
        Save cards as a CardDB artifact.

        Generator version, schema version and timestamp are always set here.
        When the metadata has no name the file name is used.

        Args:
            filepath: Output path ending in `.json` or `.json.gz`
            cards: Cards to write; persisted sorted by name
            meta: Metadata (kind, optional format, groups, optional name)

        Returns:
            The metadata written to the artifact

        Raises:
            ValueError: If the path has the wrong extension or is a directory
            MetadataValidationError: If the kind / format pairing is inconsistent
        """
        path = Path(filepath)
        if not _is_card_db_path(path):
            raise ValueError(f"CardDB file path must end with .json: {path}")
        if path.is_dir():
            raise ValueError(f"CardDB file path is a directory: {path}")

        raw_meta = meta.model_dump() if isinstance(meta, CardDBMetadata) else dict(meta)
        raw_meta.update(
            generator_version=GENERATOR_VERSION,
            schema_version=SCHEMA_VERSION,
            generated_at=datetime.now(UTC),
        )
        if not raw_meta.get("name"):
            raw_meta["name"] = _db_stem(path)

        try:
            metadata = CardDBMetadata.model_validate(raw_meta)
        except ValidationError as e:
            raise MetadataValidationError(f"CardDB metadata failed validation: {e}", path) from e

        ordered = sort_by_name(cards)

        # Written beside the target and moved into place once complete
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            with _open_text(tmp_path, "w", gzipped=path.name.endswith(".gz")) as f:
                f.write('{\n  "meta": ')
                f.write(_dumps(metadata.model_dump(mode="json", exclude_none=True)))
                f.write(',\n  "cards": [\n')
                for i, card in enumerate(ordered):
                    line = _dumps(card.model_dump(mode="json", exclude_none=True))
                    f.write(f"    {line}{',' if i < len(ordered) - 1 else ''}\n")
                f.write("  ]\n}\n")
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug("Saved %d cards to %s", len(ordered), path)
        return metadata

    @staticmethod
    def load(filepath: str | Path) -> "CardStream":
        """
        Open a CardDB artifact for streaming.

        Only the metadata header is parsed here.

        Raises:
            InvalidPathError: If the path is not a file
            MetadataValidationError: If metadata is missing or invalid
        """
        path = Path(filepath)
        if not path.is_file():
            raise InvalidPathError(path, expected="CardDB file")

        try:
            raw_meta = _load_meta(path)
        except (ijson.JSONError, OSError, UnicodeDecodeError) as e:
            raise MetadataValidationError(f"Could not read CardDB metadata: {e}", path) from e

        if not raw_meta:
            raise MetadataValidationError(f"Could not load CardDB metadata for {path}", path)

        try:
            meta = CardDBMetadata.model_validate(raw_meta)
        except ValidationError as e:
            raise MetadataValidationError(f"CardDB metadata failed validation: {e}", path) from e

        return CardStream(path, meta)

    @staticmethod
    def load_all(
        dirpath: str | Path,
        kind: DBKind | str | Iterable[DBKind | str] | None = None,
        fmt: str | Iterable[str] | None = None,
        walk: bool = False,
    ) -> list["CardStream"]:
        """
        Load every CardDB artifact in a directory.

        Files that fail to load are skipped with a warning.

        Args:
            dirpath: Directory to scan
            kind: Only artifacts of this kind (or kinds)
            fmt: Only `sorted_format` artifacts of this game format (or formats)
            walk: Scan subdirectories recursively

        Raises:
            InvalidPathError: If dirpath is not a directory
        """
        directory = Path(dirpath)
        if not directory.is_dir():
            raise InvalidPathError(directory, expected="directory")

        kinds: set[DBKind] | None = None
        if kind is not None:
            values = [kind] if isinstance(kind, (str, DBKind)) else list(kind)
            kinds = {DBKind(value) for value in values}

        formats: set[str] | None = None
        if fmt is not None:
            formats = {fmt} if isinstance(fmt, str) else set(fmt)

        candidates = directory.rglob("*") if walk else directory.iterdir()
        files = sorted(p for p in candidates if p.is_file() and _is_card_db_path(p))

        results: list[CardStream] = []
        for path in files:
            try:
                stream = CardStore.load(path)
            except MetadataValidationError as e:
                logger.warning("Skipping CardDB %s: %s", path, e.message)
                continue

            if kinds is not None and stream.meta.type not in kinds:
                continue

            if formats is not None:
                if stream.meta.type is not DBKind.SORTED_FORMAT:
                    continue
                if stream.meta.format not in formats:
                    continue

            results.append(stream)

        return results


@dataclass
class CardStreamDiff:
    """
    Quantity diff between a baseline and a comparison CardStream.

    Keys are composite card keys (`scryfall_id:finish:lang`).
    """

    added: set[str] = field(default_factory=set)
    """Keys present only in the comparison."""

    removed: set[str] = field(default_factory=set)
    """Keys present only in the baseline."""

    changed: dict[str, int] = field(default_factory=dict)
    """Quantity delta (comparison - baseline) for shared keys."""

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


class CardStream:
    """Streaming reader over one CardDB artifact."""

    def __init__(self, filepath: str | Path, meta: CardDBMetadata) -> None:
        self.filepath = Path(filepath)
        self.meta = meta
        self._groups = meta.group_sets()

    @property
    def name(self) -> str:
        return self.meta.name or _db_stem(self.filepath)

    def stream(
        self,
        filter: CardFilterConfig | None = None,
        groups: Mapping[str, bool] | None = None,
        exportable: bool = False,
    ) -> Iterator[NormalizedCard]:
        """
        Lazily iterate the cards of the artifact.

        Args:
            filter: Optional card filter
            groups: Group name -> False to exclude cards of that group
            exportable: Exclude every non-owned group (decks, external, proxy)
                regardless of `groups`

        Yields:
            Cards passing the filter and group exclusions
        """
        if exportable:
            excluded = set(GROUP_KINDS)
        else:
            excluded = {group for group, include in (groups or {}).items() if include is False}

        check_filter = has_filter_checks(filter)

        with _open_binary(self.filepath) as f:
            for value in ijson.items(f, "cards.item", use_float=True):
                if not isinstance(value, dict) or value.get("object") != "card":
                    continue

                try:
                    card = NormalizedCard.model_validate(value)
                except ValidationError as e:
                    logger.warning("Skipping invalid card entry in %s: %s", self.filepath, e)
                    continue

                if any(self.is_card_group(card, group) for group in excluded):
                    continue

                if check_filter and not matches_filter(card, filter):  # type: ignore[arg-type]
                    continue

                yield card

    def __iter__(self) -> Iterator[NormalizedCard]:
        return self.stream()

    def get_all(self) -> list[NormalizedCard]:
        """Synchronously load every card of the artifact into memory."""
        with _open_text(self.filepath, "r") as f:
            db = json.load(f)

        cards = db.get("cards") if isinstance(db, dict) else None
        if not isinstance(cards, list):
            return []
        return [NormalizedCard.model_validate(card) for card in cards]

    def is_card_group(self, card: NormalizedCard, group: str) -> bool:
        return card.filename in self._groups.get(group, ())

    def get_card_group(self, card: NormalizedCard) -> str | None:
        for group in GROUP_KINDS:
            if self.is_card_group(card, group):
                return group
        return None

    def is_card_exportable(self, card: NormalizedCard) -> bool:
        """Cards of any group (decks, external, proxy) are not exportable."""
        return self.get_card_group(card) is None

    def get_quantity_map(
        self,
        filter: CardFilterConfig | None = None,
        groups: Mapping[str, bool] | None = None,
        exportable: bool = True,
    ) -> dict[str, int]:
        """Total quantity per composite card key; exportable cards by default."""
        quantities: dict[str, int] = {}
        for card in self.stream(filter=filter, groups=groups, exportable=exportable):
            key = unique_card_key(card)
            quantities[key] = quantities.get(key, 0) + card.quantity
        return quantities

    def diff(
        self,
        comparison: "CardStream",
        filter: CardFilterConfig | None = None,
        groups: Mapping[str, bool] | None = None,
        exportable: bool = True,
    ) -> CardStreamDiff:
        """Quantity diff treating this stream as the baseline."""
        baseline = self.get_quantity_map(filter=filter, groups=groups, exportable=exportable)
        target = comparison.get_quantity_map(filter=filter, groups=groups, exportable=exportable)

        changed: dict[str, int] = {}
        for key in baseline.keys() & target.keys():
            delta = target[key] - baseline[key]
            if delta:
                changed[key] = delta

        return CardStreamDiff(
            added=set(target.keys() - baseline.keys()),
            removed=set(baseline.keys() - target.keys()),
            changed=changed,
        )
