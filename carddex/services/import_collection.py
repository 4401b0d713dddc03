"""
Import collection service.

Aggregates the ImportIndex of every owned-card CSV source and tracks
which source files belong to the non-owned groups (decks, external,
proxy). During correlation the engine deletes identities as they are
matched, so whatever remains afterwards is an unmatched holding.
"""

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

from carddex.config import GROUP_KINDS
from carddex.models.failure import InvalidPathError
from carddex.models.owned_card import OwnedCardRecord
from carddex.parsers.collection_import import ImportIndex

logger = logging.getLogger(__name__)


class ImportCollection:
    """Ordered list of ImportIndex instances with cross-index lookup."""

    def __init__(self, indexes: list[ImportIndex] | None = None) -> None:
        self._indexes: list[ImportIndex] = list(indexes or [])
        self._groups: dict[str, set[str]] = {}

    @classmethod
    def load(
        cls,
        input_path: str | Path,
        groups: Mapping[str, str | Path | None] | None = None,
    ) -> "ImportCollection":
        """
        Load the main collection path and any group paths.

        Args:
            input_path: A CSV file or a directory of CSV files
            groups: Optional group name -> CSV file / directory path

        Raises:
            InvalidPathError: If a path is neither a file nor a directory
            MalformedRowError: If any CSV file has an invalid row
            ValueError: If a group name is not a known group kind
        """
        collection = cls()
        collection.load_path(input_path)

        for group, path in (groups or {}).items():
            if path is not None:
                collection.load_path(path, group=group)

        return collection

    def load_path(self, path: str | Path, group: str | None = None) -> None:
        """Load a single CSV file, or every *.csv file of a directory in name order."""
        if group is not None and group not in GROUP_KINDS:
            raise ValueError(f"Unknown group: {group}")

        path = Path(path)
        if path.is_dir():
            logger.debug("Loading directory path: %s", path)
            files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix == ".csv")
        elif path.is_file():
            files = [path]
        else:
            raise InvalidPathError(path, expected="CSV file or directory")

        for file in files:
            logger.debug("Loading file path: %s", file)
            self.add_index(ImportIndex.from_csv(file), group=group)

        logger.info(
            "Done extracting %d CSV collection file(s)%s",
            len(files),
            f" (Group: {group})" if group else "",
        )

    def add_index(self, index: ImportIndex, group: str | None = None) -> None:
        """Append an index, optionally tagging its source file with a group."""
        if group is not None:
            if group not in GROUP_KINDS:
                raise ValueError(f"Unknown group: {group}")
            self._groups.setdefault(group, set()).add(index.filename)
        self._indexes.append(index)

    # ------------------------------------------------------------------
    # Lookup / consumption
    # ------------------------------------------------------------------

    def get(self, scryfall_id: str) -> list[OwnedCardRecord]:
        """All records across every index matching an identity."""
        result: list[OwnedCardRecord] = []
        for index in self._indexes:
            result.extend(index.get(scryfall_id))
        return result

    def has(self, scryfall_id: str) -> bool:
        return any(index.has(scryfall_id) for index in self._indexes)

    def delete(self, scryfall_id: str) -> None:
        """Remove an identity from every index."""
        for index in self._indexes:
            index.delete(scryfall_id)

    def __contains__(self, scryfall_id: object) -> bool:
        return isinstance(scryfall_id, str) and self.has(scryfall_id)

    def keys(self) -> Iterator[str]:
        """Unique identities across all indexes."""
        seen: set[str] = set()
        for index in self._indexes:
            for key in index.keys():
                if key not in seen:
                    seen.add(key)
                    yield key

    def records(self) -> Iterator[OwnedCardRecord]:
        """Every remaining record; an identity may appear once per index."""
        for index in self._indexes:
            yield from index.records()

    @property
    def size(self) -> int:
        """Total count of identity + variant records remaining."""
        return sum(len(index) for index in self._indexes)

    def __len__(self) -> int:
        return self.size

    @property
    def indexes(self) -> tuple[ImportIndex, ...]:
        return tuple(self._indexes)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    @property
    def groups(self) -> dict[str, list[str]]:
        """Group name -> sorted source filenames, for CardDB metadata."""
        return {group: sorted(filenames) for group, filenames in self._groups.items()}

    def is_in_group(self, record: OwnedCardRecord, group: str) -> bool:
        return record.filename in self._groups.get(group, ())

    def get_group(self, record: OwnedCardRecord) -> str | None:
        """The first group the record's source file belongs to, if any."""
        for group in GROUP_KINDS:
            if self.is_in_group(record, group):
                return group
        return None
