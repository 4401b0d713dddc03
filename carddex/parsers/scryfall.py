"""
Scryfall bulk data reader.

Streams the reference bulk card data (a JSON array of several hundred
thousand printings, gigabytes for the all-cards dump) one record at a
time. The file is never loaded whole; every call to `stream()` reopens
it, so multi-pass algorithms simply iterate again.

Bulk data: https://scryfall.com/docs/api/bulk-data
"""

import gzip
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import IO

import ijson

from carddex.models.failure import InvalidPathError
from carddex.models.reference import ReferenceCard

logger = logging.getLogger(__name__)


def _open_binary(path: Path) -> IO[bytes]:
    if path.suffix == ".gz":
        return gzip.open(path, "rb")
    return open(path, "rb")


class ScryfallSource:
    """
    Re-openable, forward-only source of reference card records.

    Only records whose `object` discriminator is "card" are yielded.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise InvalidPathError(self.path, expected="reference bulk data file")

    def stream(self) -> Iterator[ReferenceCard]:
        """
        Lazily iterate card records from the start of the dataset.

        Yields:
            Reference card dicts with `object == "card"`
        """
        logger.debug("Streaming reference cards from %s", self.path)

        with _open_binary(self.path) as f:
            for record in ijson.items(f, "item", use_float=True):
                if isinstance(record, dict) and record.get("object") == "card":
                    yield record

    def __iter__(self) -> Iterator[ReferenceCard]:
        return self.stream()

