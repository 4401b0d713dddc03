"""
Search sorted collections for cards.

Every sorted CardDB below a directory is streamed with a card filter and
each match is logged with its collection, quantity and source file:

    python -m carddex.jobs.find_cards "force of will" sorted/
"""

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path

from carddex.config import settings
from carddex.jobs.filter_collection import add_filter_arguments, filter_from_args
from carddex.models.card import NormalizedCard
from carddex.models.metadata import DBKind
from carddex.services.card_filter import CardFilterConfig, describe_filter, has_filter_checks
from carddex.services.card_store import CardStore

logger = logging.getLogger(__name__)


@dataclass
class CardMatch:
    """A card found in one sorted collection."""

    collection: str
    filepath: Path
    card: NormalizedCard


def run_find(dirpath: Path, config: CardFilterConfig) -> list[CardMatch]:
    """
    Search every sorted CardDB below a directory.

    Raises:
        ValueError: If the filter has no checks
        InvalidPathError: If dirpath is not a directory
    """
    if not has_filter_checks(config):
        raise ValueError("Aborting as no search options provided")

    collections = CardStore.load_all(
        dirpath, kind=[DBKind.SORTED, DBKind.SORTED_FORMAT], walk=True
    )

    logger.info("Searching %d sorted collections: %s", len(collections), dirpath)
    for line in describe_filter(config):
        logger.info(line)

    matches: list[CardMatch] = []
    for collection in collections:
        logger.debug("Searching collection: %s", collection.name)

        for card in collection.stream(filter=config):
            logger.info(
                "[%s] name: %s; quantity: %d; filename: %s",
                collection.name,
                card.name,
                card.quantity,
                card.filename,
            )
            matches.append(CardMatch(collection.name, collection.filepath, card))

    logger.info("Found %d matching card entries", len(matches))
    return matches


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Search sorted CardDB collections")
    parser.add_argument("input", help="Text to search for")
    parser.add_argument("directory", type=Path, help="Directory of sorted CardDBs")
    add_filter_arguments(parser)

    args = parser.parse_args()

    try:
        config = filter_from_args(args, text=args.input)
    except ValueError as e:
        parser.error(str(e))

    if not has_filter_checks(config):
        parser.error("Aborting as no search options provided")

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    run_find(args.directory, config)


if __name__ == "__main__":
    main()
