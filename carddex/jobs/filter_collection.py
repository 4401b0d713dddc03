"""
Extract the cards of a CardDB that pass a filter into a new CardDB.

The output keeps the kind, format and group metadata of the source:

    python -m carddex.jobs.filter_collection inventory.json blue.json --color-identity U
"""

import argparse
import logging
from pathlib import Path

from carddex.config import settings
from carddex.models.card import NormalizedCard
from carddex.models.metadata import CardDBMetadata
from carddex.services.card_filter import (
    TEXT_FIELDS,
    CardFilterConfig,
    build_filter_config,
    describe_filter,
    has_filter_checks,
)
from carddex.services.card_store import CardStore

logger = logging.getLogger(__name__)


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    """Card filter options shared by the extract and search jobs."""
    parser.add_argument(
        "--fields",
        nargs="+",
        default=["name"],
        choices=sorted(TEXT_FIELDS),
        help="Card fields the search text is tested against (default: name)",
    )
    parser.add_argument("--case-sensitive", action="store_true", help="Case sensitive search")
    parser.add_argument("--exact", action="store_true", help="Search text matches a whole field")
    parser.add_argument(
        "--word-boundary", action="store_true", help="Search text matches whole words only"
    )
    parser.add_argument("--border", nargs="+", default=None, help="Border colors, e.g. black")
    parser.add_argument(
        "--color-identity", nargs="+", default=None, help="Colors every card must include"
    )
    parser.add_argument("--cmc", type=float, default=None, help="Converted mana cost")
    parser.add_argument("--formats", nargs="+", default=[], help="Formats cards must be legal in")
    parser.add_argument("--keywords", nargs="+", default=[], help="Keywords cards must have")
    parser.add_argument("--mana-cost", default=None, help="Exact mana cost, e.g. '{1}{U}'")
    parser.add_argument("--price", default=None, help="Price expression, e.g. '<10', or 'null'")


def filter_from_args(args: argparse.Namespace, text: str | None = None) -> CardFilterConfig:
    """
    Build a filter from parsed job arguments.

    Raises:
        ValueError: On invalid filter options
    """
    return build_filter_config(
        text=text,
        fields=args.fields,
        ignore_case=not args.case_sensitive,
        exact=args.exact,
        word_boundary=args.word_boundary,
        border=args.border,
        color_identity=args.color_identity,
        cmc=args.cmc,
        formats=args.formats,
        keywords=args.keywords,
        mana_cost=args.mana_cost,
        price=args.price,
    )


def run_filter(
    db_path: Path,
    output_path: Path,
    config: CardFilterConfig,
) -> list[NormalizedCard]:
    """
    Save the cards of a CardDB passing the filter as a new CardDB.

    Nothing is written when no card passes.

    Raises:
        ValueError: If the filter has no checks
        InvalidPathError: If the source CardDB does not exist
        MetadataValidationError: If the source metadata is invalid
    """
    if not has_filter_checks(config):
        raise ValueError("Aborting as no filtering options provided")

    logger.info("Filtering CardDB: %s", db_path)
    for line in describe_filter(config):
        logger.info(line)

    try:
        db = CardStore.load(db_path)
        cards = list(db.stream(filter=config))

        if not cards:
            logger.warning("No cards passed the filter; CardDB not written: %s", output_path)
            return cards

        meta = CardDBMetadata(type=db.meta.type, format=db.meta.format, groups=db.meta.groups)
        CardStore.save(output_path, cards, meta)
    except Exception as e:
        logger.error("Failed to filter CardDB: %s", e)
        raise

    logger.info("Finished filtering CardDB: %s", output_path)
    logger.info("Filtered %d card entries from %s", len(cards), db.name)
    return cards


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Extract filtered cards into a new CardDB")
    parser.add_argument("db", type=Path, help="Source CardDB path")
    parser.add_argument("output", type=Path, help="Output CardDB path")
    parser.add_argument("--search", default=None, help="Text to search for")
    add_filter_arguments(parser)

    args = parser.parse_args()

    try:
        config = filter_from_args(args, text=args.search)
    except ValueError as e:
        parser.error(str(e))

    if not has_filter_checks(config):
        parser.error("Aborting as no filtering options provided")

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    run_filter(args.db, args.output, config)


if __name__ == "__main__":
    main()
