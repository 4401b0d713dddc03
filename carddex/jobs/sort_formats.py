"""
Sort an inventory CardDB by format legality, rarity and kind.

Each non-empty format bucket is saved as its own CardDB under the output
directory (`<output>/<format>/<format>.json`):

    python -m carddex.jobs.sort_formats inventory.json sorted/ premodern modern
"""

import argparse
import logging
from pathlib import Path

from carddex.config import settings
from carddex.services.card_store import CardStore
from carddex.services.categorize import SortedFormat, sort_formats

logger = logging.getLogger(__name__)


def run_sort(
    db_path: Path,
    output_dir: Path,
    formats: list[str],
    mark: set[str] | None = None,
    sort_by_type: bool = False,
    high_value: str | None = None,
) -> list[SortedFormat]:
    """Sort a CardDB and save every sorted collection."""
    logger.info("Sorting CardDB: %s", db_path)
    logger.info("Formats: %s", ", ".join(formats))

    db = CardStore.load(db_path)

    sorted_formats = sort_formats(
        db.stream(),
        formats,
        mark=mark,
        sort_by_type=sort_by_type,
        high_value=high_value,
        source_meta=db.meta,
    )

    for sorted_format in sorted_formats:
        path = sorted_format.save(output_dir)
        logger.info("Saved %s (%d cards): %s", sorted_format.print_name, sorted_format.size, path)

    logger.info("Finished sorting card collection: %s", output_dir)
    return sorted_formats


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Sort a CardDB by game format")
    parser.add_argument("db", type=Path, help="Inventory CardDB path")
    parser.add_argument("output", type=Path, help="Output directory")
    parser.add_argument("formats", nargs="+", help="Game formats in priority order")
    parser.add_argument(
        "--mark",
        nargs="+",
        default=[],
        help="Source filenames to check for merge conflicts",
    )
    parser.add_argument("--by-type", action="store_true", help="Also sort by normalized type")
    parser.add_argument("--high-value", default=None, help="Price expression, e.g. '>=10'")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    run_sort(
        args.db,
        args.output,
        args.formats,
        mark=set(args.mark),
        sort_by_type=args.by_type,
        high_value=args.high_value,
    )


if __name__ == "__main__":
    main()
