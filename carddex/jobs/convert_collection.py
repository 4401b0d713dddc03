"""
Convert owned-card CSV exports into an inventory CardDB.

Run this job after downloading the Scryfall bulk data:

    python -m carddex.jobs.convert_collection collection/ default-cards.json inventory.json
"""

import argparse
import logging
from pathlib import Path

from carddex.config import GROUP_KINDS, settings
from carddex.parsers.scryfall import ScryfallSource
from carddex.services.correlation import ConversionResult, convert_collection
from carddex.services.import_collection import ImportCollection

logger = logging.getLogger(__name__)


def run_convert(
    input_path: Path,
    reference_path: Path,
    output_path: Path,
    groups: dict[str, Path | None] | None = None,
) -> ConversionResult:
    """Load the collection and correlate it with the reference data."""
    logger.info("Converting collection: %s", input_path)

    try:
        collection = ImportCollection.load(input_path, groups=groups)
        source = ScryfallSource(reference_path)
        result = convert_collection(source, collection, output_path=output_path)
    except Exception as e:
        logger.error("Failed to convert collection: %s", e)
        raise

    logger.info(
        "Converted %d cards (%d total) to %s", len(result.cards), result.total_quantity, output_path
    )
    return result


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Convert collection CSV files to a CardDB")
    parser.add_argument("input", type=Path, help="CSV file or directory of CSV files")
    parser.add_argument(
        "reference",
        type=Path,
        nargs="?",
        default=settings.reference_db_path,
        help=f"Scryfall bulk data JSON (default: {settings.reference_db_path})",
    )
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=settings.output_dir / "inventory.json",
        help="Output CardDB path",
    )
    for group in GROUP_KINDS:
        parser.add_argument(
            f"--{group}",
            type=Path,
            default=None,
            help=f"CSV file or directory of '{group}' group CSV files",
        )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    args.output.parent.mkdir(parents=True, exist_ok=True)

    run_convert(
        args.input,
        args.reference,
        args.output,
        groups={group: getattr(args, group) for group in GROUP_KINDS},
    )


if __name__ == "__main__":
    main()
