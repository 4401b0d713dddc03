"""
carddex services.

Correlation, rarity normalization, storage, filtering and categorization
of owned card collections.
"""

from carddex.services.card_fields import unique_card_key
from carddex.services.card_filter import (
    CardFilterConfig,
    FilterProperties,
    PriceFilter,
    TextSearch,
    build_filter_config,
    build_text_search,
    describe_filter,
    has_filter_checks,
    matches_filter,
    parse_price_filter,
)
from carddex.services.card_store import CardStore, CardStream, CardStreamDiff
from carddex.services.import_collection import ImportCollection
from carddex.services.rarity_normalizer import RarityChange, RarityNormalizer
from carddex.services.correlation import ConversionResult, convert_collection
from carddex.services.categorize import (
    Bucket,
    CategoryBucket,
    SortedFormat,
    kind_category_name,
    rarity_for_format,
    sort_by_name_then_price,
    sort_by_type,
    sort_formats,
)

__all__ = [
    "Bucket",
    "CardFilterConfig",
    "CardStore",
    "CardStream",
    "CardStreamDiff",
    "CategoryBucket",
    "ConversionResult",
    "FilterProperties",
    "ImportCollection",
    "PriceFilter",
    "RarityChange",
    "RarityNormalizer",
    "SortedFormat",
    "TextSearch",
    "build_filter_config",
    "build_text_search",
    "convert_collection",
    "describe_filter",
    "has_filter_checks",
    "kind_category_name",
    "matches_filter",
    "parse_price_filter",
    "rarity_for_format",
    "sort_by_name_then_price",
    "sort_by_type",
    "sort_formats",
    "unique_card_key",
]
