from carddex.models.card import CardFace, MergeMark, NormalizedCard
from carddex.models.failure import (
    FailureKind,
    InvalidPathError,
    KnownError,
    MalformedRowError,
    MetadataValidationError,
    TypeLineError,
)
from carddex.models.metadata import CardDBMetadata, DBKind, is_group_kind
from carddex.models.owned_card import OwnedCardRecord
from carddex.models.reference import (
    SUPPORTED_FORMATS,
    ReferenceCard,
    ReferenceFace,
    is_legal,
    is_supported_format,
    normalize_lang_code,
    parse_mana_cost_colors,
    parse_price,
)

__all__ = [
    "SUPPORTED_FORMATS",
    "CardDBMetadata",
    "CardFace",
    "DBKind",
    "FailureKind",
    "InvalidPathError",
    "KnownError",
    "MalformedRowError",
    "MergeMark",
    "MetadataValidationError",
    "NormalizedCard",
    "OwnedCardRecord",
    "ReferenceCard",
    "ReferenceFace",
    "TypeLineError",
    "is_group_kind",
    "is_legal",
    "is_supported_format",
    "normalize_lang_code",
    "parse_mana_cost_colors",
    "parse_price",
]
