from carddex.parsers.collection_import import ImportIndex, normalize_finish, parse_tags
from carddex.parsers.scryfall import ScryfallSource
from carddex.parsers.type_line import classify_type_line, resolve_type_line

__all__ = [
    "ImportIndex",
    "ScryfallSource",
    "classify_type_line",
    "normalize_finish",
    "parse_tags",
    "resolve_type_line",
]
