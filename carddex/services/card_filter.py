"""
Card filter service.

Reusable card predicate for CardDB extraction and collection search.

A filter has two stages, both optional:
- Text search: a compiled pattern tested against name, oracle text and/or
  type line. Every face of a multi-faced card is checked independently;
  printed (localized) names are checked before canonical names.
- Properties: independent attribute constraints that must all pass.

Examples:
- Blue cards with flying legal in premodern:
    FilterProperties(color_identity={"U"}, keywords=(compile("flying"),),
                     formats=("premodern",))
- Cards without a price: FilterProperties(price=parse_price_filter("null"))
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from carddex.models.card import NormalizedCard
from carddex.models.reference import COLORS, is_legal, is_supported_format, parse_price
from carddex.services import card_fields

TEXT_FIELDS = frozenset({"name", "oracle_text", "type_line"})

# "<10", ">=2.50", "<= 0.99"
PRICE_PATTERN = re.compile(r"^(?P<operator><=|>=|<|>)\s*(?P<value>-?\d+(?:\.\d+)?)$")

PriceOperator = Literal["<", "<=", ">", ">="]


@dataclass(frozen=True)
class PriceExpression:
    """Parsed price comparison such as `>=2.50`."""

    operator: PriceOperator
    raw_value: str
    value: float


@dataclass(frozen=True)
class PriceFilter:
    """Price constraint: a comparison, or `null` for cards without a price."""

    kind: Literal["null", "comparison"]
    expr: PriceExpression | None = None


@dataclass(frozen=True)
class TextSearch:
    """Compiled text search over selected card fields."""

    pattern: re.Pattern[str]
    fields: frozenset[str]
    input: str = ""
    ignore_case: bool = True
    exact: bool = False
    word_boundary: bool = False


@dataclass(frozen=True)
class FilterProperties:
    """Independent card attribute constraints. Unset constraints always pass."""

    border: frozenset[str] | None = None
    color_identity: frozenset[str] | None = None
    cmc: float | None = None
    formats: tuple[str, ...] = ()
    keywords: tuple[re.Pattern[str], ...] = ()
    mana_cost: str | None = None
    price: PriceFilter | None = None

    def is_empty(self) -> bool:
        return (
            self.border is None
            and self.color_identity is None
            and self.cmc is None
            and not self.formats
            and not self.keywords
            and self.mana_cost is None
            and self.price is None
        )


@dataclass(frozen=True)
class CardFilterConfig:
    """Complete filter configuration."""

    text: TextSearch | None = None
    properties: FilterProperties = field(default_factory=FilterProperties)


# =============================================================================
# CONFIG CONSTRUCTION
# =============================================================================


def build_text_search(
    text: str,
    fields: frozenset[str] | set[str] | tuple[str, ...] = ("name",),
    ignore_case: bool = True,
    exact: bool = False,
    word_boundary: bool = False,
) -> TextSearch:
    """
    Build a text search from user input.

    Args:
        text: Literal search text (escaped, not a raw pattern)
        fields: Any of "name", "oracle_text", "type_line"
        ignore_case: Case insensitive match
        exact: Match the whole field value
        word_boundary: Match only on word boundaries

    Raises:
        ValueError: If fields is empty or names an unknown field
    """
    selected = frozenset(fields)
    if not selected:
        raise ValueError("Text search requires at least one field")
    unknown = selected - TEXT_FIELDS
    if unknown:
        raise ValueError(f"Unknown text search fields: {', '.join(sorted(unknown))}")

    source = re.escape(text)
    if exact:
        source = f"^{source}$"
    elif word_boundary:
        source = rf"\b{source}\b"

    flags = re.IGNORECASE if ignore_case else 0

    return TextSearch(
        pattern=re.compile(source, flags),
        fields=selected,
        input=text,
        ignore_case=ignore_case,
        exact=exact,
        word_boundary=word_boundary,
    )


def parse_price_expression(text: str) -> PriceExpression | None:
    """Parse `<number`, `<=number`, `>number` or `>=number`; None if invalid."""
    if not isinstance(text, str):
        return None

    match = PRICE_PATTERN.match(text.strip())
    if not match:
        return None

    raw_value = match.group("value")
    return PriceExpression(
        operator=match.group("operator"),  # type: ignore[arg-type]
        raw_value=raw_value,
        value=float(raw_value),
    )


def parse_price_filter(text: str) -> PriceFilter | None:
    """Parse a price filter: a comparison expression or the literal `null`."""
    if isinstance(text, str) and text.strip() == "null":
        return PriceFilter(kind="null")

    expr = parse_price_expression(text)
    if expr is None:
        return None
    return PriceFilter(kind="comparison", expr=expr)


def matches_price_expression(price: float | str | None, expr: PriceExpression) -> bool:
    value = parse_price(price)
    if value is None:
        return False

    if expr.operator == "<":
        return value < expr.value
    if expr.operator == "<=":
        return value <= expr.value
    if expr.operator == ">":
        return value > expr.value
    return value >= expr.value


def matches_price_filter(price: float | str | None, price_filter: PriceFilter) -> bool:
    if price_filter.kind == "null":
        return parse_price(price) is None
    if price_filter.expr is None:
        return False
    return matches_price_expression(price, price_filter.expr)


def build_filter_config(
    text: str | None = None,
    fields: Iterable[str] = ("name",),
    ignore_case: bool = True,
    exact: bool = False,
    word_boundary: bool = False,
    border: Iterable[str] | None = None,
    color_identity: Iterable[str] | None = None,
    cmc: float | None = None,
    formats: Iterable[str] = (),
    keywords: Iterable[str] = (),
    mana_cost: str | None = None,
    price: str | None = None,
) -> CardFilterConfig:
    """
    Build a filter from user options (job arguments).

    Keywords match whole card keywords, case insensitive. Colors are
    upper-cased.

    Raises:
        ValueError: On unknown text fields, colors or formats, or an
            invalid price filter
    """
    search = None
    if text:
        search = build_text_search(
            text, tuple(fields), ignore_case=ignore_case, exact=exact, word_boundary=word_boundary
        )

    identity = None
    if color_identity is not None:
        identity = frozenset(color.upper() for color in color_identity)
        unknown = identity - set(COLORS)
        if unknown:
            raise ValueError(f"Unknown colors: {', '.join(sorted(unknown))}")

    game_formats = tuple(formats)
    unsupported = [fmt for fmt in game_formats if not is_supported_format(fmt)]
    if unsupported:
        raise ValueError(f"Unsupported game formats: {', '.join(unsupported)}")

    price_filter = None
    if price is not None:
        price_filter = parse_price_filter(price)
        if price_filter is None:
            raise ValueError(f"Invalid price filter: {price}")

    properties = FilterProperties(
        border=frozenset(border) if border is not None else None,
        color_identity=identity,
        cmc=cmc,
        formats=game_formats,
        keywords=tuple(
            re.compile(f"^{re.escape(keyword)}$", re.IGNORECASE) for keyword in keywords
        ),
        mana_cost=mana_cost,
        price=price_filter,
    )

    return CardFilterConfig(text=search, properties=properties)


def has_filter_checks(config: CardFilterConfig | None) -> bool:
    """Whether a config has any test to run."""
    if config is None:
        return False
    return config.text is not None or not config.properties.is_empty()


# =============================================================================
# MATCHING
# =============================================================================


def matches_filter(card: NormalizedCard, config: CardFilterConfig) -> bool:
    """
    Test a card against a filter configuration.

    The text stage passes vacuously when no text search is configured.
    """
    if config.text is not None and config.text.fields:
        if not _matches_text(card, config.text):
            return False

    return _matches_properties(card, config.properties)


def _matches_text(card: NormalizedCard, search: TextSearch) -> bool:
    candidates: list[str] = []

    if "name" in search.fields:
        candidates += card_fields.parts_printed_name(card)
        candidates += card_fields.parts_name(card)
        if card.card_faces:
            if card.printed_name:
                candidates.append(card.printed_name)
            candidates.append(card.name)

    if "oracle_text" in search.fields:
        candidates += card_fields.parts_oracle_text(card)
        if card.card_faces and card.oracle_text:
            candidates.append(card.oracle_text)

    if "type_line" in search.fields:
        candidates += card_fields.parts_type_line(card)
        if card.card_faces and card.type_line:
            candidates.append(card.type_line)

    return any(search.pattern.search(value) for value in candidates)


def _matches_properties(card: NormalizedCard, props: FilterProperties) -> bool:
    if props.border is not None and card.border_color not in props.border:
        return False

    # Every requested color must be part of the card's identity
    if props.color_identity is not None:
        if not props.color_identity.issubset(card.color_identity):
            return False

    if props.cmc is not None:
        if props.cmc not in card_fields.parts_cmc(card):
            return False

    for fmt in props.formats:
        if not is_legal(card.legalities.get(fmt)):
            return False

    if props.keywords:
        if not card.keywords:
            return False
        for pattern in props.keywords:
            if not any(pattern.search(keyword) for keyword in card.keywords):
                return False

    if props.mana_cost is not None:
        if props.mana_cost not in card_fields.parts_mana_cost(card):
            return False

    if props.price is not None:
        return matches_price_filter(card.price, props.price)

    return True


def describe_filter(config: CardFilterConfig) -> list[str]:
    """Human readable description of an active filter, one line per setting."""
    lines: list[str] = []

    if config.text is not None:
        lines.append(f'Search Input: "{config.text.input}"')
        lines.append(f"Card Fields: {', '.join(sorted(config.text.fields))}")
        options = []
        if config.text.ignore_case:
            options.append("Case Insensitive: True")
        if config.text.exact:
            options.append("Exact Match: True")
        if config.text.word_boundary:
            options.append("Word Boundary: True")
        if options:
            lines.append("; ".join(options))

    props = config.properties
    if props.border is not None:
        lines.append(f"Card borders: {' or '.join(sorted(props.border))}")
    if props.color_identity is not None:
        lines.append(f"Color Identity: {', '.join(sorted(props.color_identity))}")
    if props.cmc is not None:
        lines.append(f"CMC: {props.cmc:g}")
    if props.formats:
        lines.append(f"Formats: {' and '.join(props.formats)}")
    if props.keywords:
        lines.append(f"Keywords: {' and '.join(p.pattern for p in props.keywords)}")
    if props.mana_cost is not None:
        lines.append(f"Mana Cost: {props.mana_cost}")
    if props.price is not None:
        if props.price.kind == "null" or props.price.expr is None:
            lines.append("Price: null (card entries without a price)")
        else:
            lines.append(f"Price: {props.price.expr.operator}{props.price.expr.raw_value}")

    return lines
