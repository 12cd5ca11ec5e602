"""
Query-string filter compiler for race event listings.

Turns flat query parameters such as ``eventName_contains=trail`` or
``elevation_gte=500`` into a two-tier filter tree::

    {
        "eventName": {"contains": "trail", "mode": "insensitive"},
        "races": {"some": {"elevation": {"gte": 500}}},
    }

Top-level keys filter race events directly. Keys under ``races.some`` filter
the nested races: an event matches when at least one of its races satisfies
every listed condition. The tree is handed to :mod:`racetiming.querying`,
which turns it into SQL.

The compiler never raises. Unknown keys become equality filters and the query
layer decides whether the field exists.
"""
from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Callable, Mapping

from dateutil import parser as date_parser

SPECIAL_KEYS = frozenset({"page", "limit", "sortBy", "order"})

# Fields that live on the nested races, not on the event itself.
RELATION_SCOPED_FIELDS = frozenset({
    "elevation",
    "length",
    "startLocation",
    "startDateTime",
    "endDateTime",
    "gpsFile",
    "competitionId",
})

RELATION_KEY = "races"
RANGE_MERGE_FIELD = "length"

STRING_OPERATORS = ("contains", "startsWith", "endsWith")
RANGE_OPERATORS = ("gte", "lte")
NUMERIC_OPERATORS = ("gte", "lte", "eq")

_NUMBER_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$")
# Integers beyond this lose precision as floats and overflow 64-bit columns.
_MAX_EXACT_INT = 2 ** 53


class InvalidDate:
    """Result of coercing a value that is not a recognizable date."""

    __slots__ = ("raw",)

    def __init__(self, raw: str = ""):
        self.raw = raw

    def __eq__(self, other: object) -> bool:
        return isinstance(other, InvalidDate)

    def __hash__(self) -> int:
        return hash(InvalidDate)

    def __repr__(self) -> str:
        return f"InvalidDate({self.raw!r})"


INVALID_DATE = InvalidDate()


def parse_number(value: str) -> int | float | None:
    """Return ``value`` as a finite number, or None when it isn't one."""
    if not isinstance(value, str) or not _NUMBER_RE.match(value):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    if number.is_integer() and abs(number) < _MAX_EXACT_INT:
        return int(number)
    return number


def parse_date(value: str) -> datetime | InvalidDate:
    try:
        return date_parser.isoparse(value)
    except (ValueError, OverflowError):
        pass
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError, TypeError):
        return InvalidDate(value)


def coerce_value(field: str, operator: str, value: str) -> Any:
    if operator in NUMERIC_OPERATORS:
        number = parse_number(value)
        if number is not None:
            return number
    if "date" in field.lower():
        return parse_date(value)
    return value


def coerce_bare(value: str) -> Any:
    number = parse_number(value)
    return value if number is None else number


def split_list(value: str) -> list[str]:
    return [item.strip() for item in str(value).split(",")]


# ---------------------------
# Operator builders
# ---------------------------

def _string_condition(operator: str, value: Any) -> dict:
    return {operator: value, "mode": "insensitive"}


def _equality(operator: str, value: Any) -> Any:
    return value


def _range_condition(operator: str, value: Any) -> dict:
    return {operator: value}


OPERATOR_BUILDERS: dict[str, Callable[[str, Any], Any]] = {
    "contains": _string_condition,
    "startsWith": _string_condition,
    "endsWith": _string_condition,
    "gte": _range_condition,
    "lte": _range_condition,
    "eq": _equality,
}

_OPERATOR_KEY_RE = re.compile(r"(.+?)_(%s)" % "|".join(OPERATOR_BUILDERS))


def _compile_tags_in(value: str, where: dict, relation: dict) -> None:
    where["tags"] = {"hasSome": split_list(value)}


def _compile_competition_ids_in(value: str, where: dict, relation: dict) -> None:
    relation["competitionId"] = {"in": split_list(value)}


# Literal keys win over the generic ``<field>_<operator>`` pattern.
LITERAL_KEYS: dict[str, Callable[[str, dict, dict], None]] = {
    "tags_in": _compile_tags_in,
    "competitionIds_in": _compile_competition_ids_in,
}


def _compile_operator_key(field: str, operator: str, value: str, where: dict, relation: dict) -> None:
    built = OPERATOR_BUILDERS[operator](operator, coerce_value(field, operator, value))
    target = relation if field in RELATION_SCOPED_FIELDS else where
    target[field] = built


def _merge_range(params: Mapping[str, str], field: str, relation: dict) -> None:
    bounds = {}
    for operator in RANGE_OPERATORS:
        key = f"{field}_{operator}"
        if key in params:
            bounds[operator] = coerce_value(field, operator, params[key])
    if bounds:
        relation[field] = bounds


def compile_filters(params: Mapping[str, str]) -> dict:
    """Compile query parameters into a filter tree.

    Keys are handled in order of priority: special paging/sorting keys are
    skipped, then literal keys (``tags_in``, ``competitionIds_in``), then
    ``<field>_<operator>`` keys, and anything else becomes an equality
    filter. A repeated field is last-write-wins.

    Unparseable dates compile to an :class:`InvalidDate` instead of raising.
    """
    where: dict[str, Any] = {}
    relation: dict[str, Any] = {}

    for key, value in params.items():
        if key in SPECIAL_KEYS:
            continue

        literal = LITERAL_KEYS.get(key)
        if literal is not None:
            literal(value, where, relation)
            continue

        match = _OPERATOR_KEY_RE.fullmatch(key)
        if match:
            field, operator = match.groups()
            _compile_operator_key(field, operator, value, where, relation)
            continue

        where[key] = coerce_bare(value)

    _merge_range(params, RANGE_MERGE_FIELD, relation)

    if relation:
        where[RELATION_KEY] = {"some": relation}
    return where
