from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic.alias_generators import to_snake
from sqlalchemy import Select, and_, asc, desc, func, select
from sqlalchemy.orm import ColumnProperty, InstrumentedAttribute, selectinload

from . import models
from .filters import RELATION_KEY, InvalidDate, compile_filters
from .settings import settings


class FilterError(ValueError):
    """A compiled filter references something the database can't answer."""


@dataclass
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


SORTABLE_FIELDS = {
    "eventName",
    "slug",
    "startLocation",
    "startDateTime",
    "endDateTime",
    "distance",
    "organizer",
    "createdAt",
    "updatedAt",
}

_LIKE_PATTERNS = {
    "contains": "%{}%",
    "startsWith": "{}%",
    "endsWith": "%{}",
}


def _column(model, field: str) -> InstrumentedAttribute:
    attr = getattr(model, to_snake(field), None)
    if not isinstance(attr, InstrumentedAttribute) or not isinstance(attr.property, ColumnProperty):
        raise FilterError(f"Unknown filter field: {field}")
    return attr


def _operand(field: str, value: Any) -> Any:
    if isinstance(value, InvalidDate):
        raise FilterError(f"Invalid date for {field}: {value.raw!r}")
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _condition(model, field: str, spec: Any):
    column = _column(model, field)
    if not isinstance(spec, dict):
        return column == _operand(field, spec)

    insensitive = spec.get("mode") == "insensitive"
    clauses = []
    for operator, value in spec.items():
        if operator == "mode":
            continue
        if operator in _LIKE_PATTERNS:
            text = value.isoformat() if isinstance(value, datetime) else _operand(field, value)
            pattern = _LIKE_PATTERNS[operator].format(_escape_like(str(text)))
            if insensitive:
                clauses.append(column.ilike(pattern, escape="\\"))
            else:
                clauses.append(column.like(pattern, escape="\\"))
        elif operator == "gte":
            clauses.append(column >= _operand(field, value))
        elif operator == "lte":
            clauses.append(column <= _operand(field, value))
        elif operator == "in":
            clauses.append(column.in_([_operand(field, v) for v in value]))
        else:
            raise FilterError(f"Unsupported operator {operator!r} for {field}")
    if not clauses:
        raise FilterError(f"Empty condition for {field}")
    return and_(*clauses)


def _race_clauses(relation: Mapping[str, Any]) -> list:
    return [_condition(models.Race, field, spec) for field, spec in relation.items()]


def where_clauses(tree: Mapping[str, Any]) -> list:
    """Translate a compiled filter tree into SQLAlchemy clauses on RaceEvent."""
    clauses = []
    for field, spec in tree.items():
        if field == RELATION_KEY:
            if not isinstance(spec, dict) or set(spec) != {"some"}:
                raise FilterError("races only supports the 'some' filter")
            clauses.append(models.RaceEvent.races.any(and_(*_race_clauses(spec["some"]))))
        elif field == "tags":
            if not isinstance(spec, dict) or set(spec) != {"hasSome"}:
                raise FilterError("tags only supports tags_in")
            clauses.append(models.RaceEvent.tag_links.any(models.RaceEventTag.name.in_(spec["hasSome"])))
        else:
            clauses.append(_condition(models.RaceEvent, field, spec))
    return clauses


def _to_int(raw: str | None, default: int) -> int:
    try:
        return int(raw) if raw is not None else default
    except (TypeError, ValueError):
        return default


def parse_page(params: Mapping[str, str]) -> Page:
    page = max(_to_int(params.get("page"), 1), 1)
    limit = _to_int(params.get("limit"), settings.RT_PAGE_SIZE)
    if limit < 1:
        limit = settings.RT_PAGE_SIZE
    return Page(page=page, limit=min(limit, settings.RT_MAX_PAGE_SIZE))


def order_clause(params: Mapping[str, str]):
    sort_by = params.get("sortBy") or "startDateTime"
    if sort_by not in SORTABLE_FIELDS:
        raise FilterError(f"Cannot sort by {sort_by}")
    column = getattr(models.RaceEvent, to_snake(sort_by))
    order = (params.get("order") or "asc").lower()
    if order not in ("asc", "desc"):
        raise FilterError("order must be asc or desc")
    return desc(column) if order == "desc" else asc(column)


def race_event_statements(params: Mapping[str, str]) -> tuple[Select, Select, Page]:
    """Build the (rows, count, page) triple for a race event listing."""
    clauses = where_clauses(compile_filters(params))
    page = parse_page(params)

    stmt = (
        select(models.RaceEvent)
        .where(*clauses)
        .options(selectinload(models.RaceEvent.races), selectinload(models.RaceEvent.tag_links))
        .order_by(order_clause(params), models.RaceEvent.id.asc())
        .offset(page.offset)
        .limit(page.limit)
    )
    count_stmt = select(func.count()).select_from(models.RaceEvent).where(*clauses)
    return stmt, count_stmt, page
