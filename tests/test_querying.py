"""Tests for translating compiled filter trees into SQL."""

from __future__ import annotations

from datetime import datetime

import pytest

from racetiming import models
from racetiming.querying import FilterError, parse_page, race_event_statements
from racetiming.settings import settings


@pytest.fixture
def seeded(db):
    competition = models.Competition(name="Alpine Cup")
    db.add(competition)
    db.flush()

    db.add_all([
        models.RaceEvent(
            event_name="Mountain Trail Run",
            slug="mountain-trail-run-2024",
            start_location="Zermatt",
            start_date_time=datetime(2024, 6, 1, 8, 0),
            distance=42,
            tag_links=[models.RaceEventTag(name="trail"), models.RaceEventTag(name="mountain")],
            races=[
                models.Race(
                    length=42,
                    elevation=2500,
                    start_date_time=datetime(2024, 6, 1, 8, 0),
                    start_location="Zermatt",
                    competition_id=competition.id,
                ),
            ],
        ),
        models.RaceEvent(
            event_name="City Marathon",
            slug="city-marathon-2024",
            start_location="Berlin",
            start_date_time=datetime(2024, 9, 20, 9, 0),
            distance=42.195,
            tag_links=[models.RaceEventTag(name="road")],
            races=[
                models.Race(length=42.195, elevation=50, start_date_time=datetime(2024, 9, 20, 9, 0)),
                models.Race(length=10, elevation=30, start_date_time=datetime(2024, 9, 20, 11, 0)),
            ],
        ),
        models.RaceEvent(
            event_name="Night Sprint",
            slug="night-sprint-2025",
            start_location="Zurich",
            start_date_time=datetime(2025, 1, 10, 19, 0),
            races=[models.Race(length=5, elevation=400, start_date_time=datetime(2025, 1, 10, 19, 0))],
        ),
    ])
    db.commit()
    return {"competition_id": competition.id}


def _names(db, params) -> list[str]:
    stmt, _, _ = race_event_statements(params)
    return [ev.event_name for ev in db.execute(stmt).scalars()]


def test_no_filters_returns_everything_by_start_date(db, seeded) -> None:
    assert _names(db, {}) == ["Mountain Trail Run", "City Marathon", "Night Sprint"]


def test_contains_is_case_insensitive(db, seeded) -> None:
    assert _names(db, {"eventName_contains": "TRAIL"}) == ["Mountain Trail Run"]


def test_starts_with_and_ends_with(db, seeded) -> None:
    assert _names(db, {"eventName_startsWith": "city"}) == ["City Marathon"]
    assert _names(db, {"eventName_endsWith": "sprint"}) == ["Night Sprint"]


def test_like_wildcards_in_values_are_literal(db, seeded) -> None:
    assert _names(db, {"eventName_contains": "%"}) == []


def test_bare_numeric_equality(db, seeded) -> None:
    assert _names(db, {"distance": "42"}) == ["Mountain Trail Run"]


def test_length_range(db, seeded) -> None:
    assert _names(db, {"length_gte": "5", "length_lte": "20"}) == ["City Marathon", "Night Sprint"]


def test_race_conditions_must_hold_on_the_same_race(db, seeded) -> None:
    # City Marathon has a 10k race and a low-elevation race, but no single race with both
    assert _names(db, {"elevation_gte": "400", "length_lte": "10"}) == ["Night Sprint"]


def test_tags_in_matches_any_tag(db, seeded) -> None:
    assert _names(db, {"tags_in": "road, trail"}) == ["Mountain Trail Run", "City Marathon"]


def test_competition_ids_in(db, seeded) -> None:
    assert _names(db, {"competitionIds_in": f"{seeded['competition_id']},unknown"}) == ["Mountain Trail Run"]


def test_race_date_range(db, seeded) -> None:
    assert _names(db, {"startDateTime_gte": "2024-09-01"}) == ["City Marathon", "Night Sprint"]


def test_race_date_with_offset_is_compared_in_utc(db, seeded) -> None:
    # 2024-09-20T10:30+02:00 is 08:30 UTC, before both City Marathon races start
    assert _names(db, {"startDateTime_lte": "2024-09-20T10:30:00+02:00", "length_lte": "50"}) == [
        "Mountain Trail Run"
    ]


def test_sorting_and_paging(db, seeded) -> None:
    assert _names(db, {"sortBy": "eventName", "order": "desc"}) == [
        "Night Sprint",
        "Mountain Trail Run",
        "City Marathon",
    ]

    stmt, count_stmt, page = race_event_statements({"limit": "2", "page": "2"})
    assert [ev.event_name for ev in db.execute(stmt).scalars()] == ["Night Sprint"]
    assert db.execute(count_stmt).scalar_one() == 3
    assert (page.page, page.limit, page.offset) == (2, 2, 2)


def test_count_respects_filters(db, seeded) -> None:
    _, count_stmt, _ = race_event_statements({"tags_in": "road", "limit": "1"})
    assert db.execute(count_stmt).scalar_one() == 1


@pytest.mark.parametrize(
    "params, message",
    [
        ({"foo": "bar"}, "Unknown filter field: foo"),
        ({"endDateTime_lte": "garbage"}, "Invalid date for endDateTime"),
        ({"sortBy": "password"}, "Cannot sort by password"),
        ({"order": "sideways"}, "order must be asc or desc"),
        ({"races": "x"}, "races only supports"),
    ],
)
def test_invalid_filters_raise(params, message) -> None:
    with pytest.raises(FilterError, match=message):
        race_event_statements(params)


def test_parse_page_defaults_and_limits() -> None:
    assert parse_page({}).page == 1
    assert parse_page({}).limit == settings.RT_PAGE_SIZE
    assert parse_page({"page": "0"}).page == 1
    assert parse_page({"limit": "abc"}).limit == settings.RT_PAGE_SIZE
    assert parse_page({"limit": "-4"}).limit == settings.RT_PAGE_SIZE
    assert parse_page({"limit": "100000"}).limit == settings.RT_MAX_PAGE_SIZE
