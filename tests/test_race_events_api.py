"""API tests for race events and their nested races."""

from __future__ import annotations

import pytest

from tests.conftest import login_as


def _event(**overrides) -> dict:
    body = {
        "eventName": "Boston Marathon",
        "startLocation": "Hopkinton",
        "startDateTime": "2025-04-21T10:00:00Z",
        "endDateTime": "2025-04-21T17:00:00Z",
        "organizer": "BAA",
        "tags": ["road", "major"],
        "races": [
            {"name": "Marathon", "length": 42.195, "elevation": 140, "startDateTime": "2025-04-21T10:00:00Z"},
            {"name": "5K", "length": 5, "startDateTime": "2025-04-19T08:00:00Z", "startLocation": "Boston"},
        ],
    }
    body.update(overrides)
    return body


def _create(client, **overrides):
    return client.post("/api/race-events", json=_event(**overrides))


def test_create_requires_login(client) -> None:
    resp = _create(client)

    assert resp.status_code == 401
    assert resp.json() == {"error": "Not authenticated"}


def test_create_requires_organizer_role(client) -> None:
    login_as(client, "PARTICIPANT")

    assert _create(client).status_code == 403


def test_create_race_event(organizer_client) -> None:
    resp = _create(organizer_client)

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["eventName"] == "Boston Marathon"
    assert body["slug"] == "boston-marathon-2025"
    assert body["tags"] == ["road", "major"]
    assert body["startDateTime"] == "2025-04-21T10:00:00"
    assert body["gallery"] == []
    # nested races are ordered by start time
    assert [r["name"] for r in body["races"]] == ["5K", "Marathon"]
    assert all(r["raceEventId"] == body["id"] for r in body["races"])


def test_duplicate_slugs_get_a_suffix(organizer_client) -> None:
    _create(organizer_client)
    resp = _create(organizer_client)

    assert resp.json()["slug"] == "boston-marathon-2025-2"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"eventName": ""}, "Missing required field: eventName"),
        ({"startLocation": None}, "Missing required field: startLocation"),
        ({"startDateTime": None}, "Missing required field: startDateTime"),
        ({"endDateTime": "2025-04-21T09:00:00Z"}, "endDateTime must be after startDateTime"),
        ({"races": [{"length": 5, "startDateTime": "2025-04-21T10:00:00Z"}, {"length": 10}]},
         "Missing startDateTime in race #2"),
        ({"races": [{"length": "5", "startDateTime": "2025-04-21T10:00:00Z"}]}, "Invalid length in race #1"),
        ({"races": [{"length": 5, "startDateTime": "2025-04-21T10:00:00Z", "competitionId": "missing"}]},
         "Unknown competitionId in race #1"),
    ],
)
def test_create_validation(organizer_client, overrides, message) -> None:
    resp = _create(organizer_client, **overrides)

    assert resp.status_code == 400
    assert resp.json() == {"error": message}


def test_get_by_id_and_slug(organizer_client) -> None:
    created = _create(organizer_client).json()

    by_id = organizer_client.get(f"/api/race-events/{created['id']}")
    by_slug = organizer_client.get("/api/race-events/slug/boston-marathon-2025")

    assert by_id.status_code == 200
    assert by_slug.json()["id"] == created["id"]
    assert organizer_client.get("/api/race-events/does-not-exist").status_code == 404
    assert organizer_client.get("/api/race-events/slug/nope").json() == {"error": "Race event not found"}


def test_list_applies_query_filters(organizer_client) -> None:
    _create(organizer_client)
    _create(
        organizer_client,
        eventName="Alpine Trail",
        startLocation="Chamonix",
        startDateTime="2025-07-01T06:00:00Z",
        endDateTime=None,
        tags=["trail"],
        races=[{"length": 80, "elevation": 5000, "startDateTime": "2025-07-01T06:00:00Z"}],
    )

    everything = organizer_client.get("/api/race-events").json()
    assert everything["total"] == 2
    assert everything["page"] == 1
    assert [e["eventName"] for e in everything["items"]] == ["Boston Marathon", "Alpine Trail"]

    trail = organizer_client.get("/api/race-events", params={"eventName_contains": "alpine"}).json()
    assert [e["eventName"] for e in trail["items"]] == ["Alpine Trail"]

    short = organizer_client.get("/api/race-events", params={"length_gte": "1", "length_lte": "10"}).json()
    assert [e["eventName"] for e in short["items"]] == ["Boston Marathon"]

    tagged = organizer_client.get("/api/race-events", params={"tags_in": "trail,ultra"}).json()
    assert tagged["total"] == 1

    paged = organizer_client.get("/api/race-events", params={"limit": "1", "page": "2", "sortBy": "eventName"}).json()
    assert paged["total"] == 2
    assert paged["limit"] == 1
    assert [e["eventName"] for e in paged["items"]] == ["Boston Marathon"]


def test_list_rejects_unknown_fields(client) -> None:
    resp = client.get("/api/race-events", params={"colour": "red"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Unknown filter field: colour"}


def test_list_rejects_invalid_dates(client) -> None:
    resp = client.get("/api/race-events", params={"startDateTime_gte": "someday"})

    assert resp.status_code == 400
    assert "Invalid date" in resp.json()["error"]


def test_update_race_event(organizer_client) -> None:
    created = _create(organizer_client).json()

    resp = organizer_client.put(
        f"/api/race-events/{created['id']}",
        json={
            "description": "Patriots' Day classic",
            "tags": ["road", "historic"],
            "races": [{"name": "Marathon", "length": 42.195, "startDateTime": "2025-04-21T10:00:00Z"}],
        },
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["description"] == "Patriots' Day classic"
    assert body["eventName"] == "Boston Marathon"
    assert body["slug"] == created["slug"]
    assert body["tags"] == ["road", "historic"]
    assert [r["name"] for r in body["races"]] == ["Marathon"]


def test_update_without_races_keeps_them(organizer_client) -> None:
    created = _create(organizer_client).json()

    body = organizer_client.put(f"/api/race-events/{created['id']}", json={"organizer": "B.A.A."}).json()

    assert body["organizer"] == "B.A.A."
    assert len(body["races"]) == 2
    assert body["tags"] == ["road", "major"]


def test_update_rechecks_date_order(organizer_client) -> None:
    created = _create(organizer_client).json()

    resp = organizer_client.put(
        f"/api/race-events/{created['id']}",
        json={"startDateTime": "2025-04-22T10:00:00Z"},
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "endDateTime must be after startDateTime"}


def test_delete_race_event(organizer_client) -> None:
    created = _create(organizer_client).json()

    resp = organizer_client.delete(f"/api/race-events/{created['id']}")

    assert resp.status_code == 200
    assert resp.json() == {"message": "Race event deleted successfully"}
    assert organizer_client.get(f"/api/race-events/{created['id']}").status_code == 404
    assert organizer_client.get("/api/races").json() == []


@pytest.mark.parametrize("digits", [30, 5000])
def test_list_with_huge_numbers_matches_nothing(organizer_client, digits) -> None:
    _create(organizer_client, distance=42)

    resp = organizer_client.get("/api/race-events", params={"distance": "9" * digits})

    assert resp.status_code == 200
    assert resp.json()["total"] == 0
