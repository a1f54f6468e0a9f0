"""Itinerary CRUD, ownership rules, item editing, reorder atomicity and alternatives."""

import pytest

from conftest import make_itinerary, make_template

API = "/api/v1"


@pytest.fixture
def trip(db, user, locations):
    return make_itinerary(db, user, {
        1: [locations["beach"], locations["market"], locations["bridge"]],
        2: [locations["cafe"]],
    })


def items_by_day(itinerary_json):
    days = {}
    for item in itinerary_json["items"]:
        days.setdefault(item["dayNumber"], []).append((item["orderIndex"], item["location"]["name"]))
    return {day: [name for _, name in sorted(entries)] for day, entries in days.items()}


# ============================================================================
# AUTH & OWNERSHIP
# ============================================================================

def test_requires_token(client, trip):
    res = client.get(f"{API}/itineraries")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "unauthenticated"

    res = client.post(f"{API}/itineraries", json={"title": "x", "durationDays": 1},
                      headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401


def test_private_itinerary_hidden_from_others(client, trip, other_headers):
    assert client.get(f"{API}/itineraries/{trip.id}").status_code == 403
    assert client.get(f"{API}/itineraries/{trip.id}", headers=other_headers).status_code == 403


def test_non_owner_cannot_mutate(client, trip, other_headers):
    item_id = trip.items[0].id
    assert client.patch(f"{API}/itineraries/{trip.id}", json={"title": "Mine now"}, headers=other_headers).status_code == 403
    assert client.delete(f"{API}/itineraries/{trip.id}", headers=other_headers).status_code == 403
    assert client.delete(f"{API}/itineraries/{trip.id}/items/{item_id}", headers=other_headers).status_code == 403
    res = client.post(f"{API}/itineraries/{trip.id}/items/reorder", headers=other_headers,
                      json={"items": [{"id": item_id, "dayNumber": 1, "orderIndex": 2}]})
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "forbidden"


def test_missing_itinerary_is_not_found(client, headers):
    res = client.get(f"{API}/itineraries/does-not-exist", headers=headers)
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": {"code": "not_found", "message": "Itinerary not found"}}


# ============================================================================
# CRUD
# ============================================================================

def test_create_list_update_delete(client, headers):
    res = client.post(f"{API}/itineraries", headers=headers, json={
        "title": "Weekend in Danang", "durationDays": 2, "city": "danang",
    })
    assert res.status_code == 201
    created = res.json()["data"]
    assert created["city"] == "Danang"
    assert created["generatedBy"] == "user"
    assert created["items"] == []

    mine = client.get(f"{API}/itineraries", headers=headers).json()["data"]
    assert [i["id"] for i in mine] == [created["id"]]

    res = client.patch(f"{API}/itineraries/{created['id']}", headers=headers,
                       json={"title": "Long weekend", "durationDays": 3, "isPublic": True})
    updated = res.json()["data"]
    assert (updated["title"], updated["durationDays"], updated["isPublic"]) == ("Long weekend", 3, True)

    assert client.delete(f"{API}/itineraries/{created['id']}", headers=headers).status_code == 200
    assert client.get(f"{API}/itineraries/{created['id']}", headers=headers).status_code == 404


def test_create_validates_body(client, headers):
    res = client.post(f"{API}/itineraries", headers=headers, json={"title": "", "durationDays": 30})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_duplicate_template(client, db, headers, locations):
    template = make_template(db, "Best of Danang", {1: [locations["beach"]], 2: [locations["bridge"], locations["cafe"]]})
    res = client.post(f"{API}/itineraries/{template.itinerary_id}/duplicate", headers=headers)
    assert res.status_code == 201
    copy = res.json()["data"]
    assert copy["title"] == "Best of Danang (Copy)"
    assert copy["isTemplate"] is False
    assert copy["isPublic"] is False
    assert items_by_day(copy) == {1: ["My Khe Beach"], 2: ["Dragon Bridge", "Cong Caphe"]}
    assert {i["id"] for i in copy["items"]}.isdisjoint({i.id for i in template.itinerary.items})


def test_template_readable_without_token(client, db, locations):
    template = make_template(db, "Best of Danang", {1: [locations["beach"]]})
    res = client.get(f"{API}/itineraries/{template.itinerary_id}")
    assert res.status_code == 200
    assert res.json()["data"]["isTemplate"] is True


def test_day_plans(client, trip, headers):
    res = client.get(f"{API}/itineraries/{trip.id}/days", headers=headers)
    assert res.status_code == 200
    days = res.json()["data"]
    assert [d["day"] for d in days] == [1, 2]
    first = days[0]
    assert first["startLabel"] == "6:00 AM"
    assert [a["name"] for a in first["activities"]] == ["My Khe Beach", "Han Market", "Dragon Bridge"]
    # beach 120 + 15 + market 90 + 15 + bridge 60
    assert first["totalDurationMins"] == 300


# ============================================================================
# ITEMS
# ============================================================================

def test_add_item_shifts_later_items(client, trip, headers, locations):
    res = client.post(f"{API}/itineraries/{trip.id}/items", headers=headers, json={
        "locationId": locations["con"].id, "dayNumber": 1, "orderIndex": 1, "startTime": "09:30",
    })
    assert res.status_code == 201
    assert res.json()["data"]["orderIndex"] == 1

    itinerary = client.get(f"{API}/itineraries/{trip.id}", headers=headers).json()["data"]
    assert items_by_day(itinerary)[1] == ["My Khe Beach", "Con Market", "Han Market", "Dragon Bridge"]


def test_add_item_validation(client, trip, headers, locations):
    res = client.post(f"{API}/itineraries/{trip.id}/items", headers=headers,
                      json={"locationId": "nowhere", "dayNumber": 1, "orderIndex": 0})
    assert res.status_code == 404

    res = client.post(f"{API}/itineraries/{trip.id}/items", headers=headers,
                      json={"locationId": locations["con"].id, "dayNumber": 5, "orderIndex": 0})
    assert res.status_code == 400

    res = client.post(f"{API}/itineraries/{trip.id}/items", headers=headers,
                      json={"locationId": locations["con"].id, "dayNumber": 1, "orderIndex": 0, "startTime": "9am"})
    assert res.status_code == 400


def test_update_item(client, trip, headers, locations):
    item_id = trip.items[1].id
    res = client.patch(f"{API}/itineraries/{trip.id}/items/{item_id}", headers=headers, json={
        "locationId": locations["con"].id, "notes": "Go early", "durationMins": 45,
    })
    assert res.status_code == 200
    item = res.json()["data"]
    assert item["location"]["name"] == "Con Market"
    assert item["notes"] == "Go early"
    assert item["durationMins"] == 45
    assert (item["dayNumber"], item["orderIndex"]) == (1, 1)


def test_delete_item_renumbers_day(client, trip, headers):
    res = client.delete(f"{API}/itineraries/{trip.id}/items/{trip.items[0].id}", headers=headers)
    assert res.status_code == 200

    itinerary = client.get(f"{API}/itineraries/{trip.id}", headers=headers).json()["data"]
    day_one = sorted((i["orderIndex"], i["location"]["name"]) for i in itinerary["items"] if i["dayNumber"] == 1)
    assert day_one == [(0, "Han Market"), (1, "Dragon Bridge")]


def test_item_from_other_itinerary_not_found(client, db, trip, user, headers, locations):
    other = make_itinerary(db, user, {1: [locations["con"]]})
    res = client.delete(f"{API}/itineraries/{trip.id}/items/{other.items[0].id}", headers=headers)
    assert res.status_code == 404


# ============================================================================
# REORDER
# ============================================================================

def test_reorder_moves_items_across_days(client, trip, headers):
    beach, market, bridge = (i.id for i in trip.items if i.day_number == 1)
    cafe = next(i.id for i in trip.items if i.day_number == 2)

    res = client.post(f"{API}/itineraries/{trip.id}/items/reorder", headers=headers, json={"items": [
        {"id": bridge, "dayNumber": 1, "orderIndex": 0},
        {"id": beach, "dayNumber": 1, "orderIndex": 1},
        {"id": market, "dayNumber": 2, "orderIndex": 0},
        {"id": cafe, "dayNumber": 2, "orderIndex": 1},
    ]})
    assert res.status_code == 200
    assert items_by_day(res.json()["data"]) == {
        1: ["Dragon Bridge", "My Khe Beach"],
        2: ["Han Market", "Cong Caphe"],
    }


def test_reorder_with_unknown_id_applies_nothing(client, trip, headers):
    before = client.get(f"{API}/itineraries/{trip.id}", headers=headers).json()["data"]
    beach = next(i.id for i in trip.items if i.day_number == 1 and i.order_index == 0)

    res = client.post(f"{API}/itineraries/{trip.id}/items/reorder", headers=headers, json={"items": [
        {"id": beach, "dayNumber": 2, "orderIndex": 5},
        {"id": "ghost", "dayNumber": 1, "orderIndex": 0},
    ]})
    assert res.status_code == 404
    assert res.json()["error"]["details"] == {"missing": ["ghost"]}

    after = client.get(f"{API}/itineraries/{trip.id}", headers=headers).json()["data"]
    assert items_by_day(after) == items_by_day(before)


def test_reorder_rejects_clashing_positions(client, trip, headers):
    beach, market, _ = (i.id for i in trip.items if i.day_number == 1)
    res = client.post(f"{API}/itineraries/{trip.id}/items/reorder", headers=headers, json={"items": [
        {"id": beach, "dayNumber": 1, "orderIndex": 2},
    ]})
    assert res.status_code == 400

    res = client.post(f"{API}/itineraries/{trip.id}/items/reorder", headers=headers, json={"items": [
        {"id": beach, "dayNumber": 1, "orderIndex": 1},
        {"id": beach, "dayNumber": 1, "orderIndex": 1},
    ]})
    assert res.status_code == 400


# ============================================================================
# ALTERNATIVES
# ============================================================================

def test_alternatives_by_category(client, trip, headers):
    market_item = next(i for i in trip.items if i.location.name == "Han Market")
    res = client.get(f"{API}/itineraries/{trip.id}/items/{market_item.id}/alternatives", headers=headers)
    assert res.status_code == 200
    assert [loc["name"] for loc in res.json()["data"]] == ["Con Market"]


def test_alternatives_by_rating_and_area(client, trip, headers):
    market_item = next(i for i in trip.items if i.location.name == "Han Market")
    url = f"{API}/itineraries/{trip.id}/items/{market_item.id}/alternatives"

    rated = [loc["name"] for loc in client.get(url, params={"type": "rating"}, headers=headers).json()["data"]]
    # Same city, rated >= 4.3, best first; the Hoi An location is excluded
    assert rated[0] == "Dragon Bridge"
    assert "Han Market" not in rated
    assert "Japanese Bridge" not in rated

    nearby = [loc["name"] for loc in client.get(url, params={"type": "area"}, headers=headers).json()["data"]]
    assert "Ba Na Hills" not in nearby
    assert "Cong Caphe" in nearby
