"""Seeding the Danang catalog, demo accounts and templates."""

from anvago.core.security import verify_password
from anvago.db.models import DemoState, ItineraryTemplate, Location, User
from anvago.db.seed import _expand_hours, load_seed, seed_database
from anvago.services.matcher import DEFAULT_CITY


def test_seed_creates_catalog(db):
    created = seed_database(db)
    assert created == {"locations": 23, "users": 2, "templates": 1}
    assert db.query(Location).count() == 23
    assert {loc.city for loc in db.query(Location)} == {DEFAULT_CITY}

    template = db.query(ItineraryTemplate).one()
    assert template.name == "Best of Danang in 3 Days"
    assert template.itinerary.is_template
    items = template.itinerary.items
    assert len(items) == 11
    for day in (1, 2, 3):
        indexes = [i.order_index for i in items if i.day_number == day]
        assert indexes == list(range(len(indexes)))

    demo = db.query(User).filter(User.email == "demo@anvago.com").one()
    assert verify_password("demo123", demo.password_hash)
    assert demo.preferences.personas == ["foodie", "photographer"]
    assert db.get(DemoState, "singleton") is not None


def test_seed_is_idempotent(db):
    seed_database(db)
    assert seed_database(db) == {"locations": 0, "users": 0, "templates": 0}
    assert db.query(Location).count() == 23


def test_seed_reset(db):
    seed_database(db)
    seed_database(db, reset=True)
    assert db.query(User).count() == 2


def test_daily_hours_expand_to_weekdays():
    hours = _expand_hours({"daily": {"open": "06:00", "close": "22:00"}})
    assert len(hours) == 7
    assert hours["sunday"] == {"open": "06:00", "close": "22:00"}
    assert _expand_hours(None) is None
    assert _expand_hours({"monday": {"open": "07:00"}}) == {"monday": {"open": "07:00"}}


def test_seed_file_references_known_locations():
    data = load_seed()
    names = {loc["name"] for loc in data["locations"]}
    for template in data["templates"]:
        assert {item["location"] for item in template["items"]} <= names
