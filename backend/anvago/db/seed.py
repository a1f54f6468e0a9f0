"""
Seed the catalog, the demo accounts, the curated templates and the demo
state from seed_data/danang.json.

Idempotent: nothing is written when locations already exist, unless
reset=True, which drops and recreates every table first.
"""

from typing import Any, Dict, Optional
import json
import logging
import os

from sqlalchemy.orm import Session

from anvago.core.security import hash_password
from anvago.db.models import (
    Base, DemoState, Itinerary, ItineraryItem, ItineraryTemplate, Location, User, UserPreferences,
)
from anvago.services.matcher import normalize_city

logger = logging.getLogger(__name__)

SEED_PATH = os.path.join(os.path.dirname(__file__), "seed_data", "danang.json")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def load_seed(path: str = SEED_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _expand_hours(hours: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """{"daily": {...}} is shorthand for the same hours on every weekday."""
    if not hours or "daily" not in hours:
        return hours
    return {day: dict(hours["daily"]) for day in WEEKDAYS}


def seed_database(db: Session, data: Optional[Dict[str, Any]] = None, reset: bool = False) -> Dict[str, int]:
    """Insert the seed data and return how many rows of each kind were created."""
    if reset:
        bind = db.get_bind()
        Base.metadata.drop_all(bind)
        Base.metadata.create_all(bind)
        logger.info("Tables dropped and recreated")
    elif db.query(Location).first() is not None:
        logger.info("Locations already present, skipping seed")
        return {"locations": 0, "users": 0, "templates": 0}

    data = data or load_seed()
    city = normalize_city(data.get("city"))

    by_name: Dict[str, Location] = {}
    for row in data.get("locations", []):
        fields = dict(row)
        fields["city"] = normalize_city(fields.get("city") or city)
        fields["opening_hours"] = _expand_hours(fields.get("opening_hours"))
        location = Location(**fields)
        db.add(location)
        by_name[location.name] = location
    db.flush()

    for row in data.get("users", []):
        fields = dict(row)
        prefs = fields.pop("preferences", None)
        password = fields.pop("password")
        user = User(password_hash=hash_password(password), **fields)
        if prefs:
            user.preferences = UserPreferences(**prefs)
        db.add(user)

    for row in data.get("templates", []):
        fields = dict(row)
        items = fields.pop("items", [])
        itinerary = Itinerary(
            title=fields["name"],
            description=fields.get("description"),
            city=normalize_city(fields.get("city") or city),
            duration_days=fields["duration_days"],
            cover_image=fields.get("cover_image"),
            is_template=True,
            is_public=True,
            generated_by="template",
            estimated_budget=fields.pop("estimated_budget", None),
            total_distance=fields.pop("total_distance", None),
        )
        order: Dict[int, int] = {}
        for item in items:
            location = by_name.get(item["location"])
            if location is None:
                raise ValueError(f"Template item references unknown location: {item['location']}")
            day = item["day_number"]
            itinerary.items.append(ItineraryItem(
                location_id=location.id,
                day_number=day,
                order_index=order.get(day, 0),
                start_time=item.get("start_time"),
                end_time=item.get("end_time"),
                transport_mode=item.get("transport_mode"),
                transport_duration=item.get("transport_duration"),
            ))
            order[day] = order.get(day, 0) + 1
        db.add(itinerary)
        db.flush()

        fields["city"] = itinerary.city
        db.add(ItineraryTemplate(itinerary_id=itinerary.id, **fields))

    if data.get("demo_state") is not None and db.get(DemoState, "singleton") is None:
        db.add(DemoState(id="singleton", **data["demo_state"]))

    db.commit()
    created = {
        "locations": len(by_name),
        "users": len(data.get("users", [])),
        "templates": len(data.get("templates", [])),
    }
    logger.info(f"Seeded {created}")
    return created
