"""
Shared fixtures: an in-memory SQLite database per test, a TestClient
wired to it, and a small Danang catalog.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from anvago.core.rate_limiting import limiter
from anvago.core.security import hash_password, issue_token_pair
from anvago.db.database import build_engine, get_db
from anvago.db.models import (
    Base, Itinerary, ItineraryItem, ItineraryTemplate, Location, User,
)
from anvago.main import app

ADMIN_KEY = "test-admin-key"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# DATA BUILDERS
# ============================================================================

def make_location(db, name, **fields):
    values = {
        "city": "Danang",
        "category": "attraction",
        "latitude": 16.06,
        "longitude": 108.22,
        "price_level": 1,
        "rating": 4.5,
        "avg_duration_mins": 60,
    }
    values.update(fields)
    location = Location(name=name, **values)
    db.add(location)
    db.commit()
    return location


def make_user(db, email="traveler@example.com", password="secret123", **fields):
    user = User(email=email, name=email.split("@")[0].title(), password_hash=hash_password(password), **fields)
    db.add(user)
    db.commit()
    return user


def auth_headers(db, user):
    tokens = issue_token_pair(db, user)
    return {"Authorization": f"Bearer {tokens['accessToken']}"}


def make_itinerary(db, user, layout, **fields):
    """layout: {day_number: [location, ...]}"""
    values = {"title": "My Danang trip", "city": "Danang", "duration_days": max(layout) if layout else 1}
    values.update(fields)
    itinerary = Itinerary(user_id=user.id if user else None, **values)
    for day, locations in layout.items():
        for idx, location in enumerate(locations):
            itinerary.items.append(ItineraryItem(location_id=location.id, day_number=day, order_index=idx))
    db.add(itinerary)
    db.commit()
    return itinerary


def make_template(db, name, layout, display_order=0, **targets):
    itinerary = make_itinerary(
        db, None, layout, title=name, is_template=True, is_public=True, generated_by="template",
    )
    template = ItineraryTemplate(
        name=name,
        city=itinerary.city,
        duration_days=itinerary.duration_days,
        itinerary_id=itinerary.id,
        display_order=display_order,
        **targets,
    )
    db.add(template)
    db.commit()
    return template


@pytest.fixture
def locations(db):
    return {
        "beach": make_location(db, "My Khe Beach", category="beach", latitude=16.0544, longitude=108.2478, rating=4.7, avg_duration_mins=120),
        "market": make_location(db, "Han Market", category="market", latitude=16.0678, longitude=108.2238, rating=4.3, avg_duration_mins=90),
        "con": make_location(db, "Con Market", category="market", latitude=16.0712, longitude=108.2145, rating=4.4),
        "bridge": make_location(db, "Dragon Bridge", latitude=16.0612, longitude=108.2278, rating=4.8),
        "banahills": make_location(db, "Ba Na Hills", latitude=15.9977, longitude=107.9923, price_level=4, rating=4.5, avg_duration_mins=360),
        "cafe": make_location(db, "Cong Caphe", category="cafe", latitude=16.0678, longitude=108.2234, price_level=2, rating=4.4, avg_duration_mins=45),
        "hoian": make_location(db, "Japanese Bridge", city="Hoi an", latitude=15.8771, longitude=108.3260, rating=4.6),
    }


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def headers(db, user):
    return auth_headers(db, user)


@pytest.fixture
def other_headers(db):
    return auth_headers(db, make_user(db, email="stranger@example.com"))
