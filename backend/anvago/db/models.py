"""
Database models -- SQLAlchemy ORM definitions.
Locations, itineraries and their items, templates, users, auth tokens,
rewards ledger and the demo-state singleton.
Compatible with both PostgreSQL and SQLite.
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, JSON,
    String, Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


LOCATION_CATEGORIES = (
    "beach", "attraction", "temple", "market", "restaurant", "cafe",
    "nature", "nightlife", "museum", "wellness", "activity", "shopping",
)


class Location(Base):
    """
    Point of interest. Seeded per city; read-only at request time.
    opening_hours is keyed by weekday: {"monday": {"open": "07:00", "close": "17:30"}}.
    """
    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(Text, nullable=False, index=True)
    name_local = Column(Text)
    description = Column(Text)
    description_short = Column(Text)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(Text)
    city = Column(String(100), nullable=False, index=True)
    category = Column(String(32), nullable=False, index=True)
    tags = Column(JSON, default=list)
    image_url = Column(Text)
    price_level = Column(Integer, default=1)
    rating = Column(Float, default=0.0, index=True)
    review_count = Column(Integer, default=0)
    avg_duration_mins = Column(Integer, default=60)
    opening_hours = Column(JSON)
    is_popular = Column(Boolean, default=False)
    is_hidden_gem = Column(Boolean, default=False)
    is_verified = Column(Boolean, default=False)

    __table_args__ = (
        Index("ix_locations_city_category", "city", "category"),
    )


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255))
    avatar_url = Column(Text)
    is_admin = Column(Boolean, default=False)
    is_premium = Column(Boolean, default=False)
    premium_until = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Rewards ledger
    points = Column(Integer, default=0)
    total_earned_points = Column(Integer, default=0)
    streak_days = Column(Integer, default=0)
    last_contribution_date = Column(Date)

    preferences = relationship(
        "UserPreferences", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    itineraries = relationship("Itinerary", back_populates="user", cascade="all, delete-orphan")


class UserPreferences(Base):
    """Onboarding answers. At most three personas."""
    __tablename__ = "user_preferences"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    personas = Column(JSON, default=list)
    vibes = Column(JSON, default=list)
    interests = Column(JSON, default=list)
    budget_level = Column(String(32))
    mobility_level = Column(String(32))
    group_size = Column(Integer, default=1)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="preferences")


class AuthToken(Base):
    """Opaque bearer tokens. Only the sha256 of the token is stored."""
    __tablename__ = "auth_tokens"

    id = Column(String(36), primary_key=True, default=_uuid)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    kind = Column(String(16), nullable=False)  # access | refresh
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")


class Itinerary(Base):
    __tablename__ = "itineraries"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    title = Column(Text, nullable=False)
    description = Column(Text)
    city = Column(String(100), nullable=False, index=True)
    duration_days = Column(Integer, nullable=False)
    start_date = Column(DateTime)
    cover_image = Column(Text)
    is_public = Column(Boolean, default=False)
    is_template = Column(Boolean, default=False)
    generated_by = Column(String(32), default="user")
    estimated_budget = Column(Integer)
    total_distance = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="itineraries")
    items = relationship(
        "ItineraryItem",
        back_populates="itinerary",
        cascade="all, delete-orphan",
        order_by="[ItineraryItem.day_number, ItineraryItem.order_index]",
    )


class ItineraryItem(Base):
    """One activity. (itinerary_id, day_number, order_index) is unique and dense per day."""
    __tablename__ = "itinerary_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    itinerary_id = Column(String(36), ForeignKey("itineraries.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=False)
    day_number = Column(Integer, nullable=False)
    order_index = Column(Integer, nullable=False)
    start_time = Column(String(5))
    end_time = Column(String(5))
    duration_mins = Column(Integer)
    notes = Column(Text)
    transport_mode = Column(String(32))
    transport_duration = Column(Integer)  # minutes to the next item
    transport_cost = Column(Integer)

    itinerary = relationship("Itinerary", back_populates="items")
    location = relationship("Location", lazy="joined")

    __table_args__ = (
        Index("ix_items_itinerary_day_order", "itinerary_id", "day_number", "order_index"),
    )


class ItineraryTemplate(Base):
    """Curated itinerary with targeting metadata used by the preference matcher."""
    __tablename__ = "itinerary_templates"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(Text, nullable=False)
    description = Column(Text)
    tagline = Column(Text)
    cover_image = Column(Text)
    city = Column(String(100), nullable=False, index=True)
    duration_days = Column(Integer, nullable=False)
    target_personas = Column(JSON, default=list)
    target_vibes = Column(JSON, default=list)
    target_budget = Column(String(32))
    target_interests = Column(JSON, default=list)
    highlights = Column(JSON, default=list)
    badges = Column(JSON, default=list)
    itinerary_id = Column(String(36), ForeignKey("itineraries.id", ondelete="CASCADE"), nullable=False)
    display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True, index=True)

    itinerary = relationship("Itinerary")


class Contribution(Base):
    __tablename__ = "contributions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    location_id = Column(String(36), ForeignKey("locations.id"))
    location_name = Column(Text)
    trip_id = Column(String(36))
    points = Column(Integer, nullable=False)
    data = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class GiftRedemption(Base):
    __tablename__ = "gift_redemptions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    gift_id = Column(String(64), nullable=False)
    points_spent = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class DemoState(Base):
    """Singleton row (id='singleton') holding the admin demo toggles."""
    __tablename__ = "demo_state"

    id = Column(String(36), primary_key=True, default="singleton")
    is_active = Column(Boolean, default=False)
    speed = Column(Integer, default=1)
    mock_location = Column(Boolean, default=True)
    weather_alert = Column(Boolean, default=False)
    traffic_delay = Column(Boolean, default=False)
    ai_responses = Column(Boolean, default=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
