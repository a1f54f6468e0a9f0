"""
Request / response models shared by the API routers.

Field names are snake_case in Python and camelCase on the wire
(dayNumber, orderIndex, ...); requests accept either spelling.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def ok(data: Any) -> Dict[str, Any]:
    """Success envelope used by every endpoint."""
    return {"success": True, "data": jsonable_encoder(data, by_alias=True)}


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class LocationOut(ApiModel):
    id: str
    name: str
    name_local: Optional[str] = None
    description: Optional[str] = None
    description_short: Optional[str] = None
    latitude: float
    longitude: float
    address: Optional[str] = None
    city: str
    category: str
    tags: List[str] = []
    image_url: Optional[str] = None
    price_level: Optional[int] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    avg_duration_mins: Optional[int] = None
    opening_hours: Optional[Dict[str, Dict[str, str]]] = None
    is_popular: bool = False
    is_hidden_gem: bool = False
    is_verified: bool = False


# ---------------------------------------------------------------------------
# Itineraries
# ---------------------------------------------------------------------------

class ItemOut(ApiModel):
    id: str
    itinerary_id: str
    location_id: str
    day_number: int
    order_index: int
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_mins: Optional[int] = None
    notes: Optional[str] = None
    transport_mode: Optional[str] = None
    transport_duration: Optional[int] = None
    transport_cost: Optional[int] = None
    location: Optional[LocationOut] = None


class ItineraryOut(ApiModel):
    id: str
    user_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    city: str
    duration_days: int
    start_date: Optional[datetime] = None
    cover_image: Optional[str] = None
    is_public: bool = False
    is_template: bool = False
    generated_by: Optional[str] = None
    estimated_budget: Optional[int] = None
    total_distance: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[ItemOut] = []


class TemplateOut(ApiModel):
    id: str
    name: str
    description: Optional[str] = None
    tagline: Optional[str] = None
    cover_image: Optional[str] = None
    city: str
    duration_days: int
    target_personas: List[str] = []
    target_vibes: List[str] = []
    target_budget: Optional[str] = None
    target_interests: List[str] = []
    highlights: List[str] = []
    badges: List[str] = []
    itinerary_id: str
    display_order: int = 0
    is_active: bool = True
    itinerary: Optional[ItineraryOut] = None


class ScoredTemplateOut(TemplateOut):
    match_score: int
    matched_criteria: List[str] = []


class ItineraryCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    city: str = "Danang"
    duration_days: int = Field(..., ge=1, le=14)
    start_date: Optional[datetime] = None
    is_public: bool = False
    cover_image: Optional[str] = None


class ItineraryUpdate(ApiModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    city: Optional[str] = None
    duration_days: Optional[int] = Field(None, ge=1, le=14)
    start_date: Optional[datetime] = None
    is_public: Optional[bool] = None
    cover_image: Optional[str] = None


class ItemCreate(ApiModel):
    location_id: str
    day_number: int = Field(..., ge=1)
    order_index: int = Field(..., ge=0)
    start_time: Optional[str] = Field(None, pattern=CLOCK_PATTERN)
    end_time: Optional[str] = Field(None, pattern=CLOCK_PATTERN)
    duration_mins: Optional[int] = Field(None, ge=15)
    notes: Optional[str] = None
    transport_mode: Optional[str] = None
    transport_duration: Optional[int] = Field(None, ge=0)
    transport_cost: Optional[int] = Field(None, ge=0)


class ItemUpdate(ApiModel):
    location_id: Optional[str] = None
    start_time: Optional[str] = Field(None, pattern=CLOCK_PATTERN)
    end_time: Optional[str] = Field(None, pattern=CLOCK_PATTERN)
    duration_mins: Optional[int] = Field(None, ge=15)
    notes: Optional[str] = None
    transport_mode: Optional[str] = None
    transport_duration: Optional[int] = Field(None, ge=0)
    transport_cost: Optional[int] = Field(None, ge=0)


class ReorderMove(ApiModel):
    id: str
    day_number: int = Field(..., ge=1)
    order_index: int = Field(..., ge=0)


class ReorderRequest(ApiModel):
    items: List[ReorderMove]


# ---------------------------------------------------------------------------
# Users & auth
# ---------------------------------------------------------------------------

class RegisterRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(ApiModel):
    email: str
    password: str


class RefreshRequest(ApiModel):
    refresh_token: str


class PreferencesIn(ApiModel):
    personas: List[str] = Field(default_factory=list, max_length=3)
    vibes: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    budget_level: Optional[Literal["budget", "moderate", "premium"]] = None
    mobility_level: Optional[str] = None
    group_size: int = Field(1, ge=1, le=50)


class PreferencesOut(ApiModel):
    personas: List[str] = []
    vibes: List[str] = []
    interests: List[str] = []
    budget_level: Optional[str] = None
    mobility_level: Optional[str] = None
    group_size: Optional[int] = None


class UserOut(ApiModel):
    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    is_admin: bool = False
    is_premium: bool = False
    premium_until: Optional[datetime] = None
    preferences: Optional[PreferencesOut] = None


# ---------------------------------------------------------------------------
# Rewards & admin
# ---------------------------------------------------------------------------

class ContributionIn(ApiModel):
    type: Literal["photo", "rating", "tip", "verify_hours", "verify_price", "report"]
    location_id: Optional[str] = None
    location_name: Optional[str] = None
    trip_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class ContributionOut(ApiModel):
    id: str
    type: str
    location_id: Optional[str] = None
    location_name: Optional[str] = None
    trip_id: Optional[str] = None
    points: int
    data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class RedeemRequest(ApiModel):
    gift_id: str


class DemoStateOut(ApiModel):
    is_active: bool = False
    speed: int = 1
    mock_location: bool = True
    weather_alert: bool = False
    traffic_delay: bool = False
    ai_responses: bool = True
    updated_at: Optional[datetime] = None


class DemoStateUpdate(ApiModel):
    is_active: Optional[bool] = None
    speed: Optional[int] = Field(None, ge=1, le=100)
    mock_location: Optional[bool] = None
    weather_alert: Optional[bool] = None
    traffic_delay: Optional[bool] = None
    ai_responses: Optional[bool] = None
