"""
Itinerary routes: templates and preference matching, ownership-gated CRUD,
item editing and location alternatives.

Reads are allowed for the owner and for public or template itineraries;
every mutation requires the owner.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
import logging

from anvago.api.schemas import (
    ItemCreate, ItemOut, ItemUpdate, ItineraryCreate, ItineraryOut, ItineraryUpdate,
    LocationOut, ReorderRequest, ScoredTemplateOut, TemplateOut, ok,
)
from anvago.core.config import settings
from anvago.core.errors import ForbiddenError, NotFoundError, ValidationError
from anvago.core.monitoring import track_performance
from anvago.core.rate_limiting import limiter, MATCH_LIMIT
from anvago.core.security import get_current_user, get_optional_user
from anvago.db.database import get_db
from anvago.db.models import Itinerary, User
from anvago.db.repositories import ItineraryRepository, LocationRepository, TemplateRepository
from anvago.services.editor import build_day_plans, describe_day
from anvago.services.matcher import PreferenceQuery, ScoredTemplate, normalize_city, rank_templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/itineraries", tags=["itineraries"])


def _ensure_owner(itinerary: Itinerary, user: User) -> None:
    if itinerary.user_id != user.id:
        raise ForbiddenError("Access denied")


def _ensure_readable(itinerary: Itinerary, user: Optional[User]) -> None:
    if itinerary.is_public or itinerary.is_template:
        return
    if user is None or itinerary.user_id != user.id:
        raise ForbiddenError("Access denied")


def _ensure_location(db: Session, location_id: str) -> None:
    if LocationRepository(db).get_by_id(location_id) is None:
        raise NotFoundError("Location not found", details={"locationId": location_id})


def _scored_out(scored: ScoredTemplate) -> ScoredTemplateOut:
    base = TemplateOut.model_validate(scored.template)
    return ScoredTemplateOut(
        **base.model_dump(),
        match_score=scored.match_score,
        matched_criteria=scored.matched_criteria,
    )


@track_performance("template_matching")
def suggest_templates(db: Session, query: PreferenceQuery) -> List[ScoredTemplate]:
    templates = TemplateRepository(db).list_active(query.city)
    return rank_templates(templates, query, settings.matcher_denominator_policy)


# ============================================================================
# TEMPLATES
# ============================================================================

@router.get("/templates")
def list_templates(
    city: Optional[str] = Query(None, description="City, defaults to Danang"),
    db: Session = Depends(get_db),
):
    templates = TemplateRepository(db).list_active(normalize_city(city, settings.default_city))
    return ok([TemplateOut.model_validate(t) for t in templates])


@router.get("/templates/suggested")
@limiter.limit(MATCH_LIMIT)
def suggested_templates(
    request: Request,
    city: Optional[str] = Query(None),
    personas: Optional[str] = Query(None, description="Comma-separated personas"),
    vibes: Optional[str] = Query(None, description="Comma-separated vibes"),
    budget: Optional[str] = Query(None),
    interests: Optional[str] = Query(None, description="Comma-separated interests"),
    duration: Optional[int] = Query(None, ge=1, description="Trip length in days"),
    db: Session = Depends(get_db),
):
    """
    Every active template for the city, scored against the query and
    sorted by matchScore descending (ties by display order).
    """
    query = PreferenceQuery.from_params(
        city=city or settings.default_city,
        personas=personas,
        vibes=vibes,
        budget=budget,
        interests=interests,
        duration=duration,
    )
    ranked = suggest_templates(db, query)
    return ok([_scored_out(s) for s in ranked])


# ============================================================================
# CRUD
# ============================================================================

@router.get("")
def list_my_itineraries(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    itineraries = ItineraryRepository(db).list_for_user(user.id)
    return ok([ItineraryOut.model_validate(i) for i in itineraries])


@router.post("", status_code=201)
def create_itinerary(
    body: ItineraryCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fields = body.model_dump()
    fields["city"] = normalize_city(fields["city"], settings.default_city)
    itinerary = ItineraryRepository(db).create(user, **fields)
    logger.info(f"User {user.id} created itinerary {itinerary.id}")
    return ok(ItineraryOut.model_validate(itinerary))


@router.get("/{itinerary_id}")
def get_itinerary(
    itinerary_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    itinerary = ItineraryRepository(db).get(itinerary_id)
    _ensure_readable(itinerary, user)
    return ok(ItineraryOut.model_validate(itinerary))


@router.patch("/{itinerary_id}")
def update_itinerary(
    itinerary_id: str,
    body: ItineraryUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = ItineraryRepository(db)
    itinerary = repo.get(itinerary_id)
    _ensure_owner(itinerary, user)

    changes = body.model_dump(exclude_unset=True)
    if "city" in changes:
        changes["city"] = normalize_city(changes["city"], settings.default_city)
    if changes.get("title") is None:
        changes.pop("title", None)
    if changes.get("duration_days") is None:
        changes.pop("duration_days", None)
    return ok(ItineraryOut.model_validate(repo.update(itinerary, changes)))


@router.delete("/{itinerary_id}")
def delete_itinerary(
    itinerary_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = ItineraryRepository(db)
    itinerary = repo.get(itinerary_id)
    _ensure_owner(itinerary, user)
    repo.delete(itinerary)
    logger.info(f"User {user.id} deleted itinerary {itinerary_id}")
    return ok({"message": "Itinerary deleted"})


@router.post("/{itinerary_id}/duplicate", status_code=201)
def duplicate_itinerary(
    itinerary_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Copy a template, public itinerary or one of your own into a new private itinerary."""
    repo = ItineraryRepository(db)
    original = repo.get(itinerary_id)
    _ensure_readable(original, user)
    return ok(ItineraryOut.model_validate(repo.duplicate(original, user)))


@router.get("/{itinerary_id}/days")
def get_day_plans(
    itinerary_id: str,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Day-by-day schedule with computed start/end times."""
    itinerary = ItineraryRepository(db).get(itinerary_id)
    _ensure_readable(itinerary, user)
    return ok([describe_day(plan) for plan in build_day_plans(itinerary)])


# ============================================================================
# ITEMS
# ============================================================================

@router.post("/{itinerary_id}/items", status_code=201)
def add_item(
    itinerary_id: str,
    body: ItemCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = ItineraryRepository(db)
    itinerary = repo.get(itinerary_id)
    _ensure_owner(itinerary, user)
    if body.day_number > itinerary.duration_days:
        raise ValidationError(
            f"Day {body.day_number} is outside a {itinerary.duration_days}-day itinerary"
        )
    _ensure_location(db, body.location_id)

    fields = body.model_dump(exclude={"location_id", "day_number", "order_index"})
    item = repo.add_item(itinerary, body.location_id, body.day_number, body.order_index, **fields)
    return ok(ItemOut.model_validate(item))


# Registered before /items/{item_id} so "reorder" is never taken as an id.
@router.post("/{itinerary_id}/items/reorder")
def reorder_items(
    itinerary_id: str,
    body: ReorderRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Move several items at once. All moves are validated before any is
    applied; an unknown id or a clashing position rejects the batch.
    """
    repo = ItineraryRepository(db)
    itinerary = repo.get(itinerary_id)
    _ensure_owner(itinerary, user)
    for move in body.items:
        if move.day_number > itinerary.duration_days:
            raise ValidationError(
                f"Day {move.day_number} is outside a {itinerary.duration_days}-day itinerary",
                details={"id": move.id},
            )
    moves = [m.model_dump() for m in body.items]
    return ok(ItineraryOut.model_validate(repo.reorder_items(itinerary, moves)))


@router.patch("/{itinerary_id}/items/{item_id}")
def update_item(
    itinerary_id: str,
    item_id: str,
    body: ItemUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = ItineraryRepository(db)
    itinerary = repo.get(itinerary_id)
    _ensure_owner(itinerary, user)
    item = repo.get_item(itinerary, item_id)

    changes = body.model_dump(exclude_unset=True)
    if "location_id" in changes:
        if changes["location_id"] is None:
            changes.pop("location_id")
        else:
            _ensure_location(db, changes["location_id"])
    return ok(ItemOut.model_validate(repo.update_item(item, changes)))


@router.delete("/{itinerary_id}/items/{item_id}")
def delete_item(
    itinerary_id: str,
    item_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    repo = ItineraryRepository(db)
    itinerary = repo.get(itinerary_id)
    _ensure_owner(itinerary, user)
    repo.delete_item(repo.get_item(itinerary, item_id))
    return ok({"message": "Item removed"})


@router.get("/{itinerary_id}/items/{item_id}/alternatives")
def item_alternatives(
    itinerary_id: str,
    item_id: str,
    type: str = Query("category", description="category, price, area or rating"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Up to ten other same-city locations similar to the item's location."""
    repo = ItineraryRepository(db)
    itinerary = repo.get(itinerary_id)
    _ensure_readable(itinerary, user)
    item = repo.get_item(itinerary, item_id)
    if item.location is None:
        raise NotFoundError("Location not found")
    alternatives = LocationRepository(db).alternatives(item.location, type)
    return ok([LocationOut.model_validate(loc) for loc in alternatives])
