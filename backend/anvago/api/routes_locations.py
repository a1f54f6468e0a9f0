"""
Location catalog routes (read-only).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from anvago.api.schemas import LocationOut, ok
from anvago.core.config import settings
from anvago.core.errors import NotFoundError
from anvago.core.rate_limiting import limiter, SEARCH_LIMIT
from anvago.db.database import get_db
from anvago.db.repositories import LocationRepository
from anvago.services.matcher import normalize_city

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("")
def list_locations(
    city: Optional[str] = Query(None, description="City, defaults to the configured default city"),
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    locations = LocationRepository(db).list_by_city(
        normalize_city(city, settings.default_city), category=category, limit=limit
    )
    return ok([LocationOut.model_validate(loc) for loc in locations])


@router.get("/search")
@limiter.limit(SEARCH_LIMIT)
def search_locations(
    request: Request,
    q: str = Query(..., min_length=1, max_length=100, description="Search text"),
    city: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=50),
    db: Session = Depends(get_db),
):
    locations = LocationRepository(db).search(
        q.strip(), city=normalize_city(city) if city else None, limit=limit
    )
    return ok([LocationOut.model_validate(loc) for loc in locations])


@router.get("/{location_id}")
def get_location(location_id: str, db: Session = Depends(get_db)):
    location = LocationRepository(db).get_by_id(location_id)
    if location is None:
        raise NotFoundError("Location not found")
    return ok(LocationOut.model_validate(location))
