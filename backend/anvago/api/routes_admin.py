"""
Admin routes: platform stats and the demo-mode toggles.
Callers must be admin users or present the configured X-API-Key.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from anvago.api.schemas import DemoStateOut, DemoStateUpdate, ok
from anvago.core.security import require_admin
from anvago.db.database import get_db
from anvago.db.repositories import (
    DemoStateRepository, ItineraryRepository, LocationRepository, TemplateRepository, UserRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/stats")
def platform_stats(db: Session = Depends(get_db)):
    locations = LocationRepository(db)
    return ok({
        "users": UserRepository(db).count(),
        "itineraries": ItineraryRepository(db).count(),
        "templates": TemplateRepository(db).count(),
        "locations": locations.count(),
        "averageRating": locations.average_rating(),
    })


@router.get("/demo")
def get_demo_state(db: Session = Depends(get_db)):
    return ok(DemoStateOut.model_validate(DemoStateRepository(db).get()))


@router.patch("/demo")
def update_demo_state(body: DemoStateUpdate, db: Session = Depends(get_db)):
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    state = DemoStateRepository(db).update(changes)
    logger.info(f"Demo state updated: {sorted(changes)}")
    return ok(DemoStateOut.model_validate(state))
