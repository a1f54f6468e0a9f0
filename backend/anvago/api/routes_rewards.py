from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from anvago.api.schemas import ContributionIn, ContributionOut, RedeemRequest, ok
from anvago.core.errors import NotFoundError
from anvago.core.security import get_current_user
from anvago.db.database import get_db
from anvago.db.models import User
from anvago.db.repositories import LocationRepository
from anvago.services.rewards import (
    GIFTS, REWARD_POINTS, REWARD_TIERS, RewardsService, gift_dict, tier_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("/catalog")
def catalog():
    """Point table, tiers and redeemable gifts."""
    return ok({
        "points": dict(REWARD_POINTS),
        "tiers": [tier_dict(t) for t in REWARD_TIERS],
        "gifts": [gift_dict(g) for g in GIFTS],
    })


@router.get("/me")
def my_rewards(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = RewardsService(db)
    summary = service.summary(user)
    summary["contributions"] = [
        ContributionOut.model_validate(c) for c in service.recent_contributions(user)
    ]
    return ok(summary)


@router.post("/contributions", status_code=201)
def add_contribution(
    body: ContributionIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    location_name = body.location_name
    if body.location_id:
        location = LocationRepository(db).get_by_id(body.location_id)
        if location is None:
            raise NotFoundError("Location not found")
        location_name = location_name or location.name

    service = RewardsService(db)
    contribution = service.record_contribution(
        user,
        body.type,
        location_id=body.location_id,
        location_name=location_name,
        trip_id=body.trip_id,
        data=body.data,
    )
    return ok({
        "contribution": ContributionOut.model_validate(contribution),
        "rewards": service.summary(user),
    })


@router.post("/redeem")
def redeem_gift(
    body: RedeemRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = RewardsService(db)
    redemption = service.redeem(user, body.gift_id)
    return ok({
        "giftId": redemption.gift_id,
        "pointsSpent": redemption.points_spent,
        "premiumUntil": user.premium_until,
        "rewards": service.summary(user),
    })
