"""
Rewards: contribution points, tiers and gift redemption.

The point table, tiers and gift catalog are fixed configuration.
Ledger state (points, lifetime points, streak) lives on the User row;
every earning is recorded as a Contribution, every spend as a
GiftRedemption.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Any, Dict, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from anvago.core.errors import NotFoundError, ValidationError
from anvago.db.models import Contribution, GiftRedemption, User

logger = logging.getLogger(__name__)


REWARD_POINTS = MappingProxyType({
    # Trip completion
    "COMPLETE_TRIP": 50,
    "RATE_LOCATION": 10,
    "RATE_TRIP": 25,
    # Photos
    "UPLOAD_PHOTO": 30,
    "FIRST_PHOTO_BONUS": 20,  # first photo of a location
    # Feedback
    "WRITE_TIP": 25,
    "VERIFY_HOURS": 15,
    "VERIFY_PRICE": 15,
    "REPORT_CLOSED": 20,
    # Quality bonuses
    "DETAILED_REVIEW": 40,  # 50+ characters
    "HELPFUL_REVIEW_BONUS": 50,
    # Streaks
    "DAILY_CONTRIBUTION": 10,
    "WEEKLY_STREAK": 100,
})

CONTRIBUTION_POINTS = MappingProxyType({
    "photo": "UPLOAD_PHOTO",
    "rating": "RATE_LOCATION",
    "tip": "WRITE_TIP",
    "verify_hours": "VERIFY_HOURS",
    "verify_price": "VERIFY_PRICE",
    "report": "REPORT_CLOSED",
})

DETAILED_REVIEW_MIN_CHARS = 50


@dataclass(frozen=True)
class RewardTier:
    points: int
    name: str
    icon: str
    premium_days: int


REWARD_TIERS: Tuple[RewardTier, ...] = (
    RewardTier(0, "Explorer", "\U0001F331", 0),
    RewardTier(100, "Traveler", "\U0001F392", 3),
    RewardTier(300, "Adventurer", "\U0001F9ED", 7),
    RewardTier(600, "Pathfinder", "\U0001F5FA\uFE0F", 14),
    RewardTier(1000, "Local Expert", "\u2B50", 30),
    RewardTier(2000, "Ambassador", "\U0001F451", 60),
)


@dataclass(frozen=True)
class Gift:
    id: str
    name: str
    points: int
    type: str
    value: Any


GIFTS: Tuple[Gift, ...] = (
    Gift("premium_week", "1 Week Premium", 200, "premium", 7),
    Gift("premium_month", "1 Month Premium", 500, "premium", 30),
    Gift("discount_10", "10% Partner Discount", 150, "discount", 10),
    Gift("discount_20", "20% Partner Discount", 300, "discount", 20),
    Gift("free_coffee", "Free Coffee Voucher", 100, "voucher", "coffee"),
    Gift("local_tour", "Local Guide Tour", 800, "experience", "tour"),
)

GIFTS_BY_ID = MappingProxyType({g.id: g for g in GIFTS})


# ============================================================================
# TIERS
# ============================================================================

def current_tier(total_earned: int) -> RewardTier:
    tier = REWARD_TIERS[0]
    for candidate in REWARD_TIERS:
        if total_earned >= candidate.points:
            tier = candidate
        else:
            break
    return tier


def next_tier(total_earned: int) -> Optional[RewardTier]:
    for candidate in REWARD_TIERS:
        if total_earned < candidate.points:
            return candidate
    return None


def progress_to_next_tier(total_earned: int) -> float:
    """Percent of the way from the current tier to the next; 100 at the top tier."""
    upcoming = next_tier(total_earned)
    if upcoming is None:
        return 100.0
    base = current_tier(total_earned)
    progress = (total_earned - base.points) / (upcoming.points - base.points) * 100
    return min(100.0, max(0.0, progress))


# ============================================================================
# EARNING
# ============================================================================

def next_streak(last_contribution: Optional[date], today: date, streak_days: int) -> int:
    if last_contribution == today:
        return max(streak_days, 1)
    if last_contribution == today - timedelta(days=1):
        return streak_days + 1
    return 1


def points_for(contribution_type: str, first_photo: bool = False, text: Optional[str] = None) -> int:
    key = CONTRIBUTION_POINTS.get(contribution_type)
    if key is None:
        raise ValidationError(f"Unknown contribution type: {contribution_type}")
    points = REWARD_POINTS[key]
    if contribution_type == "photo" and first_photo:
        points += REWARD_POINTS["FIRST_PHOTO_BONUS"]
    if contribution_type == "tip" and text and len(text.strip()) >= DETAILED_REVIEW_MIN_CHARS:
        points += REWARD_POINTS["DETAILED_REVIEW"]
    return points


class RewardsService:
    """Ledger operations for one database session."""

    def __init__(self, db: Session):
        self.db = db

    def summary(self, user: User) -> Dict[str, Any]:
        total = user.total_earned_points or 0
        upcoming = next_tier(total)
        return {
            "points": user.points or 0,
            "totalEarnedPoints": total,
            "streakDays": user.streak_days or 0,
            "lastContributionDate": user.last_contribution_date.isoformat() if user.last_contribution_date else None,
            "tier": tier_dict(current_tier(total)),
            "nextTier": tier_dict(upcoming) if upcoming else None,
            "progressToNextTier": round(progress_to_next_tier(total), 1),
            "redeemedGifts": [
                r.gift_id for r in self.db.query(GiftRedemption)
                .filter(GiftRedemption.user_id == user.id)
                .order_by(GiftRedemption.created_at.asc())
                .all()
            ],
        }

    def recent_contributions(self, user: User, limit: int = 100):
        return (
            self.db.query(Contribution)
            .filter(Contribution.user_id == user.id)
            .order_by(Contribution.created_at.desc())
            .limit(limit)
            .all()
        )

    def record_contribution(
        self,
        user: User,
        contribution_type: str,
        location_id: Optional[str] = None,
        location_name: Optional[str] = None,
        trip_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        today: Optional[date] = None,
    ) -> Contribution:
        today = today or date.today()
        first_photo = False
        if contribution_type == "photo" and location_id:
            first_photo = not self.db.query(Contribution).filter(
                Contribution.type == "photo",
                Contribution.location_id == location_id,
            ).first()

        text = (data or {}).get("text")
        points = points_for(contribution_type, first_photo=first_photo, text=text)

        contribution = Contribution(
            user_id=user.id,
            type=contribution_type,
            location_id=location_id,
            location_name=location_name,
            trip_id=trip_id,
            points=points,
            data=data,
        )
        self.db.add(contribution)

        user.points = (user.points or 0) + points
        user.total_earned_points = (user.total_earned_points or 0) + points
        user.streak_days = next_streak(user.last_contribution_date, today, user.streak_days or 0)
        user.last_contribution_date = today
        self.db.commit()
        self.db.refresh(contribution)
        logger.info(f"User {user.id} earned {points} points for {contribution_type}")
        return contribution

    def redeem(self, user: User, gift_id: str) -> GiftRedemption:
        gift = GIFTS_BY_ID.get(gift_id)
        if gift is None:
            raise NotFoundError(f"Gift not found: {gift_id}")
        if (user.points or 0) < gift.points:
            raise ValidationError(
                f"Not enough points: {gift.name} costs {gift.points}, you have {user.points or 0}"
            )

        user.points -= gift.points
        if gift.type == "premium":
            now = datetime.utcnow()
            base = user.premium_until if user.premium_until and user.premium_until > now else now
            user.premium_until = base + timedelta(days=int(gift.value))
            user.is_premium = True

        redemption = GiftRedemption(user_id=user.id, gift_id=gift.id, points_spent=gift.points)
        self.db.add(redemption)
        self.db.commit()
        self.db.refresh(redemption)
        logger.info(f"User {user.id} redeemed {gift.id} for {gift.points} points")
        return redemption


def tier_dict(tier: RewardTier) -> Dict[str, Any]:
    return {"points": tier.points, "name": tier.name, "icon": tier.icon, "premiumDays": tier.premium_days}


def gift_dict(gift: Gift) -> Dict[str, Any]:
    return {"id": gift.id, "name": gift.name, "points": gift.points, "type": gift.type, "value": gift.value}
