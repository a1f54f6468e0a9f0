"""
Repository pattern for data access.
One repository per aggregate: locations, templates, itineraries, users.
Database errors propagate to the caller.
"""

from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, or_
import logging

from anvago.core.errors import NotFoundError, ValidationError
from anvago.db.models import (
    DemoState, Itinerary, ItineraryItem, ItineraryTemplate, Location, User, UserPreferences,
)

logger = logging.getLogger(__name__)

AREA_RADIUS_DEG = 0.02  # ~2km
ALTERNATIVES_LIMIT = 10
ALTERNATIVE_TYPES = ("category", "price", "area", "rating")


class LocationRepository:
    """Read access to the location catalog."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, location_id: str) -> Optional[Location]:
        return self.db.query(Location).filter(Location.id == location_id).first()

    def list_by_city(self, city: str, category: Optional[str] = None, limit: int = 50) -> List[Location]:
        query = self.db.query(Location).filter(Location.city == city)
        if category:
            query = query.filter(Location.category == category)
        return query.order_by(Location.is_popular.desc(), Location.rating.desc(), Location.name).limit(limit).all()

    def search(self, text: str, city: Optional[str] = None, limit: int = 20) -> List[Location]:
        """Case-insensitive match on name, local name, short description and category."""
        pattern = f"%{text}%"
        query = self.db.query(Location).filter(
            or_(
                Location.name.ilike(pattern),
                Location.name_local.ilike(pattern),
                Location.description_short.ilike(pattern),
                Location.category.ilike(pattern),
            )
        )
        if city:
            query = query.filter(Location.city == city)
        return query.order_by(Location.rating.desc(), Location.name).limit(limit).all()

    def alternatives(self, location: Location, kind: str = "category", limit: int = ALTERNATIVES_LIMIT) -> List[Location]:
        """
        Same-city locations other than `location`, filtered by one dimension:
          category  same category
          price     same price level
          area      within +/-0.02 degrees latitude and longitude
          rating    rated at least as high
        """
        query = self.db.query(Location).filter(
            Location.id != location.id,
            Location.city == location.city,
        )

        if kind == "price":
            query = query.filter(Location.price_level == location.price_level)
        elif kind == "area":
            query = query.filter(
                Location.latitude.between(location.latitude - AREA_RADIUS_DEG, location.latitude + AREA_RADIUS_DEG),
                Location.longitude.between(location.longitude - AREA_RADIUS_DEG, location.longitude + AREA_RADIUS_DEG),
            )
        elif kind == "rating":
            query = query.filter(Location.rating >= (location.rating or 0))
        else:
            query = query.filter(Location.category == location.category)

        return query.order_by(Location.rating.desc(), Location.name).limit(limit).all()

    def count(self) -> int:
        return self.db.query(Location).count()

    def average_rating(self) -> float:
        value = self.db.query(func.avg(Location.rating)).scalar()
        return round(float(value), 2) if value is not None else 0.0


class TemplateRepository:
    """Itinerary templates with their full day-by-day itinerary."""

    def __init__(self, db: Session):
        self.db = db

    def list_active(self, city: str) -> List[ItineraryTemplate]:
        return (
            self.db.query(ItineraryTemplate)
            .options(
                selectinload(ItineraryTemplate.itinerary)
                .selectinload(Itinerary.items)
            )
            .filter(ItineraryTemplate.city == city, ItineraryTemplate.is_active.is_(True))
            .order_by(ItineraryTemplate.display_order.asc())
            .all()
        )

    def count(self) -> int:
        return self.db.query(ItineraryTemplate).count()


class ItineraryRepository:
    """
    User itineraries and their items.

    Keeps order_index dense and zero-based within each day: inserts shift
    later items down, deletes close the gap.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, itinerary_id: str) -> Itinerary:
        itinerary = (
            self.db.query(Itinerary)
            .options(selectinload(Itinerary.items))
            .filter(Itinerary.id == itinerary_id)
            .first()
        )
        if itinerary is None:
            raise NotFoundError("Itinerary not found")
        return itinerary

    def list_for_user(self, user_id: str) -> List[Itinerary]:
        return (
            self.db.query(Itinerary)
            .options(selectinload(Itinerary.items))
            .filter(Itinerary.user_id == user_id)
            .order_by(Itinerary.updated_at.desc())
            .all()
        )

    def create(self, user: User, **fields: Any) -> Itinerary:
        itinerary = Itinerary(user_id=user.id, generated_by="user", **fields)
        self.db.add(itinerary)
        self.db.commit()
        return self.get(itinerary.id)

    def update(self, itinerary: Itinerary, changes: Dict[str, Any]) -> Itinerary:
        for key, value in changes.items():
            setattr(itinerary, key, value)
        self.db.commit()
        self.db.expire(itinerary)
        return self.get(itinerary.id)

    def delete(self, itinerary: Itinerary) -> None:
        self.db.delete(itinerary)
        self.db.commit()

    def duplicate(self, original: Itinerary, user: User) -> Itinerary:
        copy = Itinerary(
            user_id=user.id,
            title=f"{original.title} (Copy)",
            description=original.description,
            city=original.city,
            duration_days=original.duration_days,
            cover_image=original.cover_image,
            generated_by="user",
            estimated_budget=original.estimated_budget,
            total_distance=original.total_distance,
        )
        for item in original.items:
            copy.items.append(ItineraryItem(
                location_id=item.location_id,
                day_number=item.day_number,
                order_index=item.order_index,
                start_time=item.start_time,
                end_time=item.end_time,
                duration_mins=item.duration_mins,
                notes=item.notes,
                transport_mode=item.transport_mode,
                transport_duration=item.transport_duration,
                transport_cost=item.transport_cost,
            ))
        self.db.add(copy)
        self.db.commit()
        logger.info(f"Duplicated itinerary {original.id} -> {copy.id} for user {user.id}")
        return self.get(copy.id)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def _day_items(self, itinerary_id: str, day_number: int) -> List[ItineraryItem]:
        return (
            self.db.query(ItineraryItem)
            .filter(ItineraryItem.itinerary_id == itinerary_id, ItineraryItem.day_number == day_number)
            .order_by(ItineraryItem.order_index.asc())
            .all()
        )

    @staticmethod
    def _renumber(items: Iterable[ItineraryItem]) -> None:
        for idx, item in enumerate(items):
            item.order_index = idx

    def get_item(self, itinerary: Itinerary, item_id: str) -> ItineraryItem:
        item = (
            self.db.query(ItineraryItem)
            .filter(ItineraryItem.id == item_id, ItineraryItem.itinerary_id == itinerary.id)
            .first()
        )
        if item is None:
            raise NotFoundError("Item not found")
        return item

    def add_item(self, itinerary: Itinerary, location_id: str, day_number: int, order_index: int, **fields: Any) -> ItineraryItem:
        """Insert at order_index (clamped to the end of the day) and renumber the day."""
        day_items = self._day_items(itinerary.id, day_number)
        position = max(0, min(order_index, len(day_items)))
        item = ItineraryItem(
            itinerary_id=itinerary.id,
            location_id=location_id,
            day_number=day_number,
            order_index=position,
            **fields,
        )
        day_items.insert(position, item)
        self._renumber(day_items)
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_item(self, item: ItineraryItem, changes: Dict[str, Any]) -> ItineraryItem:
        for key, value in changes.items():
            setattr(item, key, value)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item: ItineraryItem) -> None:
        day_items = [i for i in self._day_items(item.itinerary_id, item.day_number) if i.id != item.id]
        self.db.delete(item)
        self._renumber(day_items)
        self.db.commit()

    def reorder_items(self, itinerary: Itinerary, moves: List[Dict[str, int]]) -> Itinerary:
        """
        Apply every {id, day_number, order_index} move in one transaction.
        Any unknown id or clashing position rejects the whole batch.
        Each day is renumbered densely afterwards, keeping relative order.
        """
        ids = [m["id"] for m in moves]
        if len(set(ids)) != len(ids):
            raise ValidationError("Each item may appear only once in a reorder")

        items = {
            item.id: item
            for item in self.db.query(ItineraryItem).filter(
                ItineraryItem.itinerary_id == itinerary.id
            ).all()
        }
        missing = [i for i in ids if i not in items]
        if missing:
            raise NotFoundError("Item not found", details={"missing": missing})

        positions = {(item.day_number, item.order_index): item.id for item in items.values() if item.id not in ids}
        for move in moves:
            key = (move["day_number"], move["order_index"])
            if key in positions:
                raise ValidationError(
                    f"Duplicate position day {key[0]} order {key[1]}",
                    details={"ids": [positions[key], move["id"]]},
                )
            positions[key] = move["id"]

        try:
            for move in moves:
                item = items[move["id"]]
                item.day_number = move["day_number"]
                item.order_index = move["order_index"]
            by_day: Dict[int, List[ItineraryItem]] = {}
            for item in items.values():
                by_day.setdefault(item.day_number, []).append(item)
            for day_items in by_day.values():
                self._renumber(sorted(day_items, key=lambda i: i.order_index))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Reordered {len(moves)} items in itinerary {itinerary.id}")
        self.db.expire_all()
        return self.get(itinerary.id)

    def count(self) -> int:
        return self.db.query(Itinerary).filter(Itinerary.is_template.is_(False)).count()


class UserRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def create(self, email: str, name: str, password_hash: str) -> User:
        user = User(email=email.lower(), name=name, password_hash=password_hash)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def save_preferences(self, user: User, fields: Dict[str, Any]) -> UserPreferences:
        prefs = user.preferences
        if prefs is None:
            prefs = UserPreferences(user_id=user.id)
            self.db.add(prefs)
        for key, value in fields.items():
            setattr(prefs, key, value)
        self.db.commit()
        self.db.refresh(prefs)
        return prefs

    def count(self) -> int:
        return self.db.query(User).count()


class DemoStateRepository:

    def __init__(self, db: Session):
        self.db = db

    def get(self) -> DemoState:
        state = self.db.query(DemoState).filter(DemoState.id == "singleton").first()
        if state is None:
            state = DemoState(id="singleton")
            self.db.add(state)
            self.db.commit()
            self.db.refresh(state)
        return state

    def update(self, changes: Dict[str, Any]) -> DemoState:
        state = self.get()
        for key, value in changes.items():
            setattr(state, key, value)
        self.db.commit()
        self.db.refresh(state)
        return state
