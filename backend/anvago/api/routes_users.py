from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from anvago.api.schemas import PreferencesIn, PreferencesOut, ok
from anvago.core.security import get_current_user
from anvago.db.database import get_db
from anvago.db.models import User
from anvago.db.repositories import UserRepository

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/preferences")
def get_preferences(user: User = Depends(get_current_user)):
    prefs = user.preferences
    return ok(PreferencesOut.model_validate(prefs) if prefs else None)


@router.put("/me/preferences")
def save_preferences(
    body: PreferencesIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Replace the onboarding answers. Personas are capped at three."""
    fields = body.model_dump()
    fields["personas"] = list(dict.fromkeys(fields["personas"]))
    prefs = UserRepository(db).save_preferences(user, fields)
    return ok(PreferencesOut.model_validate(prefs))
