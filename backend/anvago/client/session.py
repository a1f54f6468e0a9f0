"""
Client-side session state: auth tokens, the signed-in user and the
onboarding answers, held in one explicit store.

Only the tokens are persisted (persisted_state / restore); the user is
reloaded from /auth/me and onboarding answers are re-collected.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

MAX_PERSONAS = 3


@dataclass(frozen=True)
class OnboardingAnswers:
    city: str = "Danang"
    personas: Tuple[str, ...] = ()
    vibes: Tuple[str, ...] = ()
    interests: Tuple[str, ...] = ()
    budget: Optional[str] = None
    duration: Optional[int] = None

    def as_query(self) -> Dict[str, Any]:
        """Query parameters for /itineraries/templates/suggested."""
        params: Dict[str, Any] = {"city": self.city}
        if self.personas:
            params["personas"] = ",".join(self.personas)
        if self.vibes:
            params["vibes"] = ",".join(self.vibes)
        if self.interests:
            params["interests"] = ",".join(self.interests)
        if self.budget:
            params["budget"] = self.budget
        if self.duration:
            params["duration"] = self.duration
        return params


def _toggle(values: Tuple[str, ...], value: str, limit: Optional[int] = None) -> Tuple[str, ...]:
    if value in values:
        return tuple(v for v in values if v != value)
    if limit is not None and len(values) >= limit:
        return values
    return values + (value,)


@dataclass
class SessionStore:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
    answers: OnboardingAnswers = field(default_factory=OnboardingAnswers)
    _listeners: List[Callable[["SessionStore"], None]] = field(default_factory=list, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user and self.access_token)

    def subscribe(self, listener: Callable[["SessionStore"], None]) -> Callable[[], None]:
        """Call listener after every change; returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # Auth
    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self.access_token = access_token
        if refresh_token is not None:
            self.refresh_token = refresh_token
        self._changed()

    def set_user(self, user: Optional[Dict[str, Any]]) -> None:
        self.user = user
        self._changed()

    def logout(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.user = None
        self._changed()

    # Onboarding
    def set_city(self, city: str) -> None:
        self.answers = replace(self.answers, city=city)
        self._changed()

    def toggle_persona(self, persona: str) -> bool:
        """Select or deselect a persona. A fourth selection is ignored; returns False then."""
        updated = _toggle(self.answers.personas, persona, MAX_PERSONAS)
        if updated == self.answers.personas:
            return False
        self.answers = replace(self.answers, personas=updated)
        self._changed()
        return True

    def toggle_vibe(self, vibe: str) -> None:
        self.answers = replace(self.answers, vibes=_toggle(self.answers.vibes, vibe))
        self._changed()

    def toggle_interest(self, interest: str) -> None:
        self.answers = replace(self.answers, interests=_toggle(self.answers.interests, interest))
        self._changed()

    def set_budget(self, budget: Optional[str]) -> None:
        self.answers = replace(self.answers, budget=budget)
        self._changed()

    def set_duration(self, days: Optional[int]) -> None:
        if days is not None and days < 1:
            raise ValueError("duration must be at least one day")
        self.answers = replace(self.answers, duration=days)
        self._changed()

    def reset_onboarding(self) -> None:
        self.answers = OnboardingAnswers()
        self._changed()

    # Persistence
    def persisted_state(self) -> Dict[str, Optional[str]]:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}

    @classmethod
    def restore(cls, state: Optional[Dict[str, Any]]) -> "SessionStore":
        state = state or {}
        return cls(access_token=state.get("accessToken"), refresh_token=state.get("refreshToken"))
