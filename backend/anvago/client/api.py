"""
Async client for the Anvago API.

Unwraps the {success, data} envelope and raises ApiError for error
envelopes, HTTP failures and network errors alike. Auth tokens are read
from and written to the SessionStore it is given.
"""

from typing import Any, Dict, List, Optional
import logging

import httpx

from anvago.client.session import SessionStore
from anvago.services.editor import EditorError, ItineraryEditor, Reorder

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001/api/v1"


class ApiError(Exception):
    """Error envelope (or transport failure) returned by the API."""

    def __init__(self, status_code: int, code: str, message: str, details: Optional[Any] = None):
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


class AnvagoClient:

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[SessionStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.session = session or SessionStore()
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "AnvagoClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        headers = {}
        if self.session.access_token:
            headers["Authorization"] = f"Bearer {self.session.access_token}"
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(0, "network_error", str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error or not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            error = error or {}
            raise ApiError(
                response.status_code,
                error.get("code", "http_error"),
                error.get("message", response.reason_phrase),
                error.get("details"),
            )
        return body.get("data")

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _start_session(self, data: Dict[str, Any]) -> Dict[str, Any]:
        tokens = data["tokens"]
        self.session.set_tokens(tokens["accessToken"], tokens["refreshToken"])
        self.session.set_user(data["user"])
        return data["user"]

    async def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        data = await self._request("POST", "/auth/register", json={"name": name, "email": email, "password": password})
        return self._start_session(data)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        return self._start_session(data)

    async def refresh(self) -> None:
        if not self.session.refresh_token:
            raise ApiError(401, "unauthenticated", "No refresh token")
        data = await self._request("POST", "/auth/refresh", json={"refreshToken": self.session.refresh_token})
        tokens = data["tokens"]
        self.session.set_tokens(tokens["accessToken"], tokens["refreshToken"])

    async def load_user(self) -> Optional[Dict[str, Any]]:
        """Resolve the stored token into a user; an invalid token clears the session."""
        if not self.session.access_token:
            return None
        try:
            user = await self._request("GET", "/auth/me")
        except ApiError as e:
            if e.status_code != 401:
                raise
            logger.info("Stored token rejected, clearing session")
            self.session.logout()
            return None
        self.session.set_user(user)
        return user

    async def logout(self) -> None:
        try:
            if self.session.access_token:
                await self._request("POST", "/auth/logout")
        finally:
            self.session.logout()

    async def get_preferences(self) -> Optional[Dict[str, Any]]:
        return await self._request("GET", "/users/me/preferences")

    async def save_preferences(self) -> Dict[str, Any]:
        """Store the session's onboarding answers as the user's preferences."""
        answers = self.session.answers
        return await self._request("PUT", "/users/me/preferences", json={
            "personas": list(answers.personas),
            "vibes": list(answers.vibes),
            "interests": list(answers.interests),
            "budgetLevel": answers.budget,
        })

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    async def list_locations(self, city: Optional[str] = None, category: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"limit": limit}
        if city:
            params["city"] = city
        if category:
            params["category"] = category
        return await self._request("GET", "/locations", params=params)

    async def search_locations(self, q: str, city: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"q": q}
        if city:
            params["city"] = city
        return await self._request("GET", "/locations/search", params=params)

    async def get_location(self, location_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/locations/{location_id}")

    # ------------------------------------------------------------------
    # Itineraries
    # ------------------------------------------------------------------

    async def templates(self, city: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._request("GET", "/itineraries/templates", params={"city": city} if city else None)

    async def suggested_templates(self) -> List[Dict[str, Any]]:
        """Templates ranked against the session's onboarding answers."""
        return await self._request("GET", "/itineraries/templates/suggested", params=self.session.answers.as_query())

    async def my_itineraries(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/itineraries")

    async def create_itinerary(self, title: str, duration_days: int, **fields: Any) -> Dict[str, Any]:
        return await self._request("POST", "/itineraries", json={"title": title, "durationDays": duration_days, **fields})

    async def get_itinerary(self, itinerary_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/itineraries/{itinerary_id}")

    async def update_itinerary(self, itinerary_id: str, **changes: Any) -> Dict[str, Any]:
        return await self._request("PATCH", f"/itineraries/{itinerary_id}", json=changes)

    async def delete_itinerary(self, itinerary_id: str) -> None:
        await self._request("DELETE", f"/itineraries/{itinerary_id}")

    async def duplicate_itinerary(self, itinerary_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/itineraries/{itinerary_id}/duplicate")

    async def day_plans(self, itinerary_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/itineraries/{itinerary_id}/days")

    async def add_item(self, itinerary_id: str, location_id: str, day_number: int, order_index: int, **fields: Any) -> Dict[str, Any]:
        payload = {"locationId": location_id, "dayNumber": day_number, "orderIndex": order_index, **fields}
        return await self._request("POST", f"/itineraries/{itinerary_id}/items", json=payload)

    async def update_item(self, itinerary_id: str, item_id: str, **changes: Any) -> Dict[str, Any]:
        return await self._request("PATCH", f"/itineraries/{itinerary_id}/items/{item_id}", json=changes)

    async def delete_item(self, itinerary_id: str, item_id: str) -> None:
        await self._request("DELETE", f"/itineraries/{itinerary_id}/items/{item_id}")

    async def reorder_items(self, itinerary_id: str, moves: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._request("POST", f"/itineraries/{itinerary_id}/items/reorder", json={"items": moves})

    async def save_order(self, itinerary_id: str, editor: ItineraryEditor) -> Dict[str, Any]:
        """
        Persist the editor's day/order layout and mark it saved.
        Only items already stored server-side can be moved this way.

        Raises EditorError, without sending anything, when the editor holds
        edits other than reorders; those go through the item endpoints.
        """
        pending = sorted({type(c).__name__ for c in editor.history if not isinstance(c, Reorder)})
        if pending:
            raise EditorError(f"Unsaved {', '.join(pending)} edits must be saved through the item endpoints first")
        itinerary = await self.reorder_items(itinerary_id, editor.reorder_payload())
        editor.mark_saved()
        return itinerary

    async def alternatives(self, itinerary_id: str, item_id: str, kind: str = "category") -> List[Dict[str, Any]]:
        return await self._request(
            "GET", f"/itineraries/{itinerary_id}/items/{item_id}/alternatives", params={"type": kind}
        )

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------

    async def rewards_catalog(self) -> Dict[str, Any]:
        return await self._request("GET", "/rewards/catalog")

    async def my_rewards(self) -> Dict[str, Any]:
        return await self._request("GET", "/rewards/me")

    async def contribute(self, contribution_type: str, **fields: Any) -> Dict[str, Any]:
        return await self._request("POST", "/rewards/contributions", json={"type": contribution_type, **fields})

    async def redeem(self, gift_id: str) -> Dict[str, Any]:
        return await self._request("POST", "/rewards/redeem", json={"giftId": gift_id})
