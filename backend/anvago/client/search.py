"""
Debounced location search.

Each keystroke restarts a 300 ms wait. Once the wait is over the request
is issued and can no longer be cancelled; every request carries a
sequence number and its response is applied only if no newer keystroke
has arrived since, so stale responses are dropped.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional
import asyncio
import logging

from anvago.client.api import AnvagoClient, ApiError

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.3
MIN_QUERY_CHARS = 2
DEFAULT_RESULTS = 8

Results = List[Dict[str, Any]]


class DebouncedSearch:

    def __init__(
        self,
        search: Callable[[str], Awaitable[Results]],
        default: Callable[[], Awaitable[Results]],
        delay: float = DEBOUNCE_SECONDS,
        on_results: Optional[Callable[[Results], None]] = None,
    ):
        self._search = search
        self._default = default
        self.delay = delay
        self.on_results = on_results
        self.results: Results = []
        self.is_searching = False
        self._seq = 0
        self._timer: Optional[asyncio.Task] = None

    @classmethod
    def for_client(cls, client: AnvagoClient, city: Optional[str] = None, **kwargs: Any) -> "DebouncedSearch":
        return cls(
            search=lambda q: client.search_locations(q, city=city),
            default=lambda: client.list_locations(city=city, limit=DEFAULT_RESULTS),
            **kwargs,
        )

    @property
    def sequence(self) -> int:
        return self._seq

    def update(self, text: str) -> asyncio.Task:
        """Register a keystroke. Must be called from a running event loop."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._seq += 1
        self._timer = asyncio.ensure_future(self._debounced(self._seq, text))
        return self._timer

    async def _debounced(self, seq: int, text: str) -> Optional[Results]:
        await asyncio.sleep(self.delay)
        if self._timer is asyncio.current_task():
            self._timer = None

        query = text.strip()
        self.is_searching = True
        try:
            if len(query) < MIN_QUERY_CHARS:
                results = list(await self._default())[:DEFAULT_RESULTS]
            else:
                results = list(await self._search(query))
        except ApiError as e:
            logger.warning(f"Location search for {query!r} failed: {e}")
            results = []

        if seq != self._seq:
            logger.debug(f"Dropping stale search results #{seq} (latest #{self._seq})")
            return None

        self.results = results
        self.is_searching = False
        if self.on_results is not None:
            self.on_results(results)
        return results
