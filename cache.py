import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimedCache(Generic[T]):
    """Last-known-good copy of one remote collection with a freshness window.

    ``fetch`` only calls the producer when the copy is missing, stale or a
    refresh is forced, never runs two producer calls at once, and never
    raises: failures land in ``error`` while ``data`` keeps the previous
    payload. ``set_data`` lets callers splice in optimistic or reverted
    values without going through the producer.
    """

    def __init__(
        self,
        producer: Callable[[], Awaitable[T]],
        cache_minutes: float = 10,
        *,
        label: str = "",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._producer = producer
        self.cache_minutes = cache_minutes
        self.label = label
        self._clock = clock
        self.data: Optional[T] = None
        self.error: Optional[Exception] = None
        self.loading = False
        self.last_fetched_at: Optional[datetime] = None
        self._fetched_at: Optional[float] = None

    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        age_minutes = (self._clock() - self._fetched_at) / 60
        return age_minutes >= self.cache_minutes

    async def fetch(self, force_refresh: bool = False) -> None:
        if self.loading:
            return
        if not force_refresh and not self.is_stale() and self.data is not None:
            return

        self.loading = True
        self.error = None
        try:
            result = await self._producer()
        except Exception as exc:
            self.error = exc
            logger.warning(f"cache_fetch_failed: label={self.label} error={exc}")
        else:
            self.data = result
            self._fetched_at = self._clock()
            self.last_fetched_at = datetime.now(timezone.utc)
            logger.debug(f"cache_fetched: label={self.label} forced={force_refresh}")
        finally:
            self.loading = False

    def set_data(self, value: Optional[T]) -> None:
        self.data = value

    def update(self, fn: Callable[[Optional[T]], Optional[T]]) -> None:
        """Derive the next value from whatever is cached right now."""
        self.data = fn(self.data)

    def clear(self) -> None:
        self.data = None
        self.error = None
        self.last_fetched_at = None
        self._fetched_at = None
