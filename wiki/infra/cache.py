import threading
import time
from collections.abc import Callable

from wiki.domain.models import Page

DEFAULT_TTL_S = 30 * 60


class ListingCache:
    """Single-slot cache of the full page listing.

    Entries expire at an absolute time; `invalidate` evicts immediately and
    bumps the generation, so a listing read before the eviction cannot be
    stored after it. Safe to share between request threads.
    """

    def __init__(
        self,
        ttl_s: float = DEFAULT_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_s = ttl_s
        self._clock = clock
        self._lock = threading.Lock()
        self._pages: list[Page] | None = None
        self._expires_at = 0.0
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self) -> list[Page] | None:
        with self._lock:
            if self._pages is None:
                return None
            if self._clock() >= self._expires_at:
                self._pages = None
                return None
            return list(self._pages)

    def set(self, pages: list[Page], ttl_s: float | None = None, generation: int | None = None) -> bool:
        """Store a listing; skipped when `generation` is stale."""

        ttl = self._ttl_s if ttl_s is None else ttl_s
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._pages = list(pages)
            self._expires_at = self._clock() + ttl
            return True

    def invalidate(self) -> None:
        with self._lock:
            self._pages = None
            self._generation += 1
