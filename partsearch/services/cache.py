"""Process-local caches with explicit lifecycle.

A ProcessCache is built lazily on first use and then reused by every request
in the worker process. Staleness is bounded by:
- process restart (always)
- max_age seconds, when configured
- an explicit invalidate() / rebuild() (admin endpoints)

There is no cross-process invalidation: each worker holds its own copy.

If the build read fails, the failure is logged, the cache stays unbuilt (the
next request tries again) and callers receive the cache's fallback value.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, TypeVar

from partsearch.services.errors import TransientReadFailure

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")
L = TypeVar("L")


class ProcessCache(Generic[L, T]):
    """Lazily built, explicitly invalidated cache around an async loader.

    Subclasses implement build() (loader output -> cached value), fallback()
    and size().
    """

    name = "cache"

    def __init__(
        self,
        loader: Callable[[], Awaitable[L]],
        *,
        max_age: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self.max_age = max_age
        self._clock = clock
        self._value: T | None = None
        self._built_at: float | None = None
        self._built_at_wall: datetime | None = None
        self._lock = asyncio.Lock()

    # --------------------------------------------------------
    # Subclass hooks
    # --------------------------------------------------------

    def build(self, loaded: L) -> T:
        raise NotImplementedError

    def fallback(self) -> T:
        raise NotImplementedError

    def size(self, value: T) -> int:
        return len(value)  # type: ignore[arg-type]

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    @property
    def is_built(self) -> bool:
        return self._built_at is not None

    @property
    def age(self) -> float | None:
        """Seconds since the last successful build, or None."""
        if self._built_at is None:
            return None
        return self._clock() - self._built_at

    def is_stale(self) -> bool:
        if self._built_at is None:
            return True
        if self.max_age is None:
            return False
        return (self._clock() - self._built_at) > self.max_age

    def invalidate(self) -> None:
        """Drop the cached value; the next get() rebuilds it."""
        self._value = None
        self._built_at = None
        self._built_at_wall = None
        logger.info(f"[cache] invalidated name={self.name}")

    async def rebuild(self) -> T:
        """Load and build unconditionally.

        Raises:
            TransientReadFailure: the loader failed. The previous value is kept.
        """
        try:
            loaded = await self._loader()
        except Exception as e:
            raise TransientReadFailure(self.name, e) from e

        value = self.build(loaded)
        self._value = value
        self._built_at = self._clock()
        self._built_at_wall = datetime.now(timezone.utc)
        logger.info(f"[cache] built name={self.name} size={self.size(value)}")
        return value

    async def get(self) -> T:
        """Return the cached value, building it first if missing or stale."""
        if not self.is_stale():
            return self._value  # type: ignore[return-value]

        async with self._lock:
            # Another request may have finished the build while we waited.
            if not self.is_stale():
                return self._value  # type: ignore[return-value]
            try:
                return await self.rebuild()
            except TransientReadFailure:
                logger.exception(f"[cache] build failed name={self.name}, serving fallback")
                return self.fallback()

    def status(self) -> dict[str, Any]:
        """Debug/admin view of the cache state."""
        return {
            "name": self.name,
            "built": self.is_built,
            "built_at": self._built_at_wall.isoformat() if self._built_at_wall else None,
            "age_seconds": round(self.age, 3) if self.age is not None else None,
            "max_age_seconds": self.max_age,
            "stale": self.is_stale(),
            "size": self.size(self._value) if self._value is not None else 0,
        }
