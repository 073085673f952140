from __future__ import annotations

import logging
import threading

from django.conf import settings
from django.core.cache import caches
from django.core.cache.backends.base import BaseCache

from charge_planner.services.route_distance import RouteDistanceProvider
from charge_planner.services.types import GeoPoint

logger = logging.getLogger(__name__)


class DistanceCache:
    """Memoized point-to-point road distances in kilometers.

    Entries live in a bounded Django cache alias (``MAX_ENTRIES`` plus a TTL).
    Keys round both coordinates to 6 decimals and are directional.
    """

    def __init__(
        self,
        route_distance_provider: RouteDistanceProvider,
        backend: BaseCache | None = None,
        timeout: int | None = None,
    ) -> None:
        self.route_distance_provider = route_distance_provider
        self.backend = backend or caches[settings.DISTANCE_CACHE_ALIAS]
        self.timeout = settings.DISTANCE_CACHE_TTL_SECONDS if timeout is None else timeout
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()

    def resolve(self, start: GeoPoint, end: GeoPoint) -> float:
        key = self.cache_key(start, end)
        cached = self.backend.get(key)
        if cached is not None:
            self._count(hit=True)
            return float(cached)

        self._count(hit=False)
        distance_km = self.route_distance_provider.leg_distance_km(start, end)
        logger.debug("Distance cache miss for %s resolved to %.3f km", key, distance_km)
        self.backend.set(key, distance_km, timeout=self.timeout)
        return distance_km

    def clear(self) -> None:
        self.backend.clear()
        with self._lock:
            self.hits = 0
            self.misses = 0

    @staticmethod
    def cache_key(start: GeoPoint, end: GeoPoint) -> str:
        return f"distance:{start.lat:.6f},{start.lng:.6f}-{end.lat:.6f},{end.lng:.6f}"

    def _count(self, *, hit: bool) -> None:
        with self._lock:
            if hit:
                self.hits += 1
            else:
                self.misses += 1
