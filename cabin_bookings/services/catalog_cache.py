"""
In-memory cache of per-property configuration.

Rooms, seasons, pricing rules and blackouts change rarely but are needed on
every availability, quote and validation request. This module keeps one
``Catalog`` snapshot per property with a TTL and explicit invalidation from
the catalog writers.

Strategy:
- Lazy-load a property on first use
- Expire entries after ``CATALOG_CACHE_TTL_SECONDS``
- Thread-safe operations using threading.Lock

The booking locker never uses this cache: it reads configuration inside its
own transaction.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy.engine import Engine

from cabin_bookings.config import CATALOG_CACHE_TTL_SECONDS
from cabin_bookings.db.readers.catalog import Catalog, load_catalog
from cabin_bookings.metrics import catalog_cache_hits, catalog_cache_misses

logger = structlog.get_logger(__name__)


class CatalogCache:
    """
    Property catalog cache with time-to-live (TTL) expiration.

    Attributes:
        ttl: Time-to-live for cached snapshots
        _cache: Internal storage mapping property to (catalog, expires_at) tuples

    Example:
        >>> cache = CatalogCache(ttl_seconds=300)
        >>> cache.set("tahoe", catalog)
        >>> cache.get("tahoe") is catalog
        True
        >>> cache.invalidate("tahoe")
    """

    def __init__(self, ttl_seconds: int = 300):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._cache: dict[str, tuple[Catalog, datetime]] = {}
        self._lock = threading.Lock()

    def get(self, property: str) -> Optional[Catalog]:
        """
        Get cached catalog if not expired.

        Args:
            property: Property name

        Returns:
            Cached catalog if found and not expired, None otherwise
        """
        with self._lock:
            entry = self._cache.get(property)
            if entry is None:
                return None
            catalog, expires_at = entry
            if datetime.now(timezone.utc) < expires_at:
                return catalog
            # Expired - remove from cache
            del self._cache[property]
            return None

    def set(self, property: str, catalog: Catalog) -> None:
        expires_at = datetime.now(timezone.utc) + self.ttl
        with self._lock:
            self._cache[property] = (catalog, expires_at)

    def invalidate(self, property: str) -> None:
        """
        Remove a property's snapshot.

        Called by the catalog writers after configuration changes.

        Args:
            property: Property name
        """
        with self._lock:
            self._cache.pop(property, None)

    def clear(self) -> None:
        """
        Clear all cached snapshots.

        Useful for testing or emergency cache invalidation.
        """
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._cache)


# Global cache instance
catalog_cache = CatalogCache(ttl_seconds=CATALOG_CACHE_TTL_SECONDS)


def get_catalog(engine: Engine, property: str) -> Catalog:
    """
    Return the property's catalog, loading it from the database on a miss.

    Args:
        engine: SQLAlchemy engine used on cache miss
        property: Property name

    Returns:
        Catalog: Configuration snapshot
    """
    catalog = catalog_cache.get(property)
    if catalog is not None:
        catalog_cache_hits.inc()
        return catalog

    catalog_cache_misses.inc()
    with engine.connect() as conn:
        catalog = load_catalog(conn, property)

    catalog_cache.set(property, catalog)
    logger.info(
        "catalog_loaded",
        property=property,
        rooms=len(catalog.rooms),
        seasons=len(catalog.seasons),
        pricing_rules=len(catalog.pricing_rules),
    )
    return catalog
