"""
Prometheus metrics for booking, pricing and inventory operations.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Example:
    >>> from cabin_bookings.metrics import booking_attempts, booking_lock_wait
    >>> with booking_lock_wait.labels(property="tahoe", mode="room").time():
    ...     rows = lock_property_days(conn, "tahoe", days)
    >>> booking_attempts.labels(property="tahoe", mode="room", outcome="success").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Booking Metrics
# =============================================================================

booking_attempts = Counter(
    "cabin_booking_attempts_total",
    "Total booking creation attempts by outcome",
    ["property", "mode", "outcome"],
)
"""
Counter for booking creation attempts.

Labels:
    property: Property name (tahoe, clear_lake)
    mode: Booking mode (room, buyout)
    outcome: success, replayed, or the failure reason (e.g. room_unavailable)
"""

booking_lock_wait = Histogram(
    "cabin_booking_lock_wait_seconds",
    "Time spent acquiring inventory row locks in seconds",
    ["property", "mode"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)
"""
Histogram for inventory lock acquisition time.

Labels:
    property: Property name
    mode: Booking mode

Buckets: 5ms .. 10s, +Inf
"""

booking_transitions = Counter(
    "cabin_booking_transitions_total",
    "Booking status transitions performed by the locker",
    ["property", "transition"],
)
"""
Counter for confirm / cancel / expire transitions.

Labels:
    property: Property name
    transition: confirmed, cancelled, expired
"""

holds_expired = Counter(
    "cabin_holds_expired_total",
    "Total unpaid holds released by the expiry sweep",
    ["property"],
)
"""Counter for holds released because ``hold_expires_at`` passed."""

# =============================================================================
# Pricing Metrics
# =============================================================================

quotes_total = Counter(
    "cabin_quotes_total",
    "Total price quotes computed",
    ["property", "mode", "status"],
)
"""
Counter for quotes.

Labels:
    property: Property name
    mode: Booking mode
    status: success or the failure reason
"""

# =============================================================================
# Catalog Cache Metrics
# =============================================================================

catalog_cache_hits = Counter(
    "cabin_catalog_cache_hits_total",
    "Total number of property catalog cache hits",
)
"""Counter for catalog cache hits (configuration served from memory)."""

catalog_cache_misses = Counter(
    "cabin_catalog_cache_misses_total",
    "Total number of property catalog cache misses",
)
"""Counter for catalog cache misses (configuration loaded from the database)."""
