"""
Unit tests for metrics endpoint.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from cabin_bookings.main import app
from cabin_bookings.metrics import (
    booking_attempts,
    booking_lock_wait,
    booking_transitions,
    catalog_cache_hits,
    holds_expired,
    quotes_total,
)


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    return TestClient(app)


@pytest.mark.unit
def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    """Test that /metrics endpoint returns Prometheus text format."""
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]


@pytest.mark.unit
def test_metrics_endpoint_contains_booking_metrics(client: TestClient) -> None:
    """Test that /metrics includes the booking, pricing and cache series."""
    booking_attempts.labels(property="tahoe", mode="room", outcome="success").inc()
    booking_lock_wait.labels(property="tahoe", mode="room").observe(0.02)
    booking_transitions.labels(property="tahoe", transition="confirmed").inc()
    holds_expired.labels(property="tahoe").inc()
    quotes_total.labels(property="tahoe", mode="buyout", status="success").inc()
    catalog_cache_hits.inc()

    content = client.get("/metrics").text

    assert "cabin_booking_attempts_total" in content
    assert "cabin_booking_lock_wait_seconds" in content
    assert "cabin_booking_transitions_total" in content
    assert "cabin_holds_expired_total" in content
    assert "cabin_quotes_total" in content
    assert "cabin_catalog_cache_hits_total" in content
    assert "# HELP" in content
    assert "# TYPE" in content
