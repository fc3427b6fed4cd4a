"""
Unit tests for middleware components.
"""

from __future__ import annotations

import pytest
import structlog
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from cabin_bookings.middleware import REQUEST_ID_HEADER, RequestIDMiddleware


@pytest.fixture
def client() -> TestClient:
    """Test client for an app echoing the request ID it sees."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/echo")
    async def echo(request: Request) -> dict:
        return {
            "state": request.state.request_id,
            "log_context": structlog.contextvars.get_contextvars().get("request_id"),
        }

    return TestClient(app)


@pytest.mark.unit
def test_request_id_generated_when_absent(client: TestClient) -> None:
    """Test that a UUID is generated and echoed when the caller sends none."""
    response = client.get("/echo")

    assert response.status_code == 200
    request_id = response.headers[REQUEST_ID_HEADER]
    assert len(request_id) == 36
    assert response.json()["state"] == request_id


@pytest.mark.unit
def test_incoming_request_id_is_reused(client: TestClient) -> None:
    """Test that a caller-supplied X-Request-ID flows through unchanged."""
    response = client.get("/echo", headers={REQUEST_ID_HEADER: "booking-ui-42"})

    assert response.headers[REQUEST_ID_HEADER] == "booking-ui-42"
    assert response.json()["state"] == "booking-ui-42"


@pytest.mark.unit
def test_request_id_bound_to_log_context(client: TestClient) -> None:
    """Test that log events emitted by a handler carry the request ID."""
    response = client.get("/echo")

    assert response.json()["log_context"] == response.headers[REQUEST_ID_HEADER]


@pytest.mark.unit
def test_request_id_unique_per_request(client: TestClient) -> None:
    """Test that each request gets a unique request ID."""
    first = client.get("/echo").headers[REQUEST_ID_HEADER]
    second = client.get("/echo").headers[REQUEST_ID_HEADER]

    assert first != second
