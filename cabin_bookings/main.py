# cabin_bookings/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cabin_bookings.config import ALLOWED_ORIGINS
from cabin_bookings.logging_config import setup_logging
from cabin_bookings.middleware import RequestIDMiddleware
from cabin_bookings.routes.bookings import router as bookings_router
from cabin_bookings.routes.health import router as health_router
from cabin_bookings.routes.metrics import router as metrics_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Cabin Bookings API",
    description="Availability, pricing and inventory locking for cabin room and buyout bookings",
    version="1.0.0",
)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(bookings_router, tags=["Bookings"])


@app.on_event("startup")
def startup_event() -> None:
    logger.info("application_started", title=app.title, version=app.version)
