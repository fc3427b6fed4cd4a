import os
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS")
if not ALLOWED_ORIGINS_RAW:
    raise ValueError("ALLOWED_ORIGINS must be set in the environment")

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in ALLOWED_ORIGINS_RAW.split(",")
]


def _optional_decimal(name: str, default: str) -> Optional[Decimal]:
    # An explicitly empty value disables the fallback price entirely
    raw = os.getenv(name, default).strip()
    return Decimal(raw) if raw else None


# Booking holds
HOLD_DURATION_MINUTES = int(os.getenv("HOLD_DURATION_MINUTES", "30"))
LOCK_TIMEOUT_SECONDS = float(os.getenv("LOCK_TIMEOUT_SECONDS", "10"))
IDEMPOTENCY_WINDOW_SECONDS = int(os.getenv("IDEMPOTENCY_WINDOW_SECONDS", "600"))

# Pricing fallbacks, used only when no pricing rule resolves
CURRENCY = os.getenv("CURRENCY", "USD")
DEFAULT_ADULT_PRICE = _optional_decimal("DEFAULT_ADULT_PRICE", "45")
DEFAULT_CHILD_PRICE = _optional_decimal("DEFAULT_CHILD_PRICE", "25")

# Stay shape
DEFAULT_MAX_NIGHTS = int(os.getenv("DEFAULT_MAX_NIGHTS", "4"))
DEFAULT_BOOKING_HORIZON_DAYS = int(os.getenv("DEFAULT_BOOKING_HORIZON_DAYS", "365"))
BUYOUT_MAX_OCCUPANCY = int(os.getenv("BUYOUT_MAX_OCCUPANCY", "17"))

CATALOG_CACHE_TTL_SECONDS = int(os.getenv("CATALOG_CACHE_TTL_SECONDS", "300"))
