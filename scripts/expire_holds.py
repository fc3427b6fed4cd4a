import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import structlog

from cabin_bookings.db.engine import engine
from cabin_bookings.logging_config import setup_logging
from cabin_bookings.services.booking_service import expire_holds

setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    """
    Release every unpaid hold whose expiry has passed.

    Meant to run from cron every few minutes, e.g.:
        */5 * * * * cd /srv/cabin-bookings && python scripts/expire_holds.py
    """
    logger.info("hold_expiry_started")

    try:
        released = expire_holds(engine)
        logger.info("hold_expiry_completed", released=len(released), booking_ids=released)
    except Exception:
        logger.exception("hold_expiry_failed")
        raise


if __name__ == "__main__":
    main()
