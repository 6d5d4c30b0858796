"""
CLI entrypoint for the session/token retention job. Run from cron, e.g.:

  python -m showroom.retention

Or hourly: 0 * * * * cd /path/to/showroom && .venv/bin/python -m showroom.retention
"""

import logging
import sys

from showroom.core.config import get_settings
from showroom.core.database import SessionLocal
from showroom.services.retention import run_retention

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run retention: delete expired sessions and used or expired single-use tokens."""
    settings = get_settings()
    db = SessionLocal()
    try:
        sessions_deleted, tokens_deleted = run_retention(db, settings)
        logger.info(
            "Retention completed: sessions_deleted=%s, tokens_deleted=%s",
            sessions_deleted,
            tokens_deleted,
        )
        return 0
    except Exception as e:
        logger.exception("Retention job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
