"""Create bills for meter readings that were recorded without one.

Usage: python scripts/backfill_bills.py
"""

import logging
import os
import sys

from sqlmodel import Session

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from airdesa.billing import backfill_bills  # noqa: E402
from airdesa.db import engine  # noqa: E402

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger("backfill_bills")


def main():
    with Session(engine) as session:
        with session.begin():
            created = backfill_bills(session)
    logger.info("created %d bill(s)", created)
    return 0


if __name__ == "__main__":
    sys.exit(main())
