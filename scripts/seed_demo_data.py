#!/usr/bin/env python3
"""Create the schema and load demo data for a local (SQLite) bakery tenant.

Usage:
    python scripts/seed_demo_data.py [--reset]
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from bakeryhub.infra.database import engine  # noqa: E402
from bakeryhub.infra.schema import metadata  # noqa: E402
from bakeryhub.infra.seed import seed_demo_data  # noqa: E402

logger = logging.getLogger("bakeryhub.scripts.seed")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed demo bakery data")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    if args.reset:
        metadata.drop_all(engine)
    metadata.create_all(engine)

    with engine.begin() as conn:
        if conn.exec_driver_sql("SELECT COUNT(*) FROM tenants").scalar():
            logger.info("Database already has tenants, skipping seed (use --reset to reload)")
            return 0
        seed_demo_data(conn)

    logger.info("Demo data loaded into %s", engine.url.render_as_string(hide_password=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
