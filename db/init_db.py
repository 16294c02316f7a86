#!/usr/bin/env python3
"""Create the database schema.

Creates every table defined under db/models in the database pointed to by
DATABASE_URL. Existing tables are left alone.

Usage:
  python -m db.init_db [--drop]

Requirements:
  - DATABASE_URL must be set
"""

from __future__ import annotations

import argparse
import logging
import sys

from core.config import AppConfig
from core.storage import TABLES, Stores

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create paper trading tables")
    parser.add_argument("--drop", action="store_true", help="Drop all tables before creating them")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        config = AppConfig.from_env()
    except RuntimeError as exc:
        raise SystemExit(str(exc)) from exc

    stores = Stores(config=config.database)
    if args.drop:
        stores.drop_schema()
        logger.info("Dropped existing tables")
    stores.create_schema()

    print(f"Database schema applied ({len(TABLES)} tables)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
