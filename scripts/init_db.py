#!/usr/bin/env python3
"""
Create (or recreate) the back-office schema.

The database URL comes from ``--db-url``, then ``DATABASE_URL``, then the
``database.url`` setting of the active configuration.

Usage:
  python3 scripts/init_db.py [--db-url URL] [--config PATH] [--reset]
"""

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create the back-office database schema")
    p.add_argument("--db-url", default=os.environ.get("DATABASE_URL"), help="Database URL")
    p.add_argument("--config", default=None, help="Site configuration YAML file")
    p.add_argument("--reset", action="store_true", help="Drop all tables before creating them")
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from backoffice_config import get_active_config
    from backoffice_kernel.db.engine import drop_tables, init_engine_from_url, reset_engine
    from backoffice_modules._orm_registry import create_all_tables, import_all_orm_models

    config = get_active_config(args.config)
    db_url = args.db_url or config.database_url
    if not db_url:
        print("  ERROR: no database URL (use --db-url, DATABASE_URL or database.url)", file=sys.stderr)
        return 1

    init_engine_from_url(db_url, echo=False)
    try:
        if args.reset:
            import_all_orm_models()
            drop_tables()
            print("  Dropped existing tables.")
        create_all_tables()
        print("  Schema ready.")
    finally:
        reset_engine()
    return 0


if __name__ == "__main__":
    sys.exit(main())
