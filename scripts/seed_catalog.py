#!/usr/bin/env python3
"""
Seed Catalog
Creates the config-store tables and loads development reference data
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from extract_builder.catalog.seed import seed_catalog  # noqa: E402
from extract_builder.core.config import get_settings  # noqa: E402
from extract_builder.core.database import Database  # noqa: E402


def main() -> int:
    settings = get_settings()
    print(f"Database: {settings.database_url}")

    database = Database.from_settings(settings)
    try:
        database.init()
        with database.session() as session:
            ids = seed_catalog(session)
        print(f"Catalog ready: {ids}")
    finally:
        database.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
