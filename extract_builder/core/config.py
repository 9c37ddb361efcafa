# extract_builder/core/config.py
"""Environment-driven settings for the extract builder."""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

# Extracts are samples; the ceiling can be lowered but never raised above this
MAX_SAMPLE_ROW_CEILING = 50


@dataclass(frozen=True)
class Settings:
    """Runtime settings read once from the environment."""

    # ===== DATABASES =====
    # Extract definitions, catalog and request logs
    database_url: str = "sqlite:///./extract_builder.db"
    # Membership warehouse the generated statements run against
    membership_database_url: str = "sqlite:///./membership.db"
    db_pool_size: int = 4
    db_pool_timeout: int = 30

    # ===== APPLICATION =====
    application_id: str = "Unknown"
    current_user_id: str = "1"

    # ===== EXTRACT GENERATION =====
    source_sys_id: str = "2001"
    sample_row_ceiling: int = 50

    # ===== EXECUTION =====
    query_timeout_seconds: float = 30.0
    store_retry_attempts: int = 3
    catalog_cache_ttl_seconds: int = 6 * 60 * 60

    def __post_init__(self):
        if not 1 <= self.sample_row_ceiling <= MAX_SAMPLE_ROW_CEILING:
            raise ValueError(
                f"SAMPLE_ROW_CEILING must be between 1 and {MAX_SAMPLE_ROW_CEILING}, got {self.sample_row_ceiling}"
            )


@lru_cache()
def get_settings() -> Settings:
    """Build settings from environment variables (cached for the process)."""
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./extract_builder.db"),
        membership_database_url=os.getenv("MEMBERSHIP_DATABASE_URL", "sqlite:///./membership.db"),
        db_pool_size=int(os.getenv("DB_POOL_SIZE", "4")),
        db_pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
        application_id=os.getenv("APPLICATION_ID", "Unknown"),
        current_user_id=os.getenv("EXTRACT_USER_ID", "1"),
        source_sys_id=os.getenv("SOURCE_SYS_ID", "2001"),
        sample_row_ceiling=int(os.getenv("SAMPLE_ROW_CEILING", "50")),
        query_timeout_seconds=float(os.getenv("QUERY_TIMEOUT_SECONDS", "30")),
        store_retry_attempts=int(os.getenv("STORE_RETRY_ATTEMPTS", "3")),
        catalog_cache_ttl_seconds=int(os.getenv("CATALOG_CACHE_TTL_SECONDS", str(6 * 60 * 60))),
    )
