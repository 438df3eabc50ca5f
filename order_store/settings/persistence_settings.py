from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from order_store.data.strategies import PersistenceStrategy


class PersistenceSettings(BaseSettings):
    """
    Which persistence strategy backs ``OrderRepository`` and how callers
    page and retry.

    Loaded from environment variables (``ORDER_STORE_*``) or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ORDER_STORE_",
        extra="ignore",
    )

    strategy: PersistenceStrategy = PersistenceStrategy.AGGREGATE_ORM
    default_page_size: int = Field(default=20, gt=0)
    # Read-modify-write attempts after a ConcurrencyConflictError
    max_conflict_retries: int = Field(default=3, ge=0)


@lru_cache()
def get_persistence_settings() -> PersistenceSettings:
    return PersistenceSettings()
