from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True)

    environment: str | None = Field(default=None, alias="NODE_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Supabase
    supabase_url: str | None = Field(default=None, alias="NEXT_PUBLIC_SUPABASE_URL")
    supabase_anon_key: str | None = Field(default=None, alias="NEXT_PUBLIC_SUPABASE_ANON_KEY")
    supabase_service_role_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_ROLE_KEY")

    # Postgres (DATABASE_URL wins over the individual PG* keys)
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    pg_host: str = Field(default="localhost", alias="PGHOST")
    pg_port: int = Field(default=5432, alias="PGPORT")
    pg_database: str = Field(default="budget_calculator", alias="PGDATABASE")
    pg_user: str | None = Field(default=None, alias="PGUSER")
    pg_password: str | None = Field(default=None, alias="PGPASSWORD")
    pg_sslmode: str | None = Field(default=None, alias="PGSSLMODE")

    # Pool tuning
    pg_pool_min: int = Field(default=2, alias="PG_POOL_MIN")
    pg_pool_max: int = Field(default=20, alias="PG_POOL_MAX")
    pg_idle_timeout_seconds: float = Field(default=30.0, alias="PG_IDLE_TIMEOUT_SECONDS")
    pg_connect_timeout_seconds: float = Field(default=2.0, alias="PG_CONNECT_TIMEOUT_SECONDS")
    pg_max_queries: int = Field(default=7500, alias="PG_MAX_QUERIES")

    def pool_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``asyncpg.create_pool``."""

        kwargs: dict[str, Any] = {
            "min_size": self.pg_pool_min,
            "max_size": self.pg_pool_max,
            "max_queries": self.pg_max_queries,
            "max_inactive_connection_lifetime": self.pg_idle_timeout_seconds,
            "timeout": self.pg_connect_timeout_seconds,
        }
        if self.pg_sslmode:
            kwargs["ssl"] = self.pg_sslmode
        if self.database_url:
            kwargs["dsn"] = self.database_url
            return kwargs
        kwargs.update(
            host=self.pg_host,
            port=self.pg_port,
            database=self.pg_database,
            user=self.pg_user,
            password=self.pg_password,
        )
        return kwargs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Loaded once per process; tests override this dependency instead of mutating env.
    return Settings()
