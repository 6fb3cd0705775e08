from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SupabaseError(BaseModel):
    """PostgREST error body plus the HTTP status it arrived with (0 for transport failures)."""

    code: str = Field(default="")
    message: str = Field(default="")
    details: str | None = None
    hint: str | None = None
    status: int = 0


class SupabaseResult(BaseModel):
    data: list[dict[str, Any]] | None = None
    error: SupabaseError | None = None


class ErrorResponse(BaseModel):
    error: str
    status: int


class EnvCheckReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "Environment check"
    has_supabase_url: bool = Field(alias="hasSupabaseUrl")
    has_supabase_anon_key: bool = Field(alias="hasSupabaseAnonKey")
    has_service_role_key: bool = Field(alias="hasServiceRoleKey")
    supabase_url_prefix: str = Field(alias="supabaseUrlPrefix")
    environment: str | None = None
    timestamp: str
