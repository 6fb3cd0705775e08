from __future__ import annotations

from collections.abc import Callable
from functools import partial

from fastapi import Depends, Request

from .pg import Database
from .settings import Settings, get_settings
from .supabase import SupabaseClient, supabase_admin

SupabaseFactory = Callable[[], SupabaseClient]


def get_supabase_factory(settings: Settings = Depends(get_settings)) -> SupabaseFactory:
    # Handlers build the client themselves so construction failures stay inside their error handling.
    return partial(supabase_admin, settings)


def get_database(request: Request) -> Database:
    return request.app.state.db
