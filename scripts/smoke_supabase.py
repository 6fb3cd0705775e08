from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from budget_api.errors import handle_supabase_error  # noqa: E402
from budget_api.settings import get_settings  # noqa: E402
from budget_api.supabase import SupabaseConfigError, close_http, supabase_admin  # noqa: E402

SAMPLE_SIZE = 5


async def main() -> int:
    try:
        client = supabase_admin(get_settings())
    except SupabaseConfigError as e:
        print(f"Supabase not configured: {e}")
        return 1

    try:
        result = await (
            client.from_("levels")
            .select("id,name,sort_order")
            .eq("is_active", True)
            .order("sort_order")
            .limit(SAMPLE_SIZE)
            .execute()
        )
    finally:
        await close_http()

    if result.error:
        mapped = handle_supabase_error(result.error, "read levels")
        print(f"PostgREST read failed ({result.error.status or 'no response'}): {mapped.error}")
        if result.error.code == "PGRST205":
            print("The levels table is missing from the exposed schema.")
        return 2

    rows = result.data or []
    print(f"PostgREST reachable, first {len(rows)} active levels:")
    for row in rows:
        print(f"  {row.get('sort_order')!s:>3}  {row.get('name')}")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
