from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from budget_api.pg import Database  # noqa: E402
from budget_api.settings import get_settings  # noqa: E402


async def main() -> int:
    db = Database(get_settings())
    try:
        rows = await db.query(
            "SELECT id, name, sort_order FROM levels WHERE is_active = true ORDER BY sort_order ASC LIMIT $1",
            [500],
        )
    except Exception as e:
        stage = "query" if db.is_connected else "connect"
        print(f"Postgres {stage} failed: {e.__class__.__name__}: {e}")
        return 2
    finally:
        await db.close()

    print(f"Postgres reachable: {len(rows)} active levels")
    for row in rows:
        print(f"  {row['sort_order']:>3}  {row['name']} (id={row['id']})")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
