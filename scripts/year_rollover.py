#!/usr/bin/env python3
"""Leave Year Rollover — allocate a new leave year for every active employee.

Run once at the start of each year (or after a backfill):
    5 0 1 1 *

For each active employee without allocation rows for the target year:
  - inserts one row per org leave type, pro-rated for mid-year joiners
  - carries forward half of last year's combined Casual/Privileged balance
    when more than one day remains

Employees that already have rows for the year are skipped, so the script
is safe to re-run.

Usage:
    python scripts/year_rollover.py                # current year
    python scripts/year_rollover.py --year 2027
    python scripts/year_rollover.py --dry-run      # report only, no writes

Requires .env at project root with DATABASE_URL and JWT_SECRET.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from datetime import date
from pathlib import Path

# ── Path setup ────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

from backoffice.database import async_session_factory, engine  # noqa: E402
from backoffice.leave.allocation import RolloverResult, roll_over_year  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("year_rollover")


async def run_rollover(year: int, dry_run: bool) -> RolloverResult:
    """Run the rollover in one transaction; nothing is written on dry runs."""
    try:
        async with async_session_factory() as session:
            result = await roll_over_year(session, year, dry_run=dry_run)
            if dry_run:
                await session.rollback()
            else:
                await session.commit()
            return result
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Leave year rollover — allocate leave for all active employees",
    )
    parser.add_argument(
        "--year", type=int, default=date.today().year,
        help="Leave year to allocate (default: current year)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report only, don't write")
    args = parser.parse_args()

    start_time = time.time()
    logger.info("Rolling over leave year %s%s", args.year, " [DRY RUN]" if args.dry_run else "")

    try:
        result = asyncio.run(run_rollover(args.year, args.dry_run))
    except Exception:
        logger.exception("Rollover for %s failed; no allocations were written", args.year)
        sys.exit(1)

    elapsed = time.time() - start_time
    print(f"""
{'=' * 60}
  ROLLOVER {'PREVIEW' if args.dry_run else 'COMPLETE'} — {args.year} ({elapsed:.1f}s)
  Allocated : {len(result.allocated)} employees
  Skipped   : {len(result.skipped)} employees
{'=' * 60}
""")


if __name__ == "__main__":
    main()
