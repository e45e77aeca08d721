"""
One-shot sweep of expired shared reports, for cron or manual runs.

    python scripts/sweep_expired.py          # delete expired rows, print stats
    python scripts/sweep_expired.py --stats  # print stats only
"""

import argparse
import asyncio
import json
import os
import sys

# Add parent dir to path to find config/services
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import settings, validate_share_settings
from services.cleanup import run_sweep
from services.report_store import build_report_store
from services.share_errors import StoreError


async def _main_async(stats_only: bool) -> int:
    validate_share_settings()
    store = build_report_store(settings)
    try:
        await store.initialize()
        result = await run_sweep(store, stats_only=stats_only)
    except StoreError as exc:
        print(f"❌ Sweep failed: {exc}", file=sys.stderr)
        return 1
    finally:
        await store.close()
    print(json.dumps(result))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Delete expired shared reports.")
    parser.add_argument("--stats", action="store_true", help="report counts without deleting")
    args = parser.parse_args(argv)
    return asyncio.run(_main_async(args.stats))


if __name__ == "__main__":
    sys.exit(main())
